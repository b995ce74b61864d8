"""Sufficiency checks for parsed condominium bills."""

from __future__ import annotations

from .models import BillRecord


def validate_bill_record(record: BillRecord | None):
    """
    Decide whether a parsed bill carries enough to be useful.

    A record is sufficient when it identifies the property (name or unit) or
    has at least one line item. Everything else (dates, totals) is optional,
    since a structurally complete but empty record is worse than a failure.

    Returns:
        {
            'is_valid': bool,
            'missing_fields': list of strings describing what's missing
        }
    """
    if record is None:
        return {"is_valid": False, "missing_fields": ["No extraction data"]}

    missing_fields = []
    if not record.property_name:
        missing_fields.append("missing propertyName")
    if not record.property_unit:
        missing_fields.append("missing propertyUnit")
    if not record.line_items:
        missing_fields.append("no line items found")

    # Any one of the three is enough
    is_valid = len(missing_fields) < 3
    if not record.due_date:
        missing_fields.append("missing dueDate")
    if not record.competency_month:
        missing_fields.append("missing competencyMonth")

    return {"is_valid": is_valid, "missing_fields": missing_fields}
