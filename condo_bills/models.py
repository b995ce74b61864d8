"""
Condominium Bill Data Model
============================
Records produced by the parsing pipeline and their JSON shape.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, NamedTuple, Optional


class LineItem(NamedTuple):
    """One charge on the bill, keyed by its canonical category name."""
    name: str
    amount: Decimal


def _money(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


@dataclass
class BillRecord:
    """Structured data recovered from one condominium bill."""
    property_name: str = ""
    property_unit: str = ""
    competency_month: str = ""
    line_items: List[LineItem] = field(default_factory=list)
    due_date: str = ""
    total_amount: Decimal = Decimal("0")
    interest_amount: Optional[Decimal] = None
    final_amount: Optional[Decimal] = None
    lawyer_fee: Optional[Decimal] = None

    @property
    def item_sum(self) -> Decimal:
        return sum((item.amount for item in self.line_items), Decimal("0"))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON payload the frontend reads."""
        return {
            "propertyName": self.property_name,
            "propertyUnit": self.property_unit,
            "competencyMonth": self.competency_month,
            "lineItems": [{"name": item.name, "amount": _money(item.amount)} for item in self.line_items],
            "dueDate": self.due_date,
            "totalAmount": _money(self.total_amount),
            "interestAmount": _money(self.interest_amount),
            "finalAmount": _money(self.final_amount),
            "lawyerFee": _money(self.lawyer_fee),
        }


@dataclass
class Reconciliation:
    """
    Outcome of cross-checking the bill total against its line items.

    source is one of "label", "due_date_line", "item_sum" or "none".
    """
    total: Decimal
    source: str
    detected_total: Optional[Decimal] = None
    item_sum: Decimal = Decimal("0")
    deviation: Optional[Decimal] = None
    exceeds_threshold: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": _money(self.total),
            "source": self.source,
            "detectedTotal": _money(self.detected_total),
            "itemSum": _money(self.item_sum),
            "deviation": None if self.deviation is None else float(self.deviation),
            "exceedsThreshold": self.exceeds_threshold,
        }


@dataclass
class ParseResult:
    """
    Result of parsing one bill.

    Either success=True with data set, or success=False with error set
    (data may then hold a partial record).
    raw_text is always the OCR text that was parsed so an operator can
    review it.
    """
    success: bool
    raw_text: str = ""
    data: Optional[BillRecord] = None
    error: Optional[str] = None
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: BillRecord, raw_text: str, diagnostics: Optional[Dict[str, Any]] = None) -> "ParseResult":
        return cls(success=True, raw_text=raw_text or "", data=data, diagnostics=diagnostics or {})

    @classmethod
    def fail(cls, error: str, raw_text: Optional[str] = "", data: Optional[BillRecord] = None,
             diagnostics: Optional[Dict[str, Any]] = None) -> "ParseResult":
        # data carries whatever partial fields were recovered, if any
        return cls(success=False, raw_text=raw_text or "", data=data, error=error,
                   diagnostics=diagnostics or {})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        out: Dict[str, Any] = {
            "success": self.success,
            "rawText": self.raw_text,
        }
        if self.data is not None:
            out["data"] = self.data.to_dict()
        if self.error is not None:
            out["error"] = self.error
        if self.diagnostics:
            out["diagnostics"] = self.diagnostics
        return out
