"""
Total Reconciler
================
Derives the bill total and cross-checks it against the line items.

Search order, with no backtracking between stages:
1. Label-anchored: "valor cobrado"/"valor do documento" > "total" > "vencimento <date> <value>"
2. Any dated line: the value printed after the date
3. Sum of the extracted line items

A large gap between a detected total and the item sum is reported (log +
diagnostics) but does not change which value wins.
"""

import re
import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from .currency import CurrencyResolver
from .models import LineItem, Reconciliation

logger = logging.getLogger(__name__)

TOTAL_LABEL_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ('amount_charged', re.compile(r'\bvalor\s+(?:cobrado|(?:do\s+)?documento)\b', re.IGNORECASE)),
    ('total', re.compile(r'\btotal\b', re.IGNORECASE)),
    ('due_date_value', re.compile(r'\bvencimento\b[:\s]*\d{2}/\d{2}/\d{4}', re.IGNORECASE)),
]

DATE_TOKEN = re.compile(r'\d{2}/\d{2}/\d{4}')


class TotalReconciler:
    """Picks the bill total from labelled text, dated lines or the item sum."""

    def __init__(self, resolver: Optional[CurrencyResolver] = None):
        self.resolver = resolver or CurrencyResolver()

    @property
    def deviation_threshold(self) -> Decimal:
        return self.resolver.settings.deviation_threshold

    def labelled_total(self, lines: Sequence[str]) -> Optional[Decimal]:
        """First label pattern (in priority order) that has a value after it on its line."""
        for name, pattern in TOTAL_LABEL_PATTERNS:
            for line in lines:
                match = pattern.search(line)
                if not match:
                    continue
                value = self.resolver.resolve(line[match.end():])
                if value is not None:
                    logger.debug(f"Total {value} from label '{name}'")
                    return value
        return None

    def due_date_line_total(self, lines: Sequence[str]) -> Optional[Decimal]:
        """Value trailing the last date on the first dated line that has one."""
        for line in lines:
            dates = list(DATE_TOKEN.finditer(line))
            if not dates:
                continue
            value = self.resolver.resolve(line[dates[-1].end():])
            if value is not None:
                logger.debug(f"Total {value} from dated line {line!r}")
                return value
        return None

    def reconcile(self, text: str, items: Sequence[LineItem]) -> Reconciliation:
        lines = [line for line in text.split('\n') if line.strip()]
        item_sum = sum((item.amount for item in items), Decimal('0'))

        source = 'label'
        detected = self.labelled_total(lines)
        if detected is None:
            source = 'due_date_line'
            detected = self.due_date_line_total(lines)

        deviation = None
        exceeds = False
        if detected and item_sum:
            deviation = abs(detected - item_sum) / detected
            exceeds = deviation > self.deviation_threshold
            if exceeds:
                logger.warning(
                    f"Detected total {detected} differs from item sum {item_sum} "
                    f"by {deviation:.1%} (threshold {self.deviation_threshold:.0%}); keeping detected total"
                )

        if detected:
            total = detected
        elif item_sum:
            total, source = item_sum, 'item_sum'
        else:
            total, source = Decimal('0'), 'none'

        return Reconciliation(
            total=total,
            source=source,
            detected_total=detected,
            item_sum=item_sum,
            deviation=deviation,
            exceeds_threshold=exceeds,
        )


def reconcile_total(text: str, items: Sequence[LineItem], resolver: Optional[CurrencyResolver] = None) -> Decimal:
    """Bill total for text given its extracted line items."""
    return TotalReconciler(resolver).reconcile(text, items).total
