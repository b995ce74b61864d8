"""
Line-Item Extractor
===================
Finds known bill categories in OCR lines and resolves their amounts.

OCR often splits a two-column row so the label and its value land on
different lines ("ENEL" / "180,00"); when a labelled line carries no amount
the next few lines are tried in turn.
"""

import logging
from typing import List, Optional, Sequence

from .currency import CurrencyResolver
from .models import LineItem
from .tables import ItemTaxonomy

logger = logging.getLogger(__name__)


class LineItemExtractor:
    """
    Extracts (canonical name, amount) pairs in the order they first appear.

    A category is recorded once: later mentions (summary lines, repeated
    headers) never overwrite the first amount found. Categories without a
    resolvable amount are left out rather than recorded as zero.
    """

    def __init__(self, taxonomy: ItemTaxonomy, resolver: Optional[CurrencyResolver] = None,
                 lookahead_lines: Optional[int] = None):
        self.taxonomy = taxonomy
        self.resolver = resolver or CurrencyResolver()
        self.lookahead_lines = self.resolver.settings.lookahead_lines if lookahead_lines is None else lookahead_lines

    def _amount_near(self, lines: Sequence[str], idx: int):
        value = self.resolver.resolve(lines[idx])
        if value is not None:
            return value
        for offset in range(1, self.lookahead_lines + 1):
            if idx + offset >= len(lines):
                break
            value = self.resolver.resolve(lines[idx + offset])
            if value is not None:
                logger.debug(f"Amount for line {idx} found {offset} line(s) below: {value}")
                return value
        return None

    def extract(self, lines: Sequence[str]) -> List[LineItem]:
        """
        Args:
            lines: Normalized OCR lines, in reading order

        Returns:
            Line items in first-seen order, unique by canonical name
        """
        items: List[LineItem] = []
        found = set()

        for idx, line in enumerate(lines):
            lowered = line.lower()
            for category in self.taxonomy:
                if category.name in found:
                    continue
                synonym = next((s for s in category.synonyms if s in lowered), None)
                if synonym is None:
                    continue
                amount = self._amount_near(lines, idx)
                if amount is None:
                    logger.debug(f"'{synonym}' on line {idx} has no amount nearby")
                    continue
                items.append(LineItem(category.name, amount))
                found.add(category.name)

        logger.debug(f"Extracted {len(items)} line items: {[i.name for i in items]}")
        return items


def extract_line_items(lines: Sequence[str], taxonomy: ItemTaxonomy,
                       resolver: Optional[CurrencyResolver] = None) -> List[LineItem]:
    return LineItemExtractor(taxonomy, resolver).extract(lines)
