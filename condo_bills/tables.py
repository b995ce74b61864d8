"""
Lookup tables for condominium bills.

Two static catalogues drive the parser:
- UnitMapping: unit code variants as printed on bills -> canonical property name
- ItemTaxonomy: canonical line-item name -> synonyms, in evaluation order

Both are built once and frozen. The defaults below cover the properties we
manage today; a YAML file can replace or extend them without code changes:

    unit_mappings:
      "6 000307": Sevilha 307
    item_taxonomy:
      - name: Taxa Condominial
        synonyms: [taxa condominial, condominio]
"""

from __future__ import annotations

import logging
import os
import re
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple

import yaml

logger = logging.getLogger(__name__)


class LookupTableError(ValueError):
    """Raised when a lookup table file cannot be used."""


def compact_unit_code(raw: str) -> str:
    """Lowercase and drop whitespace so "6 000307" and "6000307" compare equal."""
    return re.sub(r"\s+", "", str(raw or "")).lower()


class UnitMapping:
    """Read-only, many-to-one map from unit code variants to property names."""

    def __init__(self, entries: Mapping[str, str]):
        by_code: Dict[str, str] = {}
        variants: List[Tuple[str, str]] = []
        for variant, name in entries.items():
            key = compact_unit_code(variant)
            if not key or not name:
                raise LookupTableError(f"Invalid unit mapping entry: {variant!r} -> {name!r}")
            by_code.setdefault(key, str(name))
            variants.append((re.sub(r"\s+", " ", str(variant)).strip().lower(), str(name)))
        self._by_code = MappingProxyType(by_code)
        self._variants: Tuple[Tuple[str, str], ...] = tuple(variants)

    def lookup(self, code: str) -> Optional[str]:
        """Return the property name for a unit code, ignoring case and spacing."""
        return self._by_code.get(compact_unit_code(code))

    def variants(self) -> Tuple[Tuple[str, str], ...]:
        """(lowercased variant, property name) pairs in declaration order."""
        return self._variants

    def property_names(self) -> List[str]:
        return sorted(set(self._by_code.values()))

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and compact_unit_code(code) in self._by_code

    def __len__(self) -> int:
        return len(self._variants)


class ItemCategory(NamedTuple):
    name: str
    synonyms: Tuple[str, ...]


class ItemTaxonomy:
    """
    Ordered catalogue of bill line-item categories.

    When synonyms of two categories appear on the same line, the category
    declared first is evaluated first. pairs() exposes that order.
    """

    def __init__(self, categories: Iterable[Tuple[str, Sequence[str]]]):
        built: List[ItemCategory] = []
        seen = set()
        for name, synonyms in categories:
            if not name or name in seen:
                raise LookupTableError(f"Duplicate or empty item category: {name!r}")
            cleaned = tuple(s.strip().lower() for s in synonyms if s and s.strip())
            if not cleaned:
                raise LookupTableError(f"Item category {name!r} has no synonyms")
            seen.add(name)
            built.append(ItemCategory(str(name), cleaned))
        self._categories: Tuple[ItemCategory, ...] = tuple(built)

    @property
    def categories(self) -> Tuple[ItemCategory, ...]:
        return self._categories

    def names(self) -> List[str]:
        return [c.name for c in self._categories]

    def pairs(self) -> List[Tuple[str, str]]:
        """Flattened (canonical name, synonym) pairs in evaluation order."""
        return [(c.name, s) for c in self._categories for s in c.synonyms]

    def __iter__(self) -> Iterator[ItemCategory]:
        return iter(self._categories)

    def __len__(self) -> int:
        return len(self._categories)


DEFAULT_UNIT_MAPPINGS: Dict[str, str] = {
    "6 000307": "Sevilha 307",
    "6000307": "Sevilha 307",
    "sevilha 307": "Sevilha 307",
    "tower 6 307": "Sevilha 307",
    "torre 6 307": "Sevilha 307",
    "g07": "Sevilha G07",
    "g 07": "Sevilha G07",
    "sevilha g07": "Sevilha G07",
    "m07": "Málaga M07",
    "m 07": "Málaga M07",
    "malaga m07": "Málaga M07",
    "málaga m07": "Málaga M07",
}

# Order matters: the first category whose synonym appears on a line is tried first
DEFAULT_ITEM_TAXONOMY: List[Tuple[str, Tuple[str, ...]]] = [
    ("Taxa Condominial", ("taxa condominial", "taxa condomínial", "condominio", "condomínio")),
    ("ENEL (Luz)", ("enel", "enei", "encl", "energia elétrica", "energia eletrica", "energia", "luz")),
    ("Consumo Gás", ("consumo gás", "consumo gas", "gás", "gas")),
    ("Consumo Água", ("consumo água", "consumo agua", "água", "agua")),
    ("Juros", ("juros",)),
    ("Multa", ("multa",)),
    ("Advogado", ("taxa advogado", "advogado", "honorários", "honorarios")),
]


class LookupTables(NamedTuple):
    units: UnitMapping
    items: ItemTaxonomy


def build_tables(unit_mappings: Optional[Mapping[str, str]] = None,
                 item_taxonomy: Optional[Iterable[Tuple[str, Sequence[str]]]] = None) -> LookupTables:
    return LookupTables(
        units=UnitMapping(DEFAULT_UNIT_MAPPINGS if unit_mappings is None else unit_mappings),
        items=ItemTaxonomy(DEFAULT_ITEM_TAXONOMY if item_taxonomy is None else item_taxonomy),
    )


def _taxonomy_from_yaml(raw: Any) -> List[Tuple[str, Sequence[str]]]:
    if not isinstance(raw, list):
        raise LookupTableError("item_taxonomy must be a list of {name, synonyms}")
    out = []
    for entry in raw:
        if not isinstance(entry, dict) or "name" not in entry:
            raise LookupTableError(f"Invalid item_taxonomy entry: {entry!r}")
        out.append((entry["name"], list(entry.get("synonyms") or [])))
    return out


def load_tables(path: Optional[str] = None, *, extend: bool = True) -> LookupTables:
    """
    Build lookup tables, optionally merged with a YAML file.

    Args:
        path: YAML file with `unit_mappings` and/or `item_taxonomy`
        extend: When True, file entries are merged into the defaults (unit
            variants override, known categories gain synonyms, new categories
            are appended). When False, a section present in the file replaces
            the default one.

    Returns:
        Frozen LookupTables
    """
    if not path:
        return DEFAULT_TABLES
    if not os.path.exists(path):
        raise LookupTableError(f"Lookup table file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}
    if not isinstance(doc, dict):
        raise LookupTableError(f"Lookup table file must contain a mapping: {path}")

    units: Dict[str, str] = dict(DEFAULT_UNIT_MAPPINGS)
    if "unit_mappings" in doc:
        file_units = doc.get("unit_mappings") or {}
        if not isinstance(file_units, dict):
            raise LookupTableError("unit_mappings must be a mapping of variant -> property name")
        if not extend:
            units = {}
        units.update({str(k): str(v) for k, v in file_units.items()})

    items: List[Tuple[str, Sequence[str]]] = list(DEFAULT_ITEM_TAXONOMY)
    if "item_taxonomy" in doc:
        file_items = _taxonomy_from_yaml(doc.get("item_taxonomy"))
        if not extend:
            items = file_items
        else:
            positions = {name: i for i, (name, _) in enumerate(items)}
            for name, synonyms in file_items:
                if name in positions:
                    idx = positions[name]
                    items[idx] = (name, tuple(items[idx][1]) + tuple(synonyms))
                else:
                    positions[name] = len(items)
                    items.append((name, synonyms))

    tables = build_tables(units, items)
    logger.info(f"Loaded lookup tables from {path}: {len(tables.units)} unit variants, {len(tables.items)} item categories")
    return tables


DEFAULT_TABLES = build_tables()
