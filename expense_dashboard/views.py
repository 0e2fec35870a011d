"""Filtering, sorting and pagination shared by every dashboard view.

Each function takes a collection and returns a new list; inputs are never
mutated, so the same loaded records can back tables, cards and charts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Sequence

from .data_loader import parse_date_ordinal, to_number

ALL = "ALL"

SORT_KEYS = ("date_desc", "date_asc", "amount_desc", "amount_asc")
DEFAULT_SORT = "date_desc"

TRANSACTION_TYPES = ("EXPENSE", "RECEIPT", "CONTRA_OUT", "CONTRA_IN")


@dataclass(frozen=True)
class FilterState:
    period: str = ALL
    mode: str = ALL
    category: str = ALL
    query: str = ""

    def update(self, **changes: str) -> "FilterState":
        """Return a copy with ``changes`` applied; blank selections mean ALL."""
        values: Dict[str, str] = {}
        for name, value in changes.items():
            if name == "query":
                values[name] = value or ""
            else:
                values[name] = (value or "").strip() or ALL
        return replace(self, **values)


def _field(row: Mapping[str, Any], name: str) -> str:
    return str(row.get(name) or "").strip()


def _as_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return "" if value is None else str(value)


def _matches_query(row: Mapping[str, Any], query: str) -> bool:
    haystack = " ".join(_as_text(v) for v in row.values()).lower()
    return query in haystack


def filter_records(
    records: Sequence[Mapping[str, str]],
    kind: str,
    state: FilterState,
) -> List[Mapping[str, str]]:
    """Apply the active filters to one record collection.

    ``kind`` is ``expense``, ``receipt`` or ``contra``. Mode matching uses the
    ``Mode`` column for expenses and receipts and either side of a contra
    transfer; the category filter only applies to expenses.
    """
    filtered = [r for r in records if r.get("Date")]

    if state.period != ALL:
        filtered = [r for r in filtered if _field(r, "Month") == state.period]

    if state.mode != ALL:
        if kind in ("expense", "receipt"):
            filtered = [r for r in filtered if _field(r, "Mode") == state.mode]
        elif kind == "contra":
            filtered = [
                r
                for r in filtered
                if _field(r, "From") == state.mode or _field(r, "To") == state.mode
            ]

    if state.category != ALL and kind == "expense":
        filtered = [r for r in filtered if _field(r, "Group") == state.category]

    q = state.query.strip().lower()
    if q:
        filtered = [r for r in filtered if _matches_query(r, q)]
    return filtered


def filter_transactions(
    rows: Sequence[Mapping[str, Any]],
    type_filter: str = ALL,
    query: str = "",
) -> List[Mapping[str, Any]]:
    """Filter unified transaction rows by ``Type`` and free text."""
    filtered = list(rows)
    if type_filter and type_filter != ALL:
        filtered = [r for r in filtered if r.get("Type") == type_filter]
    q = (query or "").strip().lower()
    if q:
        filtered = [r for r in filtered if _matches_query(r, q)]
    return filtered


def _amount(row: Mapping[str, Any]) -> float:
    value = row.get("Amount")
    if isinstance(value, (int, float)):
        return float(value)
    return to_number(value)


def sort_records(records: Sequence[Mapping[str, Any]], key: str) -> List[Mapping[str, Any]]:
    """Order records by date or amount; unknown keys keep the input order."""
    rows = list(records)
    if key == "date_desc":
        rows.sort(key=lambda r: parse_date_ordinal(r.get("Date")), reverse=True)
    elif key == "date_asc":
        rows.sort(key=lambda r: parse_date_ordinal(r.get("Date")))
    elif key == "amount_desc":
        rows.sort(key=_amount, reverse=True)
    elif key == "amount_asc":
        rows.sort(key=_amount)
    return rows


def total_pages(records: Sequence[Any], page_size: int) -> int:
    return max(1, math.ceil(len(records) / page_size))


def clamp_page(page: int, pages: int) -> int:
    return max(1, min(page, pages))


def paginate(records: Sequence[Any], page: int, page_size: int) -> List[Any]:
    """Return the slice for 1-based ``page``. No clamping is done here."""
    start = (page - 1) * page_size
    if start < 0:
        return []
    return list(records[start:start + page_size])


@dataclass(frozen=True)
class Page:
    rows: List[Any] = field(default_factory=list)
    page: int = 1
    total_pages: int = 1
    row_count: int = 0

    @property
    def info(self) -> str:
        return f"Page {self.page} of {self.total_pages} (Rows: {self.row_count})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": [dict(r) for r in self.rows],
            "page": self.page,
            "total_pages": self.total_pages,
            "row_count": self.row_count,
            "info": self.info,
        }


def build_page(records: Sequence[Any], page: int, page_size: int) -> Page:
    """Clamp ``page`` into range, then slice."""
    pages = total_pages(records, page_size)
    current = clamp_page(page, pages)
    return Page(
        rows=paginate(records, current, page_size),
        page=current,
        total_pages=pages,
        row_count=len(records),
    )
