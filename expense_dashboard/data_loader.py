"""Data loading helpers.

Turns raw CSV text for the four record kinds into cleaned, immutable
collections. Records stay string-keyed mappings of strings exactly as the
spreadsheet exports them; amounts and dates are normalised on demand with
:func:`to_number` and :func:`parse_date_ordinal`.

Spreadsheet exports are dirty, so both parsers are lenient at the boundary:
an unreadable amount counts as ``0`` and an unreadable date sorts as a
sentinel instant instead of raising.
"""

from __future__ import annotations

import csv
import datetime as dt
import io
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .config import KINDS
from .logging_setup import get_logger

logger = get_logger("expense_dashboard.data_loader")

Record = Mapping[str, str]

# Ordered fallback: the first non-empty column wins.
OPENING_BALANCE_FIELDS = ("OpeningBalance", "OB", "Balance")

EMPTY_DATE = dt.datetime(1900, 1, 1)
INVALID_DATE = dt.datetime.min

_CURRENCY_RE = re.compile(r"AED|INR|₹", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_DECIMAL_PREFIX_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y/%m/%d",
    "%d-%b-%Y",
    "%d-%B-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%m-%d-%Y",
)


def parse_amount(value: object) -> float:
    """Strictly parse an accounting-style amount.

    Handles currency markers, thousands separators, ``(150.00)`` and
    ``150.00-`` negatives. Raises ``ValueError`` when no number is found.
    """
    if value is None:
        raise ValueError("Invalid amount: None")
    v = str(value).strip()
    if not v:
        raise ValueError("Invalid amount: empty")

    v = _CURRENCY_RE.sub("", v)
    v = _WHITESPACE_RE.sub("", v)

    bracket_negative = False
    if v.startswith("(") and v.endswith(")"):
        bracket_negative = True
        v = v[1:-1]
    elif v.endswith("-"):
        v = "-" + v[:-1]

    v = v.replace(",", "")
    match = _DECIMAL_PREFIX_RE.match(v)
    if not match:
        raise ValueError(f"Invalid amount: {value}")
    number = float(match.group(0))
    if not math.isfinite(number):
        raise ValueError(f"Amount out of range: {value}")
    return -number if bracket_negative else number


def to_number(value: object) -> float:
    """Lenient amount parser: anything unreadable counts as ``0``."""
    if value is None or str(value).strip() == "":
        return 0.0
    try:
        return parse_amount(value)
    except ValueError:
        return 0.0


def _parse_year(text: str) -> int:
    year = int(text)
    if len(text) <= 2:
        year += 2000 if year < 50 else 1900
    return year


def _parse_month(text: str) -> int:
    if text.isdigit():
        return int(text)
    for fmt in ("%b", "%B"):
        try:
            return dt.datetime.strptime(text, fmt).month
        except ValueError:
            continue
    raise ValueError(f"Unrecognized month: {text}")


def _parse_date(value: str) -> dt.datetime:
    value = value.split(",")[0].strip()
    parts = value.split("/")
    if len(parts) == 3:
        day, month, year = (p.strip() for p in parts)
        return dt.datetime(_parse_year(year), _parse_month(month), int(day))
    for fmt in _DATE_FORMATS:
        try:
            return dt.datetime.strptime(value, fmt)
        except ValueError:
            continue
    parsed = dt.datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        # sort keys must all be naive; compare offsets as UTC instants
        parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date_ordinal(value: Optional[str]) -> dt.datetime:
    """Return a comparable instant for a sheet date such as ``05/Jan/2024``.

    Empty input gives ``EMPTY_DATE``; unreadable input gives ``INVALID_DATE``,
    so such rows collect at the old end of date-sorted views.
    """
    if not value or not str(value).strip():
        return EMPTY_DATE
    try:
        return _parse_date(str(value))
    except (ValueError, OverflowError):
        return INVALID_DATE


def sanitize(rows: Iterable[Mapping[Optional[str], object]]) -> List[Dict[str, str]]:
    """Trim field names and values, dropping rows with no content at all."""
    cleaned: List[Dict[str, str]] = []
    for row in rows:
        out: Dict[str, str] = {}
        for key, value in row.items():
            # csv.DictReader puts surplus columns under a None key
            if key is None:
                continue
            out[str(key).strip()] = "" if value is None else str(value).strip()
        if any(v != "" for v in out.values()):
            cleaned.append(out)
    return cleaned


def parse_csv_text(text: str) -> List[Dict[str, Optional[str]]]:
    """Parse CSV text with a header row into a list of dict records."""
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.DictReader(io.StringIO(text, newline=""))
    return list(reader)


def opening_balance_text(row: Record) -> str:
    for name in OPENING_BALANCE_FIELDS:
        value = (row.get(name) or "").strip()
        if value:
            return value
    return ""


def _with_opening_balance(row: Dict[str, str]) -> Dict[str, str]:
    out = dict(row)
    out["OpeningBalance"] = opening_balance_text(row)
    return out


@dataclass(frozen=True)
class Dataset:
    region: str
    expenses: Tuple[Dict[str, str], ...] = ()
    receipts: Tuple[Dict[str, str], ...] = ()
    contras: Tuple[Dict[str, str], ...] = ()
    openings: Tuple[Dict[str, str], ...] = ()

    @staticmethod
    def from_rows(
        region: str,
        expenses: Iterable[Mapping] = (),
        receipts: Iterable[Mapping] = (),
        contras: Iterable[Mapping] = (),
        openings: Iterable[Mapping] = (),
    ) -> "Dataset":
        return Dataset(
            region=region,
            expenses=tuple(sanitize(expenses)),
            receipts=tuple(sanitize(receipts)),
            contras=tuple(sanitize(contras)),
            openings=tuple(_with_opening_balance(r) for r in sanitize(openings)),
        )


def load_dataset(source, region: str) -> Dataset:
    """Fetch all four record kinds for ``region`` and build a :class:`Dataset`.

    ``source`` is anything with a ``fetch(region, kind) -> str`` method. The
    fetches run strictly one after another; the first failure propagates and
    nothing is returned, so callers never see a half-loaded dataset.
    """
    texts: Dict[str, str] = {}
    for kind in KINDS:
        texts[kind] = source.fetch(region, kind)

    dataset = Dataset.from_rows(
        region,
        expenses=parse_csv_text(texts["expense"]),
        receipts=parse_csv_text(texts["receipts"]),
        contras=parse_csv_text(texts["contra"]),
        openings=parse_csv_text(texts["ob"]),
    )
    logger.info(
        "Loaded %s: %d expenses, %d receipts, %d contras, %d opening balances",
        region,
        len(dataset.expenses),
        len(dataset.receipts),
        len(dataset.contras),
        len(dataset.openings),
    )
    return dataset
