"""Balance reconciliation and aggregate calculations.

Functions that compute per-mode balances, grouped totals for charts and the
flattened transaction list from the loaded record collections. All sums use
signed amounts as parsed, so a bracketed refund reduces a total instead of
being dropped.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from .data_loader import opening_balance_text, to_number


@dataclass(frozen=True)
class ModeBalance:
    mode: str
    balance: float
    opening_balance: float = 0.0


def _trimmed(row: Mapping[str, Any], name: str) -> str:
    return str(row.get(name) or "").strip()


def reconcile(
    expenses: Iterable[Mapping[str, str]],
    receipts: Iterable[Mapping[str, str]],
    contras: Iterable[Mapping[str, str]],
    openings: Iterable[Mapping[str, str]],
) -> Dict[str, ModeBalance]:
    """Compute the running balance of every payment mode.

    Opening balances seed the result, receipts add, expenses subtract and each
    contra transfer moves its amount from ``From`` to ``To``. Every mode named
    anywhere appears in the result (ordered by name), even without an opening
    balance.
    """
    balances: Dict[str, float] = defaultdict(float)
    opening_map: Dict[str, float] = {}

    for row in openings:
        mode = _trimmed(row, "Mode")
        if not mode:
            continue
        value = to_number(opening_balance_text(row))
        opening_map[mode] = value
        balances[mode] = value

    for row in receipts:
        mode = _trimmed(row, "Mode")
        if mode:
            balances[mode] += to_number(row.get("Amount"))

    for row in expenses:
        mode = _trimmed(row, "Mode")
        if mode:
            balances[mode] -= to_number(row.get("Amount"))

    for row in contras:
        source = _trimmed(row, "From")
        target = _trimmed(row, "To")
        amount = to_number(row.get("Amount"))
        if source:
            balances[source] -= amount
        if target:
            balances[target] += amount

    return {
        mode: ModeBalance(mode=mode, balance=balances[mode], opening_balance=opening_map.get(mode, 0.0))
        for mode in sorted(balances)
    }


def _group_totals(rows: Iterable[Mapping[str, str]], column: str) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for row in rows:
        key = _trimmed(row, column)
        if not key:
            continue
        totals[key] = totals.get(key, 0.0) + to_number(row.get("Amount"))
    return totals


def period_totals(expenses: Iterable[Mapping[str, str]]) -> Dict[str, float]:
    """Net expense per month label, sorted by label. Pass the unfiltered rows."""
    totals = _group_totals(expenses, "Month")
    return {period: totals[period] for period in sorted(totals)}


def mode_totals(expenses: Iterable[Mapping[str, str]]) -> Dict[str, float]:
    return _group_totals(expenses, "Mode")


def category_totals(expenses: Iterable[Mapping[str, str]]) -> Dict[str, float]:
    return _group_totals(expenses, "Group")


def total_amount(rows: Iterable[Mapping[str, str]]) -> float:
    return sum(to_number(r.get("Amount")) for r in rows)


def flow_totals(
    expenses: Iterable[Mapping[str, str]],
    receipts: Iterable[Mapping[str, str]],
) -> Tuple[float, float]:
    """Return ``(total expense, total receipts)``."""
    return total_amount(expenses), total_amount(receipts)


def summary_totals(
    expenses: Iterable[Mapping[str, str]],
    receipts: Iterable[Mapping[str, str]],
    contras: Iterable[Mapping[str, str]],
) -> Dict[str, float]:
    expense, receipt = flow_totals(expenses, receipts)
    return {
        "expense": expense,
        "receipts": receipt,
        "net": receipt - expense,
        "contra": total_amount(contras),
    }


def _unified_row(row: Mapping[str, str], txn_type: str, **overrides: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "Date": row.get("Date") or "",
        "Month": row.get("Month") or "",
        "Type": txn_type,
        "Mode": "",
        "From": "",
        "To": "",
        "Item": "",
        "Group": "",
        "SubGroup": "",
        "Narration": "",
        "Amount": to_number(row.get("Amount")),
    }
    out.update(overrides)
    return out


def build_unified_transactions(
    expenses: Iterable[Mapping[str, str]],
    receipts: Iterable[Mapping[str, str]],
    contras: Iterable[Mapping[str, str]],
) -> List[Dict[str, Any]]:
    """Flatten the record kinds into one type-tagged list.

    Order is expenses, receipts, then contras; every contra yields a
    ``CONTRA_OUT`` row for its source immediately followed by a ``CONTRA_IN``
    row for its destination.
    """
    txns: List[Dict[str, Any]] = []
    for r in expenses:
        txns.append(
            _unified_row(
                r,
                "EXPENSE",
                Mode=r.get("Mode") or "",
                Item=r.get("Item") or "",
                Group=r.get("Group") or "",
                SubGroup=r.get("SubGroup") or "",
                Narration=r.get("Narration") or "",
            )
        )
    for r in receipts:
        txns.append(_unified_row(r, "RECEIPT", Mode=r.get("Mode") or "", From=r.get("From") or ""))
    for r in contras:
        source = r.get("From") or ""
        target = r.get("To") or ""
        txns.append(_unified_row(r, "CONTRA_OUT", Mode=source, From=source, To=target))
        txns.append(_unified_row(r, "CONTRA_IN", Mode=target, From=source, To=target))
    return txns


def filter_options(
    expenses: Iterable[Mapping[str, str]],
    receipts: Iterable[Mapping[str, str]],
    contras: Iterable[Mapping[str, str]],
    openings: Iterable[Mapping[str, str]],
) -> Dict[str, List[str]]:
    """Distinct months, modes and groups available for the filter dropdowns."""
    months, modes, groups = set(), set(), set()
    for r in expenses:
        months.add(_trimmed(r, "Month"))
        modes.add(_trimmed(r, "Mode"))
        groups.add(_trimmed(r, "Group"))
    for r in receipts:
        months.add(_trimmed(r, "Month"))
        modes.add(_trimmed(r, "Mode"))
    for r in contras:
        months.add(_trimmed(r, "Month"))
        modes.add(_trimmed(r, "From"))
        modes.add(_trimmed(r, "To"))
    for r in openings:
        modes.add(_trimmed(r, "Mode"))
    return {
        "months": sorted(m for m in months if m),
        "modes": sorted(m for m in modes if m),
        "groups": sorted(g for g in groups if g),
    }
