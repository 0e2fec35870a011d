"""Reporting utilities.

Builds the dashboard view-model (summary cards, balance cards, chart series
and paginated tables) as JSON-serializable dicts, and formats it as text or
CSV for the command line.
"""

from __future__ import annotations

import csv
import json
import math
from pathlib import Path
from typing import Any, Dict, IO, List, Mapping, Optional, Sequence

from . import analytics as an
from .config import DatasetConfig
from .data_loader import Dataset, to_number
from .state import TABLE_VIEWS, DashboardState
from .views import ALL, DEFAULT_SORT, build_page, filter_records, filter_transactions, sort_records


def _group_digits(digits: str) -> str:
    # en-IN grouping: last three digits, then pairs (12,34,567)
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs: List[str] = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_amount(value: Optional[float]) -> str:
    if not value or not math.isfinite(value):
        return "0.00"
    text = f"{abs(value):.2f}"
    whole, fraction = text.split(".")
    sign = "-" if value < 0 and text != "0.00" else ""
    return f"{sign}{_group_digits(whole)}.{fraction}"


def format_money(value: Optional[float], symbol: str) -> str:
    return f"{symbol} {format_amount(value)}"


def _table_rows(rows: Sequence[Mapping[str, str]], view: str, symbol: str) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for row in rows:
        amount = to_number(row.get("Amount"))
        item = dict(row)
        item["amount_value"] = round(amount, 2)
        item["amount_display"] = format_money(amount, symbol)
        if view == "expense":
            item["is_refund"] = amount < 0
        out.append(item)
    return out


def _series(totals: Mapping[str, float], label: str = "Expense (Net)") -> Dict[str, Any]:
    return {
        "label": label,
        "labels": list(totals.keys()),
        "values": [round(v, 2) for v in totals.values()],
    }


def build_summary(state: DashboardState, dataset_config: DatasetConfig, page_size: int) -> Dict[str, Any]:
    """Compute every derived view for ``state``.

    Summary cards, charts and tables all use the filtered collections; the
    balance cards and the period trend always span the whole dataset.
    """
    data = state.dataset
    symbol = dataset_config.currency
    filtered = {
        "expense": filter_records(data.expenses, "expense", state.filters),
        "receipt": filter_records(data.receipts, "receipt", state.filters),
        "contra": filter_records(data.contras, "contra", state.filters),
    }

    totals = an.summary_totals(filtered["expense"], filtered["receipt"], filtered["contra"])
    balances = an.reconcile(data.expenses, data.receipts, data.contras, data.openings)
    expense_total, receipt_total = an.flow_totals(filtered["expense"], filtered["receipt"])

    tables: Dict[str, Dict[str, Any]] = {}
    for view in TABLE_VIEWS:
        ordered = sort_records(filtered[view], state.sort_for(view))
        page = build_page(ordered, state.page_for(view), page_size)
        table = page.to_dict()
        table["rows"] = _table_rows(page.rows, view, symbol)
        table["sort"] = state.sort_for(view)
        tables[view] = table

    return {
        "region": state.region,
        "dataset": {
            "name": dataset_config.name,
            "currency": symbol,
            "subtitle": dataset_config.subtitle,
        },
        "filters": {
            "period": state.filters.period,
            "mode": state.filters.mode,
            "category": state.filters.category,
            "query": state.filters.query,
        },
        "options": an.filter_options(data.expenses, data.receipts, data.contras, data.openings),
        "totals": {key: round(value, 2) for key, value in totals.items()},
        "totals_display": {key: format_money(value, symbol) for key, value in totals.items()},
        "balances": [
            {
                "mode": b.mode,
                "balance": round(b.balance, 2),
                "opening_balance": round(b.opening_balance, 2),
                "balance_display": format_money(b.balance, symbol),
                "opening_display": f"OB: {format_money(b.opening_balance, symbol)}",
            }
            for b in balances.values()
        ],
        "charts": {
            "period_trend": _series(an.period_totals(data.expenses)),
            "mode_totals": _series(an.mode_totals(filtered["expense"])),
            "category_totals": _series(an.category_totals(filtered["expense"])),
            "receipt_vs_expense": {
                "labels": ["Expense (Net)", "Receipts"],
                "values": [round(expense_total, 2), round(receipt_total, 2)],
            },
        },
        "tables": tables,
        "generation": state.generation,
    }


def build_transaction_view(
    dataset: Dataset,
    dataset_config: DatasetConfig,
    page_size: int,
    type_filter: str = ALL,
    query: str = "",
    sort: str = DEFAULT_SORT,
    page: int = 1,
    title: str = "All Transactions",
) -> Dict[str, Any]:
    """View-model for the cross-type transaction browser."""
    unified = an.build_unified_transactions(dataset.expenses, dataset.receipts, dataset.contras)
    rows = sort_records(filter_transactions(unified, type_filter, query), sort)
    current = build_page(rows, page, page_size)
    result = current.to_dict()
    for row in result["rows"]:
        row["amount_display"] = format_money(row["Amount"], dataset_config.currency)
    result.update(
        {
            "title": title,
            "type": type_filter or ALL,
            "query": query or "",
            "sort": sort,
            "info": f"Page {current.page} of {current.total_pages}",
            "row_count_label": f"Rows: {current.row_count}",
        }
    )
    return result


def format_text_report(summary: Dict) -> str:
    lines: List[str] = []
    symbol = summary["dataset"]["currency"]
    t = summary["totals_display"]
    lines.append(f"=== {summary['dataset']['subtitle']} ===")
    lines.append(f"Expense:  {t['expense']}")
    lines.append(f"Receipts: {t['receipts']}")
    lines.append(f"Net:      {t['net']}")
    lines.append(f"Contra:   {t['contra']}")
    lines.append("")

    lines.append("-- Balance by Mode --")
    for b in summary["balances"]:
        lines.append(f"{b['mode'][:20]:20} {b['balance_display']:>20}  ({b['opening_display']})")
    lines.append("")

    charts = summary["charts"]
    for key, title in (
        ("period_trend", "Expense by Month"),
        ("mode_totals", "Expense by Mode"),
        ("category_totals", "Expense by Group"),
    ):
        lines.append(f"-- {title} --")
        series = charts[key]
        for label, value in zip(series["labels"], series["values"]):
            lines.append(f"{label[:20]:20} {format_money(value, symbol):>20}")
        lines.append("")

    for view, title in (("expense", "Expenses"), ("receipt", "Receipts"), ("contra", "Contra")):
        table = summary["tables"][view]
        lines.append(f"-- {title}: {table['info']} --")
    return "\n".join(lines)


def save_json(summary: Dict, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)


def _ensure_text_writer(target: str | Path | IO[str]):
    if hasattr(target, "write"):
        return target, None
    path = Path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = path.open("w", newline="", encoding="utf-8")
    return handle, handle


def export_summary_csv(summary: Dict, path: str | Path | IO[str]) -> None:
    def fmt_amount(value) -> str:
        if value is None:
            return ""
        return f"{float(value):.2f}"

    rows: List[List[str]] = [["Section", "Item", "Metric", "Value"]]

    totals = summary.get("totals") or {}
    for key, label in (("expense", "Expense"), ("receipts", "Receipts"), ("net", "Net"), ("contra", "Contra")):
        if key in totals:
            rows.append(["Totals", "", label, fmt_amount(totals.get(key))])

    for b in summary.get("balances") or []:
        rows.append(["Balances", b["mode"], "Opening Balance", fmt_amount(b["opening_balance"])])
        rows.append(["Balances", b["mode"], "Balance", fmt_amount(b["balance"])])

    charts = summary.get("charts") or {}
    for key, section in (
        ("period_trend", "Monthly Expense"),
        ("mode_totals", "Expense by Mode"),
        ("category_totals", "Expense by Group"),
    ):
        series = charts.get(key) or {}
        for label, value in zip(series.get("labels", []), series.get("values", [])):
            rows.append([section, label, "Amount", fmt_amount(value)])

    filters = summary.get("filters") or {}
    for key in ("period", "mode", "category", "query"):
        if filters.get(key) not in (None, "", ALL):
            rows.append(["Metadata", "Filter", key.title(), str(filters[key])])

    writer_target, to_close = _ensure_text_writer(path)
    try:
        writer = csv.writer(writer_target, lineterminator="\n")
        writer.writerows(rows)
    finally:
        if to_close is not None:
            to_close.close()


def export_summary_json(summary: Dict, path: str | Path | IO[str]) -> None:
    if hasattr(path, "write"):
        json.dump(summary, path, indent=2, ensure_ascii=False)
        path.write("\n")
        return
    save_json(summary, path)
