import csv
import io
import json

import pytest

from expense_dashboard.config import DEFAULT_DATASETS
from expense_dashboard.data_loader import Dataset
from expense_dashboard.reports import (
    build_summary,
    build_transaction_view,
    export_summary_csv,
    export_summary_json,
    format_amount,
    format_money,
    format_text_report,
)
from expense_dashboard.state import DashboardState

INDIA = DEFAULT_DATASETS["india"]


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0.00"),
        (None, "0.00"),
        (float("nan"), "0.00"),
        (float("inf"), "0.00"),
        (float("-inf"), "0.00"),
        (5, "5.00"),
        (999.999, "1,000.00"),
        (1234567.891, "12,34,567.89"),
        (-2350.5, "-2,350.50"),
        (100000, "1,00,000.00"),
    ],
)
def test_format_amount_uses_indian_grouping(value, expected):
    assert format_amount(value) == expected


def test_format_money_prefixes_symbol():
    assert format_money(1200, "₹") == "₹ 1,200.00"
    assert format_money(45, "AED") == "AED 45.00"


def test_build_summary_ignores_overflowing_amounts():
    data = Dataset.from_rows(
        "india",
        expenses=[{"Date": "01/Jan/2024", "Month": "2024-01", "Mode": "Cash", "Amount": "1e999"}],
    )
    summary = build_summary(DashboardState(region="india", dataset=data), INDIA, page_size=25)
    assert summary["totals"]["expense"] == 0
    assert summary["tables"]["expense"]["rows"][0]["amount_display"] == "₹ 0.00"
    json.dumps(summary, allow_nan=False)


def test_build_summary_view_model(sample_dataset):
    state = DashboardState(region="india", dataset=sample_dataset)
    summary = build_summary(state, INDIA, page_size=25)

    assert summary["dataset"]["subtitle"] == "India Expenses (Currency: ₹)"
    assert summary["totals"] == {"expense": 2350.5, "receipts": 50125.75, "net": 47775.25, "contra": 5000.0}
    assert summary["totals_display"]["net"] == "₹ 47,775.25"
    assert [b["mode"] for b in summary["balances"]] == ["Bank", "Cash"]
    assert summary["balances"][1]["opening_display"] == "OB: ₹ 1,000.00"
    assert summary["charts"]["period_trend"]["labels"] == ["2024-01", "2024-02"]
    assert summary["charts"]["receipt_vs_expense"]["values"] == [2350.5, 50125.75]

    expense_table = summary["tables"]["expense"]
    assert expense_table["row_count"] == 4
    assert expense_table["info"] == "Page 1 of 1 (Rows: 4)"
    assert expense_table["rows"][0]["Item"] == "Fuel"
    refunds = [r["Item"] for r in expense_table["rows"] if r["is_refund"]]
    assert refunds == ["Shoe return"]


def test_build_summary_respects_filters_but_not_for_trend(sample_dataset):
    state = DashboardState(region="india", dataset=sample_dataset).with_filters(period="2024-02")
    summary = build_summary(state, INDIA, page_size=25)

    assert summary["totals"]["expense"] == 600
    assert summary["totals"]["receipts"] == 125.75
    assert summary["charts"]["mode_totals"]["labels"] == ["Cash"]
    assert summary["charts"]["period_trend"]["values"] == [1750.5, 600.0]
    # balances always reflect the full dataset
    assert {b["mode"]: b["balance"] for b in summary["balances"]} == {"Bank": 69575.25, "Cash": 4200.0}


def test_build_summary_clamps_pages(sample_dataset):
    state = DashboardState(region="india", dataset=sample_dataset).with_page("expense", 9)
    table = build_summary(state, INDIA, page_size=3)["tables"]["expense"]
    assert table["page"] == 2
    assert table["total_pages"] == 2
    assert len(table["rows"]) == 1


def test_transaction_view(sample_dataset):
    view = build_transaction_view(sample_dataset, INDIA, page_size=25, type_filter="CONTRA_IN")
    assert view["row_count"] == 1
    assert view["rows"][0]["Mode"] == "Cash"
    assert view["rows"][0]["amount_display"] == "₹ 5,000.00"
    assert view["info"] == "Page 1 of 1"
    assert view["row_count_label"] == "Rows: 1"

    everything = build_transaction_view(sample_dataset, INDIA, page_size=3, sort="amount_desc", page=1)
    assert everything["row_count"] == 8
    assert everything["total_pages"] == 3
    assert [r["Amount"] for r in everything["rows"]] == [50000.0, 5000.0, 5000.0]


def test_text_report_and_exports(sample_dataset):
    state = DashboardState(region="india", dataset=sample_dataset).with_filters(mode="Cash")
    summary = build_summary(state, INDIA, page_size=25)

    text = format_text_report(summary)
    assert "=== India Expenses (Currency: ₹) ===" in text
    assert "-- Balance by Mode --" in text

    buf = io.StringIO()
    export_summary_csv(summary, buf)
    rows = list(csv.reader(io.StringIO(buf.getvalue())))
    assert rows[0] == ["Section", "Item", "Metric", "Value"]
    assert ["Totals", "", "Expense", "1800.00"] in rows
    assert ["Balances", "Cash", "Balance", "4200.00"] in rows
    assert ["Metadata", "Filter", "Mode", "Cash"] in rows

    out = io.StringIO()
    export_summary_json(summary, out)
    assert json.loads(out.getvalue())["filters"]["mode"] == "Cash"
