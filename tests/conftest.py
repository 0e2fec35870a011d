"""Shared fixtures: the bundled sample CSVs and an in-memory source over them."""

from __future__ import annotations

from pathlib import Path

import pytest

from expense_dashboard.config import KINDS
from expense_dashboard.data_loader import Dataset, load_dataset
from expense_dashboard.sources import LocalSource
from tests.helpers.sources import FakeSource

SAMPLE_DIR = Path(__file__).resolve().parent.parent / "sample_data"


@pytest.fixture
def sample_dir() -> Path:
    return SAMPLE_DIR


@pytest.fixture
def sample_texts() -> dict:
    texts = {}
    for kind in KINDS:
        texts[("india", kind)] = (SAMPLE_DIR / "india" / f"{kind}.csv").read_text(encoding="utf-8")
    texts[("uae", "expense")] = "Date,Month,Item,SubGroup,Group,Mode,Amount,Narration\n01/Mar/2024,2024-03,Taxi,Transport,Travel,Card,AED 45.00,\n"
    texts[("uae", "receipts")] = "Date,Month,From,Mode,Amount\n"
    texts[("uae", "contra")] = "Date,Month,From,To,Amount\n"
    texts[("uae", "ob")] = "Mode,Balance\nCard,500\n"
    return texts


@pytest.fixture
def fake_source(sample_texts) -> FakeSource:
    return FakeSource(sample_texts)


@pytest.fixture
def sample_dataset(sample_dir) -> Dataset:
    return load_dataset(LocalSource(sample_dir), "india")
