import pytest
import requests

from expense_dashboard.sources import (
    FetchFailed,
    LocalSource,
    ProxySource,
    SourceUnavailable,
    UpstreamSource,
    env_key,
)
from tests.helpers.sources import FakeResponse, FakeSession


def test_env_key_format():
    assert env_key("india", "receipts") == "INDIA_RECEIPTS_CSV"
    assert env_key(" uae ", "ob") == "UAE_OB_CSV"


def test_upstream_fetch_uses_environment_url():
    session = FakeSession({"https://sheets.example/exp.csv": FakeResponse("Date\n01/Jan/2024\n")})
    source = UpstreamSource(environ={"INDIA_EXPENSE_CSV": "https://sheets.example/exp.csv"}, session=session, timeout=5)
    assert source.fetch("india", "expense") == "Date\n01/Jan/2024\n"
    assert session.requested == [("https://sheets.example/exp.csv", 5)]


def test_upstream_missing_url_is_unavailable():
    source = UpstreamSource(environ={}, session=FakeSession({}))
    with pytest.raises(SourceUnavailable):
        source.fetch("india", "contra")


def test_upstream_unknown_kind_is_unavailable():
    source = UpstreamSource(environ={"INDIA_LEDGER_CSV": "https://x"}, session=FakeSession({}))
    with pytest.raises(SourceUnavailable):
        source.fetch("india", "ledger")


@pytest.mark.parametrize(
    "outcome",
    [FakeResponse(status_code=500), requests.ConnectionError("offline")],
)
def test_upstream_failures_become_fetch_failed(outcome):
    session = FakeSession({"https://x/ob.csv": outcome})
    source = UpstreamSource(environ={"UAE_OB_CSV": "https://x/ob.csv"}, session=session)
    with pytest.raises(FetchFailed):
        source.fetch("uae", "ob")


def test_proxy_source_maps_statuses():
    session = FakeSession(
        {
            "http://dash/api/csv/india/expense": FakeResponse("Date\n"),
            "http://dash/api/csv/india/receipts": FakeResponse("oops", status_code=500),
            "http://dash/api/csv/india/contra": requests.Timeout("slow"),
        }
    )
    source = ProxySource("http://dash/", session=session)
    assert source.fetch("INDIA", "expense") == "Date\n"
    with pytest.raises(FetchFailed):
        source.fetch("india", "receipts")
    with pytest.raises(FetchFailed):
        source.fetch("india", "contra")
    with pytest.raises(SourceUnavailable):
        source.fetch("india", "ob")


def test_local_source(sample_dir, tmp_path):
    source = LocalSource(sample_dir)
    assert source.fetch("india", "ob").startswith("Mode,OB")
    with pytest.raises(SourceUnavailable):
        LocalSource(tmp_path).fetch("india", "ob")
