import pytest

from expense_dashboard.config import AppConfig
from expense_dashboard.data_loader import Dataset
from expense_dashboard.sources import FetchFailed
from expense_dashboard.state import Dashboard, DashboardState
from expense_dashboard.views import ALL, FilterState
from tests.helpers.sources import FakeSource


def _state() -> DashboardState:
    return DashboardState(region="india", dataset=Dataset(region="india"))


def test_filter_change_resets_all_pages():
    state = _state().with_page("expense", 4).with_page("contra", 2)
    changed = state.with_filters(mode="Cash")
    assert changed.filters == FilterState(mode="Cash")
    assert changed.pages == {"expense": 1, "receipt": 1, "contra": 1}
    # the previous snapshot is untouched
    assert state.page_for("expense") == 4
    assert state.filters.mode == ALL


def test_sort_change_resets_only_that_page():
    state = _state().with_page("expense", 3).with_page("receipt", 2)
    changed = state.with_sort("expense", "amount_asc")
    assert changed.sort_for("expense") == "amount_asc"
    assert changed.page_for("expense") == 1
    assert changed.page_for("receipt") == 2


def test_invalid_transitions_raise():
    with pytest.raises(ValueError):
        _state().with_sort("expense", "bogus")
    with pytest.raises(ValueError):
        _state().with_page("ledger", 1)


def test_next_and_prev_page():
    state = _state().next_page("receipt").next_page("receipt").prev_page("receipt")
    assert state.page_for("receipt") == 2


def test_reload_installs_dataset(fake_source):
    dashboard = Dashboard(AppConfig.load(), fake_source)
    state = dashboard.reload("india")
    assert dashboard.loaded
    assert state.region == "india"
    assert len(state.dataset.expenses) == 4
    assert state.generation == dashboard.generation == 1


def test_failed_reload_keeps_previous_state(sample_texts):
    source = FakeSource(sample_texts)
    dashboard = Dashboard(AppConfig.load(), source)
    before = dashboard.reload("india")

    source.fail_on = "contra"
    with pytest.raises(FetchFailed):
        dashboard.reload("india")
    assert dashboard.state is before


def test_region_switch_resets_filters(fake_source):
    dashboard = Dashboard(AppConfig.load(), fake_source)
    dashboard.reload("india")
    dashboard.update(lambda s: s.with_filters(mode="Cash").with_sort("expense", "amount_asc"))

    dashboard.reload("india")
    assert dashboard.state.filters.mode == "Cash"

    state = dashboard.reload("UAE")
    assert state.region == "uae"
    assert state.filters == FilterState()
    assert state.sort_for("expense") == "date_desc"


def test_stale_reload_is_discarded(fake_source):
    dashboard = Dashboard(AppConfig.load(), fake_source)
    first = dashboard.begin_reload()
    second = dashboard.begin_reload()

    uae = Dataset.from_rows("uae", expenses=[{"Date": "01/Mar/2024", "Amount": "1"}])
    india = Dataset.from_rows("india")
    assert dashboard.finish_reload(second, uae)
    assert not dashboard.finish_reload(first, india)
    assert dashboard.state.region == "uae"
    assert dashboard.state.generation == second


def test_unknown_region_raises_key_error(fake_source):
    dashboard = Dashboard(AppConfig.load(), fake_source)
    with pytest.raises(KeyError):
        dashboard.reload("mars")
    assert fake_source.calls == []
