"""Dashboard state and reload control.

:class:`DashboardState` is an immutable snapshot of everything a view needs:
the loaded dataset, the active filters and each table's sort key and page.
Every user action produces a new snapshot. :class:`Dashboard` owns the
current snapshot and swaps it only after a reload fully succeeds.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from .config import AppConfig
from .data_loader import Dataset, load_dataset
from .logging_setup import get_logger
from .sources import SourceError
from .views import DEFAULT_SORT, SORT_KEYS, FilterState

logger = get_logger("expense_dashboard.state")

TABLE_VIEWS = ("expense", "receipt", "contra")


def _first_pages() -> Dict[str, int]:
    return {view: 1 for view in TABLE_VIEWS}


def _default_sorts() -> Dict[str, str]:
    return {view: DEFAULT_SORT for view in TABLE_VIEWS}


def _check_view(view: str) -> str:
    if view not in TABLE_VIEWS:
        raise ValueError(f"Unknown view: {view!r}")
    return view


@dataclass(frozen=True)
class DashboardState:
    region: str
    dataset: Dataset
    filters: FilterState = field(default_factory=FilterState)
    sorts: Dict[str, str] = field(default_factory=_default_sorts)
    pages: Dict[str, int] = field(default_factory=_first_pages)
    generation: int = 0

    def sort_for(self, view: str) -> str:
        return self.sorts.get(_check_view(view), DEFAULT_SORT)

    def page_for(self, view: str) -> int:
        return self.pages.get(_check_view(view), 1)

    def with_filters(self, **changes: str) -> "DashboardState":
        """New filters invalidate every table, so all pages restart at 1."""
        return replace(self, filters=self.filters.update(**changes), pages=_first_pages())

    def with_sort(self, view: str, key: str) -> "DashboardState":
        if key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {key!r}")
        sorts = dict(self.sorts)
        sorts[_check_view(view)] = key
        pages = dict(self.pages)
        pages[view] = 1
        return replace(self, sorts=sorts, pages=pages)

    def with_page(self, view: str, page: int) -> "DashboardState":
        # Out-of-range pages are clamped when the view is built.
        pages = dict(self.pages)
        pages[_check_view(view)] = int(page)
        return replace(self, pages=pages)

    def next_page(self, view: str) -> "DashboardState":
        return self.with_page(view, self.page_for(view) + 1)

    def prev_page(self, view: str) -> "DashboardState":
        return self.with_page(view, self.page_for(view) - 1)

    def with_dataset(self, dataset: Dataset, generation: int, reset_filters: bool = False) -> "DashboardState":
        return replace(
            self,
            region=dataset.region,
            dataset=dataset,
            filters=FilterState() if reset_filters else self.filters,
            sorts=_default_sorts() if reset_filters else self.sorts,
            pages=_first_pages(),
            generation=generation,
        )


class Dashboard:
    """Holds the single active :class:`DashboardState`.

    Reloads are generation-stamped: a reload that finishes after a newer one
    was started is discarded, so a slow fetch for a previous account cannot
    overwrite the current selection.
    """

    def __init__(self, config: AppConfig, source) -> None:
        self.config = config
        self.source = source
        region = config.dataset(config.default_region).key
        self.state = DashboardState(region=region, dataset=Dataset(region=region))
        self.loaded = False
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def begin_reload(self) -> int:
        self._generation += 1
        return self._generation

    def finish_reload(self, generation: int, dataset: Dataset) -> bool:
        """Install ``dataset`` unless a newer reload has started meanwhile."""
        if generation != self._generation:
            logger.info(
                "Discarding stale reload %d for %s (latest is %d)",
                generation,
                dataset.region,
                self._generation,
            )
            return False
        switching = dataset.region != self.state.region
        self.state = self.state.with_dataset(dataset, generation, reset_filters=switching)
        self.loaded = True
        return True

    def reload(self, region: Optional[str] = None) -> DashboardState:
        """Fetch all four collections for ``region`` and install them.

        On failure the error propagates and the previous state stays in place.
        """
        key = self.config.dataset(region or self.state.region).key
        generation = self.begin_reload()
        logger.info("Reload %d started for %s", generation, key)
        try:
            dataset = load_dataset(self.source, key)
        except SourceError as exc:
            logger.error("Reload %d for %s failed: %s", generation, key, exc)
            raise
        self.finish_reload(generation, dataset)
        return self.state

    def ensure_loaded(self) -> DashboardState:
        if not self.loaded:
            self.reload()
        return self.state

    def update(self, transition) -> DashboardState:
        """Replace the state with ``transition(state)``."""
        self.state = transition(self.state)
        return self.state
