"""Configuration utilities for the expense dashboard.

Provides the default dataset registry (one entry per region/account) and
helpers to load overrides such as page size or extra regions from a JSON file.
Upstream CSV URLs are never part of this config: they live in environment
variables (optionally read from a ``.env`` file) and are only resolved
server-side by :mod:`expense_dashboard.sources`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv


# Record kinds as they appear in the proxy route, in reload order.
KINDS = ("expense", "receipts", "contra", "ob")

DEFAULT_PAGE_SIZE = 25
DEFAULT_REGION = "india"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class DatasetConfig:
    key: str
    name: str
    currency: str
    endpoints: Dict[str, str] = field(default_factory=dict)

    @staticmethod
    def for_region(key: str, name: str, currency: str) -> "DatasetConfig":
        key = key.lower()
        return DatasetConfig(
            key=key,
            name=name,
            currency=currency,
            endpoints={kind: f"/api/csv/{key}/{kind}" for kind in KINDS},
        )

    @property
    def subtitle(self) -> str:
        return f"{self.name} (Currency: {self.currency})"


DEFAULT_DATASETS: Dict[str, DatasetConfig] = {
    "india": DatasetConfig.for_region("india", "India Expenses", "₹"),
    "uae": DatasetConfig.for_region("uae", "UAE Expenses", "AED"),
}


def load_env(path: Optional[str | Path] = None) -> bool:
    """Read ``KEY=value`` pairs from a ``.env`` file into ``os.environ``.

    Variables that are already set win over the file.
    """
    if path:
        return load_dotenv(Path(path), override=False)
    return load_dotenv(override=False)


@dataclass
class AppConfig:
    datasets: Dict[str, DatasetConfig]
    page_size: int = DEFAULT_PAGE_SIZE
    default_region: str = DEFAULT_REGION
    request_timeout: float = DEFAULT_TIMEOUT

    def dataset(self, region: str) -> DatasetConfig:
        """Return the registry entry for ``region`` (case-insensitive).

        Raises ``KeyError`` for regions that are not configured.
        """
        key = (region or "").strip().lower()
        if key not in self.datasets:
            raise KeyError(f"Unknown dataset region: {region!r}")
        return self.datasets[key]

    @staticmethod
    def load(config_path: Optional[str | Path] = None) -> "AppConfig":
        """Load config from JSON if provided, else use defaults.

        JSON format:
        {
          "page_size": 25,
          "default_region": "india",
          "request_timeout": 30,
          "datasets": {"uk": {"name": "UK Expenses", "currency": "GBP"}}
        }
        """

        datasets = dict(DEFAULT_DATASETS)
        page_size = DEFAULT_PAGE_SIZE
        default_region = DEFAULT_REGION
        timeout = DEFAULT_TIMEOUT

        if config_path:
            p = Path(config_path)
            if p.exists():
                with p.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    if isinstance(raw.get("datasets"), dict):
                        for key, entry in raw["datasets"].items():
                            if not isinstance(entry, dict):
                                continue
                            base = datasets.get(str(key).lower())
                            name = str(entry.get("name") or (base.name if base else key))
                            currency = str(entry.get("currency") or (base.currency if base else ""))
                            datasets[str(key).lower()] = DatasetConfig.for_region(str(key), name, currency)
                    if raw.get("page_size"):
                        page_size = max(1, int(raw["page_size"]))
                    if raw.get("default_region"):
                        default_region = str(raw["default_region"]).lower()
                    if raw.get("request_timeout"):
                        timeout = float(raw["request_timeout"])
        return AppConfig(
            datasets=datasets,
            page_size=page_size,
            default_region=default_region,
            request_timeout=timeout,
        )
