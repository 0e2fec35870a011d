"""CSV data sources.

Every source exposes ``fetch(region, kind) -> str`` returning CSV text with a
header row. Three flavours exist:

- :class:`UpstreamSource` reads the real URL from an environment variable
  named ``{REGION}_{KIND}_CSV`` and downloads it. Only the server uses it.
- :class:`ProxySource` talks to the dashboard's own ``/api/csv`` route, so a
  client never sees the upstream URL.
- :class:`LocalSource` reads ``<root>/<region>/<kind>.csv`` from disk.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

import requests

from .config import DEFAULT_TIMEOUT, KINDS
from .logging_setup import get_logger

logger = get_logger("expense_dashboard.sources")


class SourceError(Exception):
    """Base class for data source failures."""


class SourceUnavailable(SourceError):
    """No source is configured for the requested region/kind."""


class FetchFailed(SourceError):
    """The source exists but the download failed."""


def _check_kind(kind: str) -> str:
    kind = (kind or "").strip().lower()
    if kind not in KINDS:
        raise SourceUnavailable(f"Unknown record kind: {kind!r}")
    return kind


def env_key(region: str, kind: str) -> str:
    return f"{region.strip().upper()}_{kind.strip().upper()}_CSV"


class UpstreamSource:
    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.environ = environ if environ is not None else os.environ
        self.session = session or requests.Session()
        self.timeout = timeout

    def url_for(self, region: str, kind: str) -> str:
        url = self.environ.get(env_key(region, _check_kind(kind)))
        if not url:
            raise SourceUnavailable(f"No CSV URL configured for {region}/{kind}")
        return url

    def fetch(self, region: str, kind: str) -> str:
        url = self.url_for(region, kind)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Upstream fetch failed for %s/%s: %s", region, kind, exc)
            raise FetchFailed(f"Error fetching CSV data for {region}/{kind}") from exc
        return response.text


class ProxySource:
    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, region: str, kind: str) -> str:
        url = f"{self.base_url}/api/csv/{region.lower()}/{_check_kind(kind)}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Proxy request failed for %s: %s", url, exc)
            raise FetchFailed(f"Error fetching CSV data for {region}/{kind}") from exc
        if response.status_code == 404:
            raise SourceUnavailable(f"No CSV source for {region}/{kind}")
        if not 200 <= response.status_code < 300:
            raise FetchFailed(f"Proxy returned HTTP {response.status_code} for {region}/{kind}")
        return response.text


class LocalSource:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def fetch(self, region: str, kind: str) -> str:
        path = self.root / region.lower() / f"{_check_kind(kind)}.csv"
        if not path.exists():
            raise SourceUnavailable(f"{path} not found")
        try:
            return path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise FetchFailed(f"Unable to read {path}") from exc
