"""Command-line interface for the expense dashboard.

Usage:
  python -m expense_dashboard.cli --region india --data-dir sample_data

Without ``--data-dir`` or ``--proxy`` the upstream CSV URLs are read from the
environment (``INDIA_EXPENSE_CSV`` and friends, optionally from ``.env``).
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from .config import AppConfig, load_env
from .logging_setup import configure_logging
from .reports import build_summary, export_summary_csv, export_summary_json, format_text_report
from .sources import LocalSource, ProxySource, SourceError, UpstreamSource
from .state import Dashboard
from .views import SORT_KEYS


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Expense Dashboard")
    p.add_argument("--region", "-r", help="Dataset region key (e.g. india, uae)")
    p.add_argument("--config", "-c", help="Path to JSON config with datasets/page size")
    p.add_argument("--env-file", help="Path to a .env file with upstream CSV URLs")
    src = p.add_mutually_exclusive_group()
    src.add_argument("--data-dir", help="Read <dir>/<region>/<kind>.csv instead of fetching")
    src.add_argument("--proxy", help="Base URL of a running dashboard server")
    p.add_argument("--month", default="ALL", help="Only include this month label")
    p.add_argument("--mode", default="ALL", help="Only include this payment mode")
    p.add_argument("--group", default="ALL", help="Only include this expense group")
    p.add_argument("--search", default="", help="Free-text filter")
    p.add_argument("--sort", choices=SORT_KEYS, default="date_desc", help="Table sort order")
    p.add_argument("--json", dest="json_out", help="Write dashboard JSON to path ('-' for stdout)")
    p.add_argument("--csv", dest="csv_out", help="Write summary CSV to path")
    p.add_argument("--log-level", help="Logging level (default INFO)")
    return p.parse_args(argv)


def _make_source(args: argparse.Namespace, cfg: AppConfig):
    if args.data_dir:
        return LocalSource(args.data_dir)
    if args.proxy:
        return ProxySource(args.proxy, timeout=cfg.request_timeout)
    return UpstreamSource(timeout=cfg.request_timeout)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    load_env(args.env_file)

    cfg = AppConfig.load(args.config)
    dashboard = Dashboard(cfg, _make_source(args, cfg))
    try:
        state = dashboard.reload(args.region or cfg.default_region)
    except KeyError as exc:
        print(f"Error: {exc.args[0]}", file=sys.stderr)
        return 2
    except SourceError as exc:
        print(f"Error loading CSV data: {exc}", file=sys.stderr)
        return 1

    state = state.with_filters(period=args.month, mode=args.mode, category=args.group, query=args.search)
    for view in ("expense", "receipt", "contra"):
        state = state.with_sort(view, args.sort)

    summary = build_summary(state, cfg.dataset(state.region), cfg.page_size)
    if args.json_out == "-":
        export_summary_json(summary, sys.stdout)
    else:
        print(format_text_report(summary))
        if args.json_out:
            export_summary_json(summary, args.json_out)
            print(f"\nSaved JSON summary to: {args.json_out}")

    if args.csv_out:
        export_summary_csv(summary, args.csv_out)
        print(f"\nSaved CSV summary to: {args.csv_out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
