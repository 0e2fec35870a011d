"""Flask web interface for the expense dashboard.

Serves the CSV proxy (upstream URLs stay on the server) and a JSON API that
exposes the dashboard view-models to the front end.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, redirect, request, url_for

from .config import KINDS, AppConfig, load_env
from .logging_setup import configure_logging, get_logger
from .reports import build_summary, build_transaction_view
from .sources import FetchFailed, SourceError, SourceUnavailable, UpstreamSource
from .state import Dashboard, DashboardState
from .views import ALL, DEFAULT_SORT, TRANSACTION_TYPES

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent

logger = get_logger("expense_dashboard.webapp")

_FILTER_FIELDS = ("period", "mode", "category", "query")
LOAD_ERROR = "Error loading CSV data. Check internet or sheet publish settings."


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _apply_state_changes(state: DashboardState, payload: Dict[str, Any]) -> DashboardState:
    """Return ``state`` with the filter, sort and page changes of a JSON payload.

    {"filters": {"period": "Jan-2024"}, "sort": {"view": "expense", "key": "amount_desc"},
     "page": {"view": "expense", "page": 2}} -- any part may be omitted.
    ``page`` may also be ``{"view": "expense", "step": "next"}``.
    Raises ``ValueError`` on the first invalid part.
    """
    filters = payload.get("filters")
    if isinstance(filters, dict):
        allowed = {k: "" if v is None else str(v) for k, v in filters.items() if k in _FILTER_FIELDS}
        state = state.with_filters(**allowed)

    sort = payload.get("sort")
    if isinstance(sort, dict):
        state = state.with_sort(str(sort.get("view")), str(sort.get("key")))

    page = payload.get("page")
    if isinstance(page, dict):
        view = str(page.get("view"))
        step = page.get("step")
        if step == "next":
            state = state.next_page(view)
        elif step == "prev":
            state = state.prev_page(view)
        else:
            try:
                number = int(page.get("page", 1))
            except (TypeError, ValueError) as exc:
                raise ValueError("Page must be a number.") from exc
            state = state.with_page(view, number)
    return state


def create_app(
    config_path: Optional[str] = None,
    source=None,
    upstream: Optional[UpstreamSource] = None,
) -> Flask:
    """Build the Flask app.

    ``upstream`` backs the CSV proxy route; ``source`` feeds the dashboard and
    defaults to the same upstream source, so the server never calls itself.
    """
    load_env()
    configure_logging()

    cfg = AppConfig.load(_resolve_config_path(config_path))
    upstream = upstream or UpstreamSource(timeout=cfg.request_timeout)
    dashboard = Dashboard(cfg, source or upstream)

    app = Flask(__name__)
    app.config["DASHBOARD_CONFIG"] = cfg
    app.extensions["expense_dashboard"] = dashboard

    def _summary():
        state = dashboard.state
        return build_summary(state, cfg.dataset(state.region), cfg.page_size)

    @app.route("/")
    def index():
        return redirect(url_for("api_dashboard"))

    @app.route("/api/csv/<region>/<kind>")
    def csv_proxy(region: str, kind: str):
        try:
            text = upstream.fetch(region, kind)
        except SourceUnavailable:
            return Response("CSV URL not found in environment variables", status=404, mimetype="text/plain")
        except FetchFailed:
            logger.exception("CSV proxy failed for %s/%s", region, kind)
            return Response("Error fetching CSV data", status=500, mimetype="text/plain")
        return Response(text, mimetype="text/csv")

    @app.route("/api/datasets")
    def api_datasets():
        return jsonify(
            {
                "default_region": cfg.default_region,
                "kinds": list(KINDS),
                "datasets": [
                    {
                        "key": d.key,
                        "name": d.name,
                        "currency": d.currency,
                        "endpoints": d.endpoints,
                    }
                    for d in cfg.datasets.values()
                ],
            }
        )

    @app.route("/api/reload", methods=["POST"])
    def api_reload():
        payload = request.get_json(silent=True) or {}
        region = payload.get("region") or request.form.get("region") or request.args.get("region")
        try:
            dashboard.reload(region)
        except KeyError:
            return _error(f"Unknown dataset region: {region}", 404)
        except SourceError:
            return _error(LOAD_ERROR, 502)
        return jsonify(_summary())

    @app.route("/api/dashboard")
    def api_dashboard():
        try:
            dashboard.ensure_loaded()
        except SourceError:
            return _error(LOAD_ERROR, 502)
        return jsonify(_summary())

    @app.route("/api/state", methods=["POST"])
    def api_state():
        payload = request.get_json(silent=True) or {}
        try:
            dashboard.ensure_loaded()
        except SourceError:
            return _error(LOAD_ERROR, 502)
        try:
            dashboard.update(lambda s: _apply_state_changes(s, payload))
        except ValueError as exc:
            return _error(str(exc), 400)
        return jsonify(_summary())

    @app.route("/api/transactions")
    def api_transactions():
        try:
            state = dashboard.ensure_loaded()
        except SourceError:
            return _error(LOAD_ERROR, 502)
        type_filter = request.args.get("type") or ALL
        if type_filter != ALL and type_filter not in TRANSACTION_TYPES:
            return _error(f"Unknown transaction type: {type_filter}", 400)
        view = build_transaction_view(
            state.dataset,
            cfg.dataset(state.region),
            cfg.page_size,
            type_filter=type_filter,
            query=request.args.get("q", ""),
            sort=request.args.get("sort") or DEFAULT_SORT,
            page=request.args.get("page", 1, type=int),
            title=request.args.get("title") or "All Transactions",
        )
        return jsonify(view)

    return app


def _resolve_config_path(config_path: Optional[str]) -> Optional[Path]:
    if not config_path:
        return None
    path = Path(config_path)
    if path.is_absolute():
        return path
    return PROJECT_ROOT / path


app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
