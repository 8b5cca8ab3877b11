"""Chart data endpoints."""

from __future__ import annotations

from flask import jsonify

from . import bp
from .helpers import build_page, not_found, selection_query, wait_for_charts


@bp.route("/api/dashboard", methods=["GET"])
def dashboard_state():
    """Buttons and all chart data for the selection in the query string."""
    dashboard = build_page()
    dashboard.update_charts()
    loaded = wait_for_charts(dashboard)

    state = dashboard.to_dict()
    state["selection"] = selection_query(dashboard)
    state["complete"] = loaded
    return jsonify(state)


@bp.route("/api/charts/<chart_id>", methods=["GET"])
def chart_state(chart_id: str):
    dashboard = build_page()
    if dashboard.registry is None:
        return not_found("Charts are disabled, no analytics backend configured")

    chart = dashboard.registry.get(chart_id)
    if chart is None:
        return not_found(f"Unknown chart: {chart_id}")

    dashboard.registry.apply_period(dashboard.update_period())
    # combined charts pull in the queries of other charts, refresh just this one
    dashboard.registry.refresh([chart])
    wait_for_charts(dashboard)
    return jsonify(chart.to_dict())
