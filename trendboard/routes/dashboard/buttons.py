"""Selection button endpoints."""

from __future__ import annotations

from flask import jsonify

from . import bp
from .helpers import build_page, not_found, selection_query, wait_for_charts


@bp.route("/api/groups/<group_name>", methods=["GET"])
def group_state(group_name: str):
    dashboard = build_page()
    group = dashboard.group(group_name)
    if group is None:
        return not_found(f"Unknown selection group: {group_name}")
    return jsonify(group.to_dict())


@bp.route("/api/groups/<group_name>/<option>/click", methods=["POST"])
def click_option(group_name: str, option: str):
    """Click a button of a selection group.

    The page is rebuilt from the query string, then the click runs the
    group's callbacks. Only the charts refreshed by the click carry data
    (``state`` other than ``idle``); ``selection`` holds the parameters to
    put in the address bar.
    """
    dashboard = build_page()
    group = dashboard.group(group_name)
    if group is None:
        return not_found(f"Unknown selection group: {group_name}")
    if not dashboard.click(group_name, option):
        return not_found(f"Unknown option {option} for {group_name}")

    loaded = wait_for_charts(dashboard)

    state = dashboard.to_dict()
    state["selection"] = selection_query(dashboard)
    state["complete"] = loaded
    return jsonify(state)
