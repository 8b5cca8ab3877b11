"""Shared helper functions for dashboard routes."""

from __future__ import annotations

from typing import Dict

from flask import current_app, jsonify, request

from trendboard.services.dashboard import Dashboard, build_dashboard

from . import get_runner


def url_parameter(name: str) -> str:
    """Value of query-string parameter ``name`` of the current request, or ``""``."""
    if not name:
        return ""
    return request.args.get(name, "")


def build_page() -> Dashboard:
    """Bootstrap the dashboard for the current request."""
    return build_dashboard(current_app.config, get_runner(), url_parameter)


def wait_for_charts(dashboard: Dashboard) -> bool:
    timeout = current_app.config.get("QUERY_TIMEOUT")
    done = dashboard.wait(timeout=float(timeout) + 5 if timeout else None)
    if not done:
        current_app.logger.warning("Returning dashboard state with charts still loading")
    return done


def selection_query(dashboard: Dashboard) -> Dict[str, str]:
    """URL parameters reproducing the current button selection."""
    return {name: group.current_option for name, group in dashboard.groups.items()}


def not_found(message: str):
    return jsonify({"error": message}), 404


__all__ = ["build_page", "not_found", "selection_query", "url_parameter", "wait_for_charts"]
