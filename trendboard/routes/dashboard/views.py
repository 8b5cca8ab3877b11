"""Dashboard index view."""

from __future__ import annotations

from flask import render_template

from . import bp
from .helpers import build_page, selection_query


def index():
    dashboard = build_page()
    return render_template(
        "index.html",
        groups=dashboard.groups,
        charts=dashboard.registry.charts if dashboard.registry is not None else {},
        selection=selection_query(dashboard),
    )


bp.add_url_rule("/", view_func=index, methods=["GET"])
