"""Dashboard blueprint package."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("dashboard", __name__)


def get_runner():
    from flask import current_app

    return current_app.extensions.get("runner")


from . import buttons, charts, health, views  # noqa: E402,F401

__all__ = ["bp", "get_runner"]
