"""Healthcheck endpoint."""

from __future__ import annotations

from flask import current_app, jsonify

from . import bp, get_runner


@bp.route("/health", methods=["GET"])
def health():
    runner = get_runner()
    if runner is None:
        return jsonify({"ok": True, "backend": None, "charts": False}), 200
    try:
        out = {"ok": True, "backend": runner.name, "charts": True}
        if hasattr(runner, "collections"):
            out["collections"] = runner.collections()
        return jsonify(out), 200
    except Exception as exc:  # pragma: no cover - defensive logging path
        current_app.logger.exception("Healthcheck failed")
        return jsonify({"ok": False, "error": str(exc)}), 500
