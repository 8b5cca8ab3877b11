"""Application factory for the build trend dashboard."""

from __future__ import annotations

import glob
import logging
import os

from typing import Any, Mapping, Optional, Union

from flask import Flask

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("trendboard")

from .config import Config
from .routes.dashboard import bp as dashboard_bp
from .services.eventstore import EventStore
from .services.keen import KeenClient
from .services.query import BatchRunner


def make_runner(config: Mapping[str, Any]) -> Optional[BatchRunner]:
    """Pick the analytics backend; None when nothing is configured."""
    backend = (config.get("ANALYTICS_BACKEND") or "").lower()
    workers = config.get("QUERY_WORKERS", 4)
    has_keen = bool(config.get("KEEN_PROJECT_ID") and config.get("KEEN_READ_KEY"))

    if backend == "keen" or (not backend and has_keen):
        if not has_keen:
            logger.error("Keen backend selected but KEEN_PROJECT_ID/KEEN_READ_KEY are not set")
            return None
        logger.info("Using Keen.io project %s", config["KEEN_PROJECT_ID"])
        return KeenClient(
            config["KEEN_PROJECT_ID"],
            config["KEEN_READ_KEY"],
            api_url=config.get("KEEN_API_URL", "https://api.keen.io/3.0"),
            timeout=config.get("QUERY_TIMEOUT", 30),
            max_workers=workers,
        )

    local_data = os.path.exists(str(config.get("DUCKDB_PATH", ""))) or bool(
        glob.glob(config.get("EVENTS_CSV_GLOB") or "")
    )
    if backend == "duckdb" or (not backend and local_data):
        logger.info("Using local event store %s", config.get("DUCKDB_PATH"))
        return EventStore(config, max_workers=workers)

    if backend:
        logger.error("Unknown analytics backend %r", backend)
    else:
        logger.warning("No analytics backend configured; charts are disabled")
    return None


def create_app(
    config_object: Optional[Union[str, Mapping[str, Any], type]] = None,
    runner: Optional[BatchRunner] = None,
) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    app.config.from_object(Config)
    if isinstance(config_object, Mapping):
        app.config.from_mapping(config_object)
    elif config_object is not None:
        app.config.from_object(config_object)

    app.extensions["runner"] = runner if runner is not None else make_runner(app.config)

    app.register_blueprint(dashboard_bp)

    return app


__all__ = ["create_app", "make_runner"]
