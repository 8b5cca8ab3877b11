"""Application configuration objects."""

import os
import sys
from typing import Any, Dict
from dotenv import load_dotenv
from pathlib import Path

if getattr(sys, "frozen", False):
    load_dotenv(os.path.join(sys._MEIPASS, ".env"))
else:
    load_dotenv()


class Config:
    """Base configuration for the build trend dashboard."""

    # -------------------------
    # Analytics backend
    # -------------------------
    # "keen", "duckdb", or empty to pick Keen when credentials are set
    ANALYTICS_BACKEND = os.getenv("TRENDBOARD_BACKEND", "")

    KEEN_PROJECT_ID = os.getenv("KEEN_PROJECT_ID")
    KEEN_READ_KEY = os.getenv("KEEN_READ_KEY")
    KEEN_API_URL = os.getenv("KEEN_API_URL", "https://api.keen.io/3.0")

    QUERY_TIMEOUT = float(os.getenv("TRENDBOARD_QUERY_TIMEOUT", "30"))
    QUERY_WORKERS = int(os.getenv("TRENDBOARD_QUERY_WORKERS", "4"))

    # -------------------------
    # Local event store
    # -------------------------
    DUCKDB_PATH = Path(os.getenv("TRENDBOARD_DUCKDB_PATH", "data/events.duckdb"))

    # One CSV per event collection, named <collection>.csv
    EVENTS_CSV_GLOB = os.getenv("TRENDBOARD_EVENTS_CSV_GLOB", "data/events/*.csv")

    # -------------------------
    # Queries
    # -------------------------
    TIMEZONE_SECS = int(os.getenv("TRENDBOARD_TIMEZONE_SECS", "0"))
    PROJECT_NAME_PROPERTY = "buildtime_trend.project_name"

    # -------------------------
    # Selection buttons
    # -------------------------
    TIMEFRAME_DEFAULT = "week"
    TIMEFRAME_BUTTONS: Dict[str, Dict[str, Any]] = {
        "day": {
            "caption": "Day",
            "keenTimeframe": "this_24_hours",
            "keenInterval": "hourly",
            "keenMaxAge": 600,  # 10 min
        },
        "week": {
            "caption": "Week",
            "keenTimeframe": "this_7_days",
            "keenInterval": "daily",
            "keenMaxAge": 1800,  # 30 min
        },
        "month": {
            "caption": "Month",
            "keenTimeframe": "this_30_days",
            "keenInterval": "daily",
            "keenMaxAge": 3600,  # 1 hour
        },
        "year": {
            "caption": "Year",
            "keenTimeframe": "this_52_weeks",
            "keenInterval": "weekly",
            "keenMaxAge": 86400,  # 24 hours
        },
    }

    COUNT_DEFAULT = "jobs"
    COUNT_BUTTONS: Dict[str, Dict[str, Any]] = {
        "builds": {
            "caption": "Builds",
            "keenEventCollection": "build_jobs",
            "keenTargetProperty": "job.build",
        },
        "jobs": {
            "caption": "Build jobs",
            "keenEventCollection": "build_jobs",
            "keenTargetProperty": "job.job",
        },
    }


__all__ = ["Config"]
