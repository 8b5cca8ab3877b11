"""HTTP tests for the dashboard blueprint."""

from __future__ import annotations

import pytest

from trendboard.app import create_app, make_runner
from trendboard.services.eventstore import EventStore
from trendboard.services.keen import KeenClient


def test_dashboard_state_defaults(client) -> None:
    resp = client.get("/api/dashboard")
    assert resp.status_code == 200
    body = resp.get_json()

    assert body["complete"] is True
    assert body["selection"] == {"timeframe": "week", "count": "jobs"}
    assert body["elements"]["count_jobs"]["class"] == "btn btn-success"
    assert body["elements"]["count_builds"]["class"] == "btn btn-primary"
    assert body["charts"]["metric_total_events"]["data"] == {"result": 15}
    assert body["charts"]["chart_builds_per_project"]["title"] == "Build jobs per project"


def test_dashboard_state_url_override(client, runner) -> None:
    body = client.get("/api/dashboard?timeframe=month&count=bogus").get_json()
    assert body["selection"] == {"timeframe": "month", "count": "jobs"}
    assert {q.timeframe for batch in runner.batches for q in batch} == {"this_30_days"}


def test_click_count_button(client) -> None:
    resp = client.post("/api/groups/count/builds/click?timeframe=day")
    assert resp.status_code == 200
    body = resp.get_json()

    assert body["selection"] == {"timeframe": "day", "count": "builds"}
    assert body["elements"]["count_builds"]["class"] == "btn btn-success"
    assert body["charts"]["chart_builds_per_project"]["title"] == "Builds per project"
    assert body["charts"]["chart_builds_per_project"]["state"] == "rendered"
    assert body["charts"]["metric_unique_repos"]["state"] == "idle"


def test_click_unknown_option_or_group(client) -> None:
    assert client.post("/api/groups/count/nope/click").status_code == 404
    assert client.post("/api/groups/nope/builds/click").status_code == 404


def test_group_state(client) -> None:
    body = client.get("/api/groups/count?count=builds").get_json()
    assert body["current"] == "builds"
    assert [o["caption"] for o in body["options"]] == ["Builds", "Build jobs"]
    assert client.get("/api/groups/nope").status_code == 404


def test_single_chart(client) -> None:
    body = client.get("/api/charts/chart_total_events_pie").get_json()
    assert body["state"] == "rendered"
    assert body["data"]["result"][0]["result"] == 4
    assert client.get("/api/charts/nope").status_code == 404


def test_index_page(client) -> None:
    resp = client.get("/?count=builds")
    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert 'id="count_builds"' in html
    assert "btn btn-success" in html
    assert 'id="chart_total_events"' in html


def test_health(client) -> None:
    body = client.get("/health").get_json()
    assert body == {"ok": True, "backend": "fake", "charts": True}


def test_without_backend_charts_are_disabled(tmp_path) -> None:
    app = create_app(
        {
            "TESTING": True,
            "ANALYTICS_BACKEND": "",
            "KEEN_PROJECT_ID": None,
            "KEEN_READ_KEY": None,
            "DUCKDB_PATH": tmp_path / "none.duckdb",
            "EVENTS_CSV_GLOB": str(tmp_path / "*.csv"),
        }
    )
    client = app.test_client()

    body = client.get("/api/dashboard").get_json()
    assert body["charts"] == {}
    assert body["selection"]["count"] == "jobs"
    assert client.get("/api/charts/metric_unique_repos").status_code == 404
    assert client.get("/health").get_json()["charts"] is False
    assert "No analytics backend configured" in client.get("/").get_data(as_text=True)


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"KEEN_PROJECT_ID": "p", "KEEN_READ_KEY": "k"}, KeenClient),
        ({"ANALYTICS_BACKEND": "duckdb"}, EventStore),
        ({"ANALYTICS_BACKEND": "keen"}, type(None)),
        ({"ANALYTICS_BACKEND": "mystery"}, type(None)),
    ],
)
def test_make_runner(tmp_path, overrides, expected) -> None:
    config = {
        "ANALYTICS_BACKEND": "",
        "KEEN_PROJECT_ID": None,
        "KEEN_READ_KEY": None,
        "DUCKDB_PATH": tmp_path / "events.duckdb",
        "EVENTS_CSV_GLOB": str(tmp_path / "*.csv"),
    }
    config.update(overrides)
    runner = make_runner(config)
    try:
        assert isinstance(runner, expected)
    finally:
        if runner is not None:
            runner.shutdown()
