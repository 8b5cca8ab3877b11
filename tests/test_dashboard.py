"""Tests for the dashboard bootstrap and its button callbacks."""

from __future__ import annotations

from trendboard.config import Config
from trendboard.services.dashboard import build_dashboard
from trendboard.utils.selection import CLASS_BUTTON_ACTIVE, CLASS_BUTTON_NORMAL

from .conftest import PROJECT, FakeRunner


def config(**overrides):
    out = {key: getattr(Config, key) for key in dir(Config) if key.isupper()}
    out.update(overrides)
    return out


def test_defaults_without_url_override() -> None:
    dashboard = build_dashboard(config(), None, lambda name: "")
    count = dashboard.group("count")

    assert count.current_option == "jobs"
    assert dashboard.group("timeframe").current_option == "week"
    assert dashboard.registry is None
    assert dashboard.to_dict()["charts"] == {}


def test_count_click_switches_markers() -> None:
    dashboard = build_dashboard(config(), None, lambda name: "")
    assert dashboard.click("count", "builds")

    count = dashboard.group("count")
    assert count.current_option == "builds"
    assert dashboard.surface.find("count_builds").css_class == CLASS_BUTTON_ACTIVE
    assert dashboard.surface.find("count_jobs").css_class == CLASS_BUTTON_NORMAL


def test_unknown_click_is_rejected() -> None:
    dashboard = build_dashboard(config(), None, lambda name: "")
    assert not dashboard.click("count", "nope")
    assert not dashboard.click("nope", "builds")


def test_shared_config_is_not_mutated() -> None:
    cfg = config()
    build_dashboard(cfg, None, lambda name: "").group("count").get_current_option()
    assert "name" not in cfg["COUNT_BUTTONS"]["jobs"]


def test_charts_use_period_from_url() -> None:
    runner = FakeRunner()
    try:
        dashboard = build_dashboard(config(), runner, {"timeframe": "day", "count": "builds"}.get)
        chart = dashboard.registry.get("chart_builds_per_project")
        query = chart.queries[0]

        assert query.timeframe == "this_24_hours"
        assert query.interval == "hourly"
        assert query.target_property == "job.build"
        assert chart.view.title == "Builds per project"
    finally:
        runner.shutdown()


def test_update_charts_renders_merged_totals() -> None:
    runner = FakeRunner()
    try:
        dashboard = build_dashboard(config(), runner, lambda name: "")
        dashboard.update_charts()
        assert dashboard.wait(timeout=5)

        charts = dashboard.registry
        assert charts.get("metric_total_events").view.payload == {"result": 15}
        assert charts.get("chart_total_events_pie").view.payload == {
            "result": [{PROJECT: "A", "result": 4}, {PROJECT: "B", "result": 2}]
        }
        merged = charts.get("chart_total_events").view.payload["result"]
        assert [bucket["value"] for bucket in merged] == [
            [{PROJECT: "A", "result": 2}, {PROJECT: "B", "result": 4}],
            [{PROJECT: "A", "result": 6}],
        ]
    finally:
        runner.shutdown()


def test_count_click_retargets_count_charts_only() -> None:
    runner = FakeRunner()
    try:
        dashboard = build_dashboard(config(), runner, lambda name: "")
        dashboard.click("count", "builds")
        assert dashboard.wait(timeout=5)

        assert len(runner.batches) == 2
        assert {q.target_property for batch in runner.batches for q in batch} == {"job.build"}

        builds = dashboard.registry.get("chart_builds_per_project")
        assert builds.view.title == "Builds per project"
        assert builds.view.state == "rendered"
        assert dashboard.registry.get("chart_stages_per_project").view.state == "idle"
    finally:
        runner.shutdown()


def test_timeframe_click_refreshes_all_charts() -> None:
    runner = FakeRunner()
    try:
        dashboard = build_dashboard(config(), runner, lambda name: "")
        dashboard.click("timeframe", "year")
        assert dashboard.wait(timeout=5)

        assert len(runner.batches) == len(dashboard.registry.update)
        stages = dashboard.registry.get("chart_stages_per_project").queries[0]
        assert stages.timeframe == "this_52_weeks"
        assert stages.interval == "weekly"
        assert stages.max_age == 86400
        pie = dashboard.registry.get("chart_stages_per_project_pie").queries[0]
        assert pie.interval is None
    finally:
        runner.shutdown()


def test_count_option_without_caption_uses_key() -> None:
    runner = FakeRunner()
    try:
        buttons = {
            "builds": {"keenEventCollection": "build_jobs", "keenTargetProperty": "job.build"},
            "jobs": {"caption": "Build jobs", "keenEventCollection": "build_jobs", "keenTargetProperty": "job.job"},
        }
        dashboard = build_dashboard(config(COUNT_BUTTONS=buttons), runner, {"count": "builds"}.get)
        chart = dashboard.registry.get("chart_builds_per_project")
        assert chart.view.title == "builds per project"
        assert dashboard.surface.find("count_builds").text == "builds"

        dashboard.click("count", "jobs")
        dashboard.click("count", "builds")
        assert dashboard.wait(timeout=5)
        assert chart.view.title == "builds per project"
    finally:
        runner.shutdown()


def test_placeholder_timeframe_buttons_build_charts() -> None:
    runner = FakeRunner()
    try:
        dashboard = build_dashboard(config(TIMEFRAME_BUTTONS={}), runner, lambda name: "")
        assert dashboard.group("timeframe").option_keys() == ["button1", "button2"]

        query = dashboard.registry.get("chart_stages_per_project").queries[0]
        assert query.timeframe is None
        assert query.interval is None

        dashboard.click("timeframe", "button2")
        assert dashboard.wait(timeout=5)
    finally:
        runner.shutdown()
