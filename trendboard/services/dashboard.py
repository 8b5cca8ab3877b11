"""Build trend dashboard: selection buttons and the charts they drive."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Mapping, Optional

from trendboard.utils.selection import ParamResolver, SelectionGroup

from .aggregation import merge_series, sum_results
from .charts import Chart, ChartRegistry, ChartView
from .elements import ElementSurface
from .query import BatchRunner, Query

logger = logging.getLogger("trendboard")

TIMEFRAME_GROUP = "timeframe"
COUNT_GROUP = "count"

BLUE = "#1f77b4"
LAVENDER = "#9e8fd4"


class Dashboard:
    """One page worth of selection groups and charts.

    Built per request from the URL parameters; groups share a single
    :class:`ElementSurface`, charts live in an explicit :class:`ChartRegistry`.
    """

    def __init__(self, config: Mapping[str, Any], runner: Optional[BatchRunner] = None):
        self.config = config
        self.surface = ElementSurface()
        self.groups: Dict[str, SelectionGroup] = {}
        self.registry: Optional[ChartRegistry] = ChartRegistry(runner) if runner is not None else None

    # ---------- groups ----------

    def add_group(self, group: SelectionGroup) -> SelectionGroup:
        self.groups[group.group_name] = group
        return group

    def group(self, name: str) -> Optional[SelectionGroup]:
        return self.groups.get(name)

    def click(self, group_name: str, option: str) -> bool:
        """Click ``option`` of ``group_name``; False if either is unknown."""
        group = self.groups.get(group_name)
        if group is None or option not in group.options:
            return False
        return group.click(option)

    def update_period(self) -> Dict[str, Any]:
        return self.groups[TIMEFRAME_GROUP].get_current_option()

    # ---------- charts ----------

    def update_charts(self) -> None:
        if self.registry is None:
            return
        self.registry.apply_period(self.update_period())
        self.registry.update_all()

    def count_title(self) -> str:
        return self.groups[COUNT_GROUP].get_option_caption() + " per project"

    def update_count_charts(self) -> None:
        """Point the count charts at the collection/property of the count button."""
        if self.registry is None:
            return
        settings = self.groups[COUNT_GROUP].get_current_option()
        charts = [
            self.registry.get("chart_builds_per_project"),
            self.registry.get("chart_builds_per_project_pie"),
        ]
        for chart in charts:
            chart.queries[0].set(
                event_collection=settings.get("keenEventCollection"),
                target_property=settings.get("keenTargetProperty"),
            )
            chart.view.set_title(self.count_title())
        self.registry.refresh(charts)

    def wait(self, timeout: Optional[float] = None) -> bool:
        if self.registry is None:
            return True
        return self.registry.wait(timeout)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groups": {key: group.to_dict() for key, group in self.groups.items()},
            "elements": self.surface.to_dict(),
            "charts": self.registry.to_dict() if self.registry is not None else {},
        }


def build_dashboard(
    config: Mapping[str, Any],
    runner: Optional[BatchRunner] = None,
    resolve_param: Optional[ParamResolver] = None,
) -> Dashboard:
    """Create the groups and charts and apply the URL overrides.

    Charts are only created when a query runner is available; nothing is
    requested yet, call :meth:`Dashboard.update_charts` for that.
    """
    dashboard = Dashboard(config, runner)

    # option configs are mutated by the groups, don't touch the shared config
    timeframe_buttons = dashboard.add_group(
        SelectionGroup(
            TIMEFRAME_GROUP,
            copy.deepcopy(dict(config["TIMEFRAME_BUTTONS"])),
            config.get("TIMEFRAME_DEFAULT"),
            surface=dashboard.surface,
        )
    )
    count_buttons = dashboard.add_group(
        SelectionGroup(
            COUNT_GROUP,
            copy.deepcopy(dict(config["COUNT_BUTTONS"])),
            config.get("COUNT_DEFAULT"),
            surface=dashboard.surface,
        )
    )
    timeframe_buttons.on_click = dashboard.update_charts
    count_buttons.on_click = dashboard.update_count_charts

    timeframe_buttons.activate(resolve_param)
    count_buttons.activate(resolve_param)

    if dashboard.registry is not None:
        _add_charts(dashboard, config)

    return dashboard


def _add_charts(dashboard: Dashboard, config: Mapping[str, Any]) -> None:
    registry = dashboard.registry
    period = dashboard.update_period()
    count_settings = dashboard.groups[COUNT_GROUP].get_current_option()
    project_property = config.get("PROJECT_NAME_PROPERTY", "buildtime_trend.project_name")

    def query(analysis_type: str, collection: str, **params: Any) -> Query:
        return Query(
            analysis_type,
            collection,
            timezone=config.get("TIMEZONE_SECS", 0),
            timeframe=period.get("keenTimeframe"),
            max_age=period.get("keenMaxAge"),
            **params,
        )

    # Metrics
    registry.add(
        Chart(
            "metric_unique_repos",
            ChartView("metric_unique_repos", "metric", "Unique repos", colors=[BLUE],
                      attributes={"chartOptions": {"prettyNumber": False}}),
            [query("count_unique", "build_jobs", target_property="job.repo")],
        ),
        timeframe=True,
    )
    total_jobs = registry.add(
        Chart(
            "metric_total_build_jobs",
            ChartView("metric_total_build_jobs", "metric", "Total build jobs"),
            [query("count", "build_jobs")],
        ),
        timeframe=True,
    )
    total_substages = registry.add(
        Chart(
            "metric_total_substages",
            ChartView("metric_total_substages", "metric", "Total substages"),
            [query("count", "build_substages")],
        ),
        timeframe=True,
    )
    registry.add(
        Chart(
            "metric_total_events",
            ChartView("metric_total_events", "metric", "Total events", colors=[LAVENDER]),
            batch=lambda: total_jobs.queries + total_substages.queries,
            transform=lambda results: {"result": sum_results(results)},
        )
    )

    # Unique repos per language
    registry.add(
        Chart(
            "chart_unique_repos",
            ChartView("chart_unique_repos", "area", "Unique project repositories", height=400,
                      attributes={"stacked": True}),
            [
                query(
                    "count_unique",
                    "build_jobs",
                    target_property="job.repo",
                    group_by="job.build_matrix.language",
                    interval=period.get("keenInterval"),
                )
            ],
        ),
        timeframe=True,
        interval=True,
    )

    # Builds (or build jobs) per project
    count_title = dashboard.count_title()
    builds_per_project = registry.add(
        Chart(
            "chart_builds_per_project",
            ChartView("chart_builds_per_project", "bar", count_title, height=400,
                      attributes={"stacked": True}),
            [
                query(
                    "count_unique",
                    count_settings.get("keenEventCollection"),
                    target_property=count_settings.get("keenTargetProperty"),
                    group_by=project_property,
                    interval=period.get("keenInterval"),
                )
            ],
        ),
        timeframe=True,
        interval=True,
    )
    builds_per_project_pie = registry.add(
        Chart(
            "chart_builds_per_project_pie",
            ChartView("chart_builds_per_project_pie", "pie", count_title, height=400),
            [
                query(
                    "count_unique",
                    count_settings.get("keenEventCollection"),
                    target_property=count_settings.get("keenTargetProperty"),
                    group_by=project_property,
                )
            ],
        ),
        timeframe=True,
    )

    # Substages per project
    stages_per_project = registry.add(
        Chart(
            "chart_stages_per_project",
            ChartView("chart_stages_per_project", "bar", "Substages per project", height=400,
                      attributes={"stacked": True}),
            [
                query(
                    "count",
                    "build_substages",
                    group_by=project_property,
                    interval=period.get("keenInterval"),
                )
            ],
        ),
        timeframe=True,
        interval=True,
    )
    stages_per_project_pie = registry.add(
        Chart(
            "chart_stages_per_project_pie",
            ChartView("chart_stages_per_project_pie", "pie", "Substages per project", height=400),
            [query("count", "build_substages", group_by=project_property)],
        ),
        timeframe=True,
    )

    # Total events per project: substages + builds merged per project
    registry.add(
        Chart(
            "chart_total_events",
            ChartView("chart_total_events", "bar", "Total events per project", height=400,
                      attributes={"stacked": True}),
            batch=lambda: stages_per_project.queries + builds_per_project.queries,
            transform=lambda results: {"result": merge_series(results, project_property)},
        )
    )
    registry.add(
        Chart(
            "chart_total_events_pie",
            ChartView("chart_total_events_pie", "pie", "Total events per project", height=400),
            batch=lambda: stages_per_project_pie.queries + builds_per_project_pie.queries,
            transform=lambda results: {"result": merge_series(results, project_property)},
        )
    )

    logger.debug("Dashboard has %d chart(s)", len(registry.charts))


__all__ = ["COUNT_GROUP", "Dashboard", "TIMEFRAME_GROUP", "build_dashboard"]
