"""Charts: their queries, their render state and the registry that refreshes them."""

from __future__ import annotations

import logging
from concurrent.futures import Future, wait
from typing import Any, Callable, Dict, List, Optional, Sequence

from .query import BatchRunner, Query, QueryError

logger = logging.getLogger("trendboard")

Transform = Callable[[List[Dict[str, Any]]], Any]


class ChartView:
    """Render target of a chart, serialised for the browser."""

    def __init__(
        self,
        element_id: str,
        chart_type: str = "metric",
        title: str = "",
        height: Optional[int] = None,
        colors: Optional[List[str]] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        self.element_id = element_id
        self.chart_type = chart_type
        self.title = title
        self.height = height
        self.colors = list(colors or [])
        self.attributes = dict(attributes or {})
        self.state = "idle"
        self.payload: Any = None
        self.message = ""

    def set_title(self, title: str) -> "ChartView":
        self.title = title
        return self

    def prepare(self) -> "ChartView":
        self.state = "prepared"
        self.message = ""
        return self

    def data(self, payload: Any) -> "ChartView":
        self.payload = payload
        return self

    def render(self) -> "ChartView":
        self.state = "rendered"
        return self

    def error(self, message: str) -> "ChartView":
        self.state = "error"
        self.message = message
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.element_id,
            "type": self.chart_type,
            "title": self.title,
            "height": self.height,
            "colors": self.colors,
            "attributes": self.attributes,
            "state": self.state,
            "data": self.payload,
            "error": self.message,
        }


def single_or_all(results: List[Dict[str, Any]]) -> Any:
    return results[0] if len(results) == 1 else results


class Chart:
    """A chart and the query batch feeding it.

    ``batch`` returns the queries to submit (defaults to the chart's own
    ``queries``), so a chart can combine the queries of other charts.
    ``transform`` turns the batch results into the data handed to the view.

    Each request bumps ``generation``; a response belonging to an older
    request is dropped so a slow batch can't overwrite a newer selection.
    """

    def __init__(
        self,
        chart_id: str,
        view: ChartView,
        queries: Optional[List[Query]] = None,
        batch: Optional[Callable[[], Sequence[Query]]] = None,
        transform: Transform = single_or_all,
    ):
        self.chart_id = chart_id
        self.view = view
        self.queries: List[Query] = list(queries or [])
        self._batch = batch
        self.transform = transform
        self.generation = 0

    def batch(self) -> List[Query]:
        if self._batch is not None:
            return list(self._batch())
        return list(self.queries)

    def request(self, runner: BatchRunner) -> Future:
        """Submit the batch; the returned future resolves once the view is updated."""
        self.generation += 1
        generation = self.generation
        done: Future = Future()

        def _complete(batch: Future) -> None:
            try:
                if generation != self.generation:
                    logger.info(
                        "Discarding stale response for %s (request %d, current %d)",
                        self.chart_id,
                        generation,
                        self.generation,
                    )
                    return
                try:
                    results = batch.result()
                except QueryError as e:
                    logger.warning("Queries for %s failed: %s", self.chart_id, e.message)
                    self.view.error(e.message)
                    return
                try:
                    payload = self.transform(results)
                except Exception as e:
                    logger.exception("Unexpected result shape for %s", self.chart_id)
                    self.view.error(f"Unexpected result shape: {e}")
                    return
                self.view.data(payload).render()
            finally:
                done.set_result(self.view.state)

        runner.run(self.batch()).add_done_callback(_complete)
        return done

    def refresh(self, runner: BatchRunner) -> Future:
        self.view.prepare()
        return self.request(runner)

    def to_dict(self) -> Dict[str, Any]:
        out = self.view.to_dict()
        out["chart"] = self.chart_id
        out["generation"] = self.generation
        return out


class ChartRegistry:
    """Charts of one dashboard, grouped by what a refresh has to touch.

    ``update`` charts are re-requested by :meth:`update_all`; ``timeframe``
    and ``interval`` charts get the selected period written into their
    queries by :meth:`apply_period`.
    """

    def __init__(self, runner: BatchRunner):
        self.runner = runner
        self.charts: Dict[str, Chart] = {}
        self.update: List[Chart] = []
        self.timeframe: List[Chart] = []
        self.interval: List[Chart] = []
        self._pending: List[Future] = []

    def add(self, chart: Chart, update: bool = True, timeframe: bool = False, interval: bool = False) -> Chart:
        self.charts[chart.chart_id] = chart
        if update:
            self.update.append(chart)
        if timeframe:
            self.timeframe.append(chart)
        if interval:
            self.interval.append(chart)
        return chart

    def get(self, chart_id: str) -> Optional[Chart]:
        return self.charts.get(chart_id)

    def apply_period(self, period: Dict[str, Any]) -> None:
        for chart in self.timeframe:
            for query in chart.queries:
                query.set(timeframe=period.get("keenTimeframe"), max_age=period.get("keenMaxAge"))
        for chart in self.interval:
            for query in chart.queries:
                query.set(interval=period.get("keenInterval"))

    def refresh(self, charts: Sequence[Chart]) -> List[Future]:
        futures = [chart.refresh(self.runner) for chart in charts]
        self._pending.extend(futures)
        return futures

    def update_all(self) -> List[Future]:
        return self.refresh(self.update)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted batch has updated its chart."""
        pending, self._pending = self._pending, []
        if not pending:
            return True
        _done, not_done = wait(pending, timeout=timeout)
        if not_done:
            logger.warning("%d chart request(s) still running after %ss", len(not_done), timeout)
            self._pending.extend(not_done)
        return not not_done

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {key: chart.to_dict() for key, chart in self.charts.items()}


__all__ = ["Chart", "ChartRegistry", "ChartView", "single_or_all"]
