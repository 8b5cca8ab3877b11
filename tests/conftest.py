"""Shared fixtures: an app wired to an in-process query runner."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional

import pytest

from trendboard.app import create_app
from trendboard.services.query import BatchRunner, Query, QueryError


class FakeRunner(BatchRunner):
    """Answer queries from a function of the query, recording every batch."""

    name = "fake"

    def __init__(self, answer: Optional[Callable[[Query], Any]] = None):
        super().__init__(max_workers=2)
        self.answer = answer or default_answer
        self.batches: List[List[Query]] = []

    def run(self, queries):
        # snapshot: the dashboard mutates queries in place
        self.batches.append([Query(**vars(q)) for q in queries])
        return super().run(queries)

    def execute(self, query: Query) -> Dict[str, Any]:
        return {"result": self.answer(query)}


class ManualRunner:
    """Runner whose batches are resolved by the test."""

    name = "manual"

    def __init__(self):
        self.futures: List[Future] = []
        self.batches: List[List[Query]] = []

    def run(self, queries):
        future: Future = Future()
        self.batches.append(list(queries))
        self.futures.append(future)
        return future

    def resolve(self, index: int, results: List[Dict[str, Any]]) -> None:
        self.futures[index].set_result(results)

    def fail(self, index: int, message: str) -> None:
        self.futures[index].set_exception(QueryError(message))


PROJECT = "buildtime_trend.project_name"


def default_answer(query: Query) -> Any:
    if query.group_by and query.interval:
        return [
            {"timeframe": {"start": "2016-01-01", "end": "2016-01-02"},
             "value": [{query.group_by: "A", "result": 1}, {query.group_by: "B", "result": 2}]},
            {"timeframe": {"start": "2016-01-02", "end": "2016-01-03"},
             "value": [{query.group_by: "A", "result": 3}]},
        ]
    if query.group_by:
        return [{query.group_by: "A", "result": 2}, {query.group_by: "B", "result": 1}]
    if query.event_collection == "build_substages":
        return 5
    return 10


@pytest.fixture()
def runner():
    fake = FakeRunner()
    yield fake
    fake.shutdown()


@pytest.fixture()
def app(runner):
    app = create_app({"TESTING": True, "QUERY_TIMEOUT": 5}, runner=runner)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()
