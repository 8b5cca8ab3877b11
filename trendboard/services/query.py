"""Analytics query descriptors and the shared batch-runner plumbing."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger("trendboard")


class TrendboardError(Exception):
    """Base error of the dashboard package."""


class QueryError(TrendboardError):
    """A query batch failed; ``message`` is shown in place of the chart."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class Query:
    analysis_type: str
    event_collection: str
    target_property: Optional[str] = None
    group_by: Optional[str] = None
    interval: Optional[str] = None
    timeframe: Optional[str] = None
    timezone: Optional[int] = None
    max_age: Optional[int] = None

    def set(self, **params: Any) -> "Query":
        names = {f.name for f in fields(self)}
        for key, value in params.items():
            if key not in names:
                raise TypeError(f"Unknown query parameter: {key}")
            setattr(self, key, value)
        return self

    def to_params(self) -> Dict[str, Any]:
        """Request body in the Keen API's snake_case naming, unset fields left out."""
        out = {}
        for f in fields(self):
            if f.name == "analysis_type":
                continue
            value = getattr(self, f.name)
            if value is not None:
                out[f.name] = value
        return out


class BatchRunner:
    """Run a list of queries in parallel, resolving one future for the batch.

    Subclasses implement :meth:`execute` for a single query and return the
    backend response (``{"result": ...}``). The batch future resolves to the
    responses in query order, or fails with the first :class:`QueryError`.
    """

    name = "runner"

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(
            max_workers=max(int(max_workers), 1), thread_name_prefix="trendboard-query"
        )

    def execute(self, query: Query) -> Dict[str, Any]:
        raise NotImplementedError

    def run(self, queries: Sequence[Query]) -> "Future[List[Dict[str, Any]]]":
        batch: Future = Future()
        items = list(queries)
        if not items:
            batch.set_result([])
            return batch

        pending = [self._executor.submit(self._execute_safe, q) for q in items]
        remaining = [len(pending)]
        lock = threading.Lock()

        def _done(_f: Future) -> None:
            with lock:
                remaining[0] -= 1
                if remaining[0]:
                    return
            for f in pending:
                exc = f.exception()
                if exc is not None:
                    batch.set_exception(exc)
                    return
            batch.set_result([f.result() for f in pending])

        for f in pending:
            f.add_done_callback(_done)
        return batch

    def _execute_safe(self, query: Query) -> Dict[str, Any]:
        try:
            return self.execute(query)
        except QueryError:
            raise
        except Exception as exc:
            logger.exception("Query on %s failed", query.event_collection)
            raise QueryError(str(exc)) from exc

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


__all__ = ["BatchRunner", "Query", "QueryError", "TrendboardError"]
