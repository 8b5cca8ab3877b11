"""Local DuckDB event store answering Keen-style analysis queries."""

from __future__ import annotations

import glob
import logging
import os
import re
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import duckdb
import pandas as pd

from .query import BatchRunner, Query, QueryError

logger = logging.getLogger("trendboard")

SCHEMA = "collections"

_NAME_RE = re.compile(r"^[A-Za-z0-9_\-]+$")
_TIMEFRAME_RE = re.compile(r"^(this|previous)_(\d+)_([a-z]+?)s?$")

# unit -> (pandas period alias, DuckDB date_trunc unit, DateOffset keyword)
_UNITS: Dict[str, Tuple[str, str, str]] = {
    "minute": ("min", "minute", "minutes"),
    "hour": ("h", "hour", "hours"),
    "day": ("D", "day", "days"),
    "week": ("W-SUN", "week", "weeks"),  # weeks start on Monday
    "month": ("M", "month", "months"),
    "year": ("Y", "year", "years"),
}

INTERVALS: Dict[str, str] = {
    "minutely": "minute",
    "hourly": "hour",
    "daily": "day",
    "weekly": "week",
    "monthly": "month",
    "yearly": "year",
}

_AGGREGATES: Dict[str, str] = {
    "count": "COUNT(*)",
    "count_unique": "COUNT(DISTINCT {col})",
    "sum": "SUM({col})",
    "average": "AVG({col})",
    "minimum": "MIN({col})",
    "maximum": "MAX({col})",
}


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _py(value: Any) -> Any:
    """Turn numpy scalars and NaN into plain JSON-friendly values."""
    if value is None:
        return None
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float) and value != value:
        return None
    return value


def floor_to(ts: pd.Timestamp, unit: str) -> pd.Timestamp:
    return ts.to_period(_UNITS[unit][0]).start_time


def step(unit: str, n: int = 1) -> pd.DateOffset:
    return pd.DateOffset(**{_UNITS[unit][2]: n})


def resolve_timeframe(timeframe: Optional[str], now: pd.Timestamp) -> Tuple[Optional[pd.Timestamp], pd.Timestamp]:
    """Translate ``this_7_days`` / ``previous_2_weeks`` into ``[start, end)``.

    ``this_`` includes the current, unfinished unit; ``previous_`` stops at
    the start of it. No timeframe means everything up to ``now``.
    """
    if not timeframe:
        return None, now
    match = _TIMEFRAME_RE.match(timeframe)
    if not match or match.group(3) not in _UNITS:
        raise QueryError(f"Unsupported timeframe: {timeframe}")
    kind, count, unit = match.group(1), int(match.group(2)), match.group(3)
    if count < 1:
        raise QueryError(f"Unsupported timeframe: {timeframe}")

    end = floor_to(now, unit)
    if kind == "this":
        end = end + step(unit)
    return end - step(unit, count), end


def bucket_starts(start: pd.Timestamp, end: pd.Timestamp, unit: str) -> List[pd.Timestamp]:
    out = []
    cursor = floor_to(start, unit)
    while cursor < end:
        out.append(cursor)
        cursor = cursor + step(unit)
    return out


class EventStore(BatchRunner):
    """Own event loading and Keen-compatible aggregation on DuckDB.

    Storage backend: DuckDB (.duckdb file)
    - Source data: CSV files matched by Config.EVENTS_CSV_GLOB, one per
      event collection (``build_jobs.csv`` -> ``collections.build_jobs``)
    - Nested event properties are flattened to dotted column names
      (``job.build``); every table carries a ``timestamp`` column in UTC
    """

    name = "duckdb"

    def __init__(self, config: Mapping[str, Any], max_workers: int = 4, now=None):
        super().__init__(max_workers=max_workers)
        self.config = config
        self._con: Optional[duckdb.DuckDBPyConnection] = None
        self._catalog = ""
        self._lock = threading.Lock()
        self._load_lock = threading.RLock()
        self._loaded = False
        self._now = now

    # ---------- DuckDB helpers ----------

    def _connect(self) -> duckdb.DuckDBPyConnection:
        with self._lock:
            if self._con is None:
                db_path = str(self.config.get("DUCKDB_PATH"))
                if db_path != ":memory:":
                    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
                con = duckdb.connect(db_path)
                # the attached catalog is named after the file, which may clash with SCHEMA
                self._catalog = con.execute("SELECT current_database();").fetchone()[0]
                con.execute(f"CREATE SCHEMA IF NOT EXISTS {_quote(self._catalog)}.{SCHEMA};")
                self._con = con
            return self._con

    def _table(self, collection: str) -> str:
        return f"{_quote(self._catalog)}.{SCHEMA}.{_quote(collection)}"

    def collections(self) -> List[str]:
        con = self._connect()
        rows = con.cursor().execute(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_catalog = ? AND table_schema = ? ORDER BY table_name;",
            [self._catalog, SCHEMA],
        ).fetchall()
        return [r[0] for r in rows]

    def _columns(self, cur: duckdb.DuckDBPyConnection, collection: str) -> List[str]:
        rows = cur.execute(
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_catalog = ? AND table_schema = ? AND table_name = ?;",
            [self._catalog, SCHEMA, collection],
        ).fetchall()
        return [r[0] for r in rows]

    # ---------- loading ----------

    def rebuild_from_csv(self) -> int:
        """Reload every collection from the CSV files matched by EVENTS_CSV_GLOB.

        Queries wait until every file is stored.
        """
        csv_glob = self.config.get("EVENTS_CSV_GLOB", "data/events/*.csv")
        files = sorted(glob.glob(csv_glob))
        if not files:
            logger.warning("No event CSV files found for glob %s", csv_glob)
            return 0

        with self._load_lock:
            logger.info("Loading %d event collection(s) from %s", len(files), csv_glob)
            for path in files:
                collection = os.path.splitext(os.path.basename(path))[0]
                self._store(collection, pd.read_csv(path))
            self._loaded = True
        return len(files)

    def set_events(self, collection: str, events: Union[pd.DataFrame, Iterable[Dict[str, Any]]]) -> None:
        """Replace ``collections.<collection>`` with the given events.

        ``events`` is a DataFrame or an iterable of (possibly nested) event
        dicts as sent to the analytics service. Explicitly stored events
        disable the lazy CSV load.
        """
        with self._load_lock:
            self._store(collection, events)
            self._loaded = True

    def _store(self, collection: str, events: Union[pd.DataFrame, Iterable[Dict[str, Any]]]) -> None:
        if not _NAME_RE.match(collection or ""):
            raise ValueError(f"Invalid event collection name: {collection!r}")

        if isinstance(events, pd.DataFrame):
            df = events.copy()
        else:
            df = pd.json_normalize(list(events))

        if "timestamp" not in df.columns:
            if "keen.timestamp" not in df.columns:
                raise ValueError(f"Events for {collection} have no timestamp column")
            df = df.rename(columns={"keen.timestamp": "timestamp"})
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce").dt.tz_localize(None)
        df = df.dropna(subset=["timestamp"]).reset_index(drop=True)

        con = self._connect()
        with self._lock:
            con.register("tmp_events", df)
            try:
                con.execute(f"CREATE OR REPLACE TABLE {self._table(collection)} AS SELECT * FROM tmp_events;")
            finally:
                con.unregister("tmp_events")
        logger.info("Stored %d event(s) in %s.%s", len(df), SCHEMA, collection)

    def _ensure_data(self) -> None:
        if self._loaded:
            return
        with self._load_lock:
            if self._loaded:
                return
            if not self.collections():
                logger.info("Event store is empty; attempting to build from CSV.")
                self.rebuild_from_csv()
            self._loaded = True

    # ---------- queries ----------

    def now(self) -> pd.Timestamp:
        if self._now is not None:
            return pd.Timestamp(self._now)
        return pd.Timestamp.now(tz="UTC").tz_localize(None)

    def execute(self, query: Query) -> Dict[str, Any]:
        self._ensure_data()
        cur = self._connect().cursor()
        try:
            return {"result": self._aggregate(cur, query)}
        finally:
            cur.close()

    def _aggregate(self, cur: duckdb.DuckDBPyConnection, query: Query) -> Any:
        collection = query.event_collection
        if not _NAME_RE.match(collection or ""):
            raise QueryError(f"Invalid event collection: {collection}")
        columns = self._columns(cur, collection)
        if not columns:
            raise QueryError(f"Event collection not found: {collection}")

        template = _AGGREGATES.get(query.analysis_type)
        if template is None:
            raise QueryError(f"Unsupported analysis type: {query.analysis_type}")
        if "{col}" in template:
            if query.target_property not in columns:
                raise QueryError(f"Unknown target property: {query.target_property}")
            agg = template.format(col=_quote(query.target_property))
        else:
            agg = template
        if query.group_by and query.group_by not in columns:
            raise QueryError(f"Unknown group_by property: {query.group_by}")

        interval_unit = None
        if query.interval:
            interval_unit = INTERVALS.get(query.interval)
            if interval_unit is None:
                raise QueryError(f"Unsupported interval: {query.interval}")

        # shift to the requested timezone, all bucketing happens in local time
        offset = int(query.timezone or 0)
        local_ts = f'(CAST("timestamp" AS TIMESTAMP) + to_seconds({offset}))'
        now = self.now() + pd.Timedelta(seconds=offset)
        start, end = resolve_timeframe(query.timeframe, now)

        where = [f"{local_ts} < ?"]
        params: List[Any] = [end.to_pydatetime()]
        if start is not None:
            where.append(f"{local_ts} >= ?")
            params.append(start.to_pydatetime())

        select = []
        group = []
        if interval_unit:
            select.append(f"date_trunc('{_UNITS[interval_unit][1]}', {local_ts}) AS bucket")
            group.append("bucket")
        if query.group_by:
            select.append(f"{_quote(query.group_by)} AS grp")
            group.append("grp")
        select.append(f"{agg} AS result")

        sql = f"SELECT {', '.join(select)} FROM {self._table(collection)} WHERE {' AND '.join(where)}"
        if group:
            sql += f" GROUP BY {', '.join(group)}"
        df = cur.execute(sql, params).df()

        is_count = query.analysis_type.startswith("count")

        def value_of(r: Any) -> Any:
            if r is None or pd.isna(r):
                return 0 if is_count else None
            return int(r) if is_count else _py(r)

        if not interval_unit:
            if not query.group_by:
                return value_of(df["result"].iloc[0]) if len(df) else value_of(None)
            df = df.dropna(subset=["grp"]).sort_values("grp")
            return [{query.group_by: _py(g), "result": value_of(r)} for g, r in zip(df["grp"], df["result"])]

        if start is None:
            first = df["bucket"].min() if len(df) else end
            start = floor_to(pd.Timestamp(first), interval_unit)
        buckets = bucket_starts(start, end, interval_unit)

        if query.group_by:
            df = df.dropna(subset=["grp"])
            if df.empty:
                table = pd.DataFrame(index=buckets)
            else:
                table = df.pivot_table(index="bucket", columns="grp", values="result", aggfunc="sum")
                table = table.reindex(buckets)
        else:
            table = df.set_index("bucket")["result"].reindex(buckets)

        out = []
        for bucket in buckets:
            bucket_end = min(bucket + step(interval_unit), end)
            timeframe = {"start": max(bucket, start).isoformat(), "end": bucket_end.isoformat()}
            if query.group_by:
                row = table.loc[bucket]
                value = [
                    {query.group_by: _py(g), "result": value_of(r)}
                    for g, r in row.items()
                ]
            else:
                r = table.loc[bucket]
                value = value_of(r)
            out.append({"timeframe": timeframe, "value": value})
        return out


__all__ = ["EventStore", "INTERVALS", "bucket_starts", "resolve_timeframe"]
