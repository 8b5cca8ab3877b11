"""Keen.io analysis API client."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .query import BatchRunner, Query, QueryError

logger = logging.getLogger("trendboard")


class KeenClient(BatchRunner):
    """Run analysis queries against the Keen.io REST API with a read key."""

    name = "keen"

    def __init__(
        self,
        project_id: str,
        read_key: str,
        api_url: str = "https://api.keen.io/3.0",
        timeout: float = 30,
        max_workers: int = 4,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(max_workers=max_workers)
        self.project_id = project_id
        self.read_key = read_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def query_url(self, query: Query) -> str:
        return f"{self.api_url}/projects/{self.project_id}/queries/{query.analysis_type}"

    def execute(self, query: Query) -> Dict[str, Any]:
        headers = {"Authorization": self.read_key, "Content-Type": "application/json"}
        try:
            resp = self.session.post(
                self.query_url(query),
                json=query.to_params(),
                headers=headers,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error("Keen query on %s failed: %s", query.event_collection, e)
            raise QueryError(f"Unable to reach analytics service: {e}") from e

        if resp.status_code >= 400:
            raise QueryError(self._error_message(resp), status=resp.status_code)

        try:
            body = resp.json()
        except ValueError as e:
            raise QueryError("Malformed response from analytics service") from e
        if not isinstance(body, dict) or "result" not in body:
            raise QueryError("Malformed response from analytics service")
        return {"result": body["result"]}

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"Analytics service returned HTTP {resp.status_code}"


__all__ = ["KeenClient"]
