"""Client for the trace API's Gantt chart endpoint."""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from tracegantt.errors import InvalidTraceError, TraceFetchError
from tracegantt.trace.span_model import DEFAULT_MAX_DEPTH
from tracegantt.trace.trace_model import Trace, parse_trace

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "api/traces/ganttchart"
DEFAULT_START_EPOCH = "now-3h"
DEFAULT_END_EPOCH = "now"


def build_search_body(
    trace_id: str,
    start_epoch: str = DEFAULT_START_EPOCH,
    end_epoch: str = DEFAULT_END_EPOCH,
) -> dict[str, str]:
    return {
        "searchText": f"trace_id={trace_id}",
        "startEpoch": start_epoch,
        "endEpoch": end_epoch,
    }


class TraceFetchClient:
    """Fetch one trace's span tree from the trace API.

    No retries are attempted; a failed fetch raises TraceFetchError and the
    caller decides whether to fetch again.
    """

    def __init__(
        self,
        base_url: str,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.endpoint = endpoint.lstrip("/")
        self.timeout = timeout
        self.max_depth = max_depth
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.endpoint}"

    def fetch_payload(
        self,
        trace_id: str,
        start_epoch: str = DEFAULT_START_EPOCH,
        end_epoch: str = DEFAULT_END_EPOCH,
    ) -> Any:
        """POST the search and return the decoded JSON body."""
        body = build_search_body(trace_id, start_epoch, end_epoch)
        logger.info("Fetching trace %s from %s", trace_id, self.url)
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(
                    self.url,
                    json=body,
                    headers={
                        "Content-Type": "application/json; charset=utf-8",
                        "Accept": "*/*",
                    },
                )
        except httpx.HTTPError as exc:
            raise TraceFetchError(f"trace API unreachable at {self.url}: {exc}") from exc

        if resp.status_code >= 400:
            raise TraceFetchError(f"trace API HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            return resp.json()
        except ValueError as exc:
            raise InvalidTraceError(f"trace API returned non-JSON: {resp.text[:200]}") from exc

    def fetch(
        self,
        trace_id: str,
        start_epoch: str = DEFAULT_START_EPOCH,
        end_epoch: str = DEFAULT_END_EPOCH,
    ) -> Trace:
        """Fetch and parse one trace.

        Raises:
            TraceFetchError: If the API can't be reached or returns an error status.
            InvalidTraceError: If the response isn't a valid span tree.
        """
        payload = self.fetch_payload(trace_id, start_epoch, end_epoch)
        trace = parse_trace(payload, max_depth=self.max_depth)
        logger.info("Fetched trace %s with %d spans", trace_id, trace.span_count())
        return trace
