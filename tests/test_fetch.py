"""Tests for the trace API client."""
from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from tracegantt.errors import CyclicTraceError, InvalidTraceError, TraceFetchError
from tracegantt.fetch import TraceFetchClient, build_search_body


def _client(handler: Any, **kwargs: Any) -> TraceFetchClient:
    return TraceFetchClient(
        base_url="http://tracing.local:4000/",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestSearchBody:
    """Tests for the request body."""

    def test_defaults(self) -> None:
        assert build_search_body("abc") == {
            "searchText": "trace_id=abc",
            "startEpoch": "now-3h",
            "endEpoch": "now",
        }

    def test_custom_window(self) -> None:
        body = build_search_body("abc", "now-1d", "now-1h")
        assert body["startEpoch"] == "now-1d"
        assert body["endEpoch"] == "now-1h"


class TestTraceFetchClient:
    """Tests for TraceFetchClient against a mock transport."""

    def test_requires_base_url(self) -> None:
        with pytest.raises(ValueError):
            TraceFetchClient(base_url="")

    def test_url_joins_base_and_endpoint(self) -> None:
        client = TraceFetchClient(base_url="http://h:1/", endpoint="/api/traces/ganttchart")
        assert client.url == "http://h:1/api/traces/ganttchart"

    def test_posts_search_and_parses_trace(self, checkout_payload: dict[str, Any]) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=checkout_payload)

        trace = _client(handler).fetch("a1f0c3d2e4b50001")

        assert trace.span_count() == 6
        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://tracing.local:4000/api/traces/ganttchart"
        assert request.headers["content-type"].startswith("application/json")
        assert json.loads(request.content) == {
            "searchText": "trace_id=a1f0c3d2e4b50001",
            "startEpoch": "now-3h",
            "endEpoch": "now",
        }

    def test_window_is_forwarded(self, example_payload: dict[str, Any]) -> None:
        bodies: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=example_payload)

        _client(handler).fetch("t1", "now-1h", "now-5m")

        assert bodies[0]["startEpoch"] == "now-1h"
        assert bodies[0]["endEpoch"] == "now-5m"

    def test_http_error_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="internal error")

        with pytest.raises(TraceFetchError, match="HTTP 500"):
            _client(handler).fetch("t1")

    def test_connection_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TraceFetchError, match="unreachable"):
            _client(handler).fetch("t1")

    def test_non_json_body_raises_invalid_trace(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>login</html>")

        with pytest.raises(InvalidTraceError, match="non-JSON"):
            _client(handler).fetch("t1")

    def test_null_body_raises_invalid_trace(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=None)

        with pytest.raises(InvalidTraceError):
            _client(handler).fetch("t1")

    def test_max_depth_is_applied(self) -> None:
        payload: dict[str, Any] = {"span_id": "n0", "start_time": 0, "end_time": 1}
        node = payload
        for i in range(1, 10):
            child = {"span_id": f"n{i}", "start_time": 0, "end_time": 1}
            node["children"] = [child]
            node = child

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        with pytest.raises(CyclicTraceError):
            _client(handler, max_depth=3).fetch("t1")

    def test_fetch_payload_returns_raw_json(self, example_payload: dict[str, Any]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"trace": example_payload})

        assert _client(handler).fetch_payload("t1") == {"trace": example_payload}
