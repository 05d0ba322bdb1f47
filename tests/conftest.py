"""tracegantt test configuration and fixtures."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import pytest

# Add src to path for imports
SRC_DIR = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_DIR))

from tracegantt.trace.span_model import Span  # noqa: E402


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the fixtures directory path."""
    return Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def traces_dir(fixtures_dir: Path) -> Path:
    """Return the directory holding trace JSON fixtures."""
    return fixtures_dir / "traces"


@pytest.fixture
def checkout_trace_path(traces_dir: Path) -> Path:
    """Return the path to checkout_trace.json."""
    return traces_dir / "checkout_trace.json"


@pytest.fixture
def checkout_payload(checkout_trace_path: Path) -> dict[str, Any]:
    """Decoded checkout trace payload."""
    return json.loads(checkout_trace_path.read_text(encoding="utf-8"))


@pytest.fixture
def example_payload() -> dict[str, Any]:
    """Root 0..160 with children given out of start order."""
    return {
        "span_id": "root",
        "service_name": "api",
        "operation_name": "GET /",
        "start_time": 0,
        "end_time": 160,
        "children": [
            {"span_id": "c110", "service_name": "svc-c", "operation_name": "op", "start_time": 110, "end_time": 150},
            {"span_id": "c50", "service_name": "svc-b", "operation_name": "op", "start_time": 50, "end_time": 90},
            {"span_id": "c10", "service_name": "svc-a", "operation_name": "op", "start_time": 10, "end_time": 40},
        ],
    }


def make_span(
    span_id: str,
    start: float,
    end: float,
    children: tuple[Span, ...] = (),
    service: Optional[str] = None,
    operation: str = "op",
) -> Span:
    """Build a Span with terse arguments."""
    return Span(
        span_id=span_id,
        service_name=service or f"svc-{span_id}",
        operation_name=operation,
        start_time=start,
        end_time=end,
        children=children,
    )
