"""Pytest configuration for timeline UI tests.

Run UI tests with:
    pytest tests/ui/ -m ui --browser chromium -v

Watch them in a visible browser:
    pytest tests/ui/ -m ui --headed --browser chromium -v --slowmo 500
"""
from __future__ import annotations

from pathlib import Path

import pytest


# Apply 'ui' marker to all tests in this directory
def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Add 'ui' marker to all tests in ui/ directory."""
    for item in items:
        if "ui" in Path(str(item.fspath)).parts:
            item.add_marker(pytest.mark.ui)


@pytest.fixture(scope="module")
def timeline_page(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Render the checkout fixture to an HTML page."""
    from tracegantt.layout.engine import layout
    from tracegantt.trace.trace_model import load_trace_json
    from tracegantt.utils.artifacts import write_render_artifacts

    trace_path = Path(__file__).parent.parent.parent / "fixtures" / "traces" / "checkout_trace.json"
    trace = load_trace_json(trace_path)
    out_dir = tmp_path_factory.mktemp("timeline")
    written = write_render_artifacts(
        out_dir=out_dir,
        trace=trace,
        layout_result=layout(trace),
        formats=["html"],
    )
    return written["html"]
