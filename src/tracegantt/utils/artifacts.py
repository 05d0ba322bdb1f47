from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from tracegantt.diagrams.timeline_view import (
    RenderOptions,
    render_timeline_html,
    render_timeline_svg,
)
from tracegantt.layout.engine import LayoutResult
from tracegantt.trace.trace_model import Trace

logger = logging.getLogger(__name__)

ARTIFACT_FORMATS = ("html", "svg", "json")


def write_render_artifacts(
    *,
    out_dir: Path,
    trace: Trace,
    layout_result: LayoutResult,
    options: Optional[RenderOptions] = None,
    formats: Sequence[str] = ARTIFACT_FORMATS,
    title: Optional[str] = None,
) -> dict[str, Path]:
    """Write timeline artifacts for one trace.

    Creates (depending on ``formats``):
    - timeline.html: Interactive timeline page
    - timeline.svg: Standalone timeline drawing
    - layout.json: Row assignment and domain
    - trace.json: The normalized span tree

    Returns:
        Mapping of format name to written path.
    """
    unknown = [f for f in formats if f not in ARTIFACT_FORMATS]
    if unknown:
        raise ValueError(f"Unknown artifact format(s): {', '.join(unknown)}")

    options = options or RenderOptions()
    out_dir.mkdir(parents=True, exist_ok=True)
    written: dict[str, Path] = {}

    if "html" in formats:
        page_title = title or f"Trace {trace.trace_root_id}"
        path = out_dir / "timeline.html"
        path.write_text(render_timeline_html(layout_result, title=page_title, options=options), encoding="utf-8")
        written["html"] = path

    if "svg" in formats:
        path = out_dir / "timeline.svg"
        path.write_text(render_timeline_svg(layout_result, options), encoding="utf-8")
        written["svg"] = path

    if "json" in formats:
        path = out_dir / "layout.json"
        path.write_text(
            json.dumps(layout_result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )
        written["json"] = path
        trace_path = out_dir / "trace.json"
        trace_path.write_text(
            json.dumps(trace.root.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )
        written["trace"] = trace_path

    for fmt, path in written.items():
        logger.info("Wrote %s artifact to %s", fmt, path)
    return written
