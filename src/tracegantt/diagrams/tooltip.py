"""Hover tooltip content and state for timeline bars."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from tracegantt.trace.span_model import PositionedSpan

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Units per second for each supported trace time unit
TIME_UNITS: dict[str, int] = {
    "ns": 1_000_000_000,
    "us": 1_000_000,
    "ms": 1_000,
    "s": 1,
}

# Tooltip offset from the pointer, in pixels
TOOLTIP_OFFSET_X = 10
TOOLTIP_OFFSET_Y = -28


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_timestamp(t: float, time_unit: str = "ns") -> str:
    """Convert a trace timestamp to UTC calendar time.

    Raises:
        ValueError: If time_unit is not one of TIME_UNITS.
    """
    if time_unit not in TIME_UNITS:
        raise ValueError(
            f"Unknown time unit {time_unit!r}, expected one of {', '.join(TIME_UNITS)}"
        )
    try:
        moment = datetime.fromtimestamp(t / TIME_UNITS[time_unit], tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        # Outside the platform's datetime range; show the raw value
        return _format_number(t)
    return moment.strftime(TIMESTAMP_FORMAT)


def tooltip_lines(span: PositionedSpan, time_unit: str = "ns") -> list[str]:
    return [
        f"SpanId: {span.span_id}",
        f"Name: {span.service_name} : {span.operation_name}",
        f"Start Time: {format_timestamp(span.start_time, time_unit)}",
        f"End Time: {format_timestamp(span.end_time, time_unit)}",
        f"Duration: {_format_number(span.duration)}",
    ]


def tooltip_text(span: PositionedSpan, time_unit: str = "ns") -> str:
    return "\n".join(tooltip_lines(span, time_unit))


@dataclass
class Tooltip:
    """Tooltip state driven by hover events on timeline bars."""

    time_unit: str = "ns"
    visible: bool = False
    text: str = ""
    left: float = 0.0
    top: float = 0.0
    span_id: Optional[str] = None

    def content_for(self, span: PositionedSpan) -> str:
        return tooltip_text(span, self.time_unit)

    def on_hover_enter(self, span: PositionedSpan) -> None:
        self.text = self.content_for(span)
        self.span_id = span.span_id
        self.visible = True

    def on_hover_move(self, x: float, y: float) -> None:
        self.left = x + TOOLTIP_OFFSET_X
        self.top = y + TOOLTIP_OFFSET_Y

    def on_hover_leave(self) -> None:
        self.visible = False
        self.span_id = None
