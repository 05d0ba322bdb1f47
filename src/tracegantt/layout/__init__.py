"""Layout engine: row assignment and time-to-coordinate mapping."""

from tracegantt.layout.engine import LayoutResult, layout, ordered_children
from tracegantt.layout.scale import LinearScale, scale

__all__ = [
    "LayoutResult",
    "LinearScale",
    "layout",
    "ordered_children",
    "scale",
]
