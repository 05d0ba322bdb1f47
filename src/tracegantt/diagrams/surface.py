"""Drawing surfaces the timeline renderer draws onto.

A surface only knows about primitive shapes (lines, text, rectangles) and
hover bindings. ``HeadlessSurface`` keeps everything in memory and can replay
pointer events, which is what the tests drive. ``SvgSurface`` produces SVG
markup for the HTML timeline page.
"""
from __future__ import annotations

import html
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from tracegantt.trace.span_model import PositionedSpan


class HoverHandler(Protocol):
    """Receives pointer events for a hoverable shape."""

    def on_hover_enter(self, span: PositionedSpan) -> None: ...

    def on_hover_move(self, x: float, y: float) -> None: ...

    def on_hover_leave(self) -> None: ...


@dataclass
class Shape:
    """A primitive drawn on a surface."""

    kind: str  # line | text | rect
    css_class: str
    attrs: dict[str, Any] = field(default_factory=dict)
    text: Optional[str] = None
    span_id: Optional[str] = None


@dataclass
class HoverBinding:
    span: PositionedSpan
    handler: HoverHandler
    content: str


class DrawingSurface(ABC):
    """Minimal set of drawing operations used by the timeline renderer."""

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    def begin(self, width: float, height: float, padding: float = 0.0) -> None:
        """Start a fresh canvas of the given outer size."""

    @abstractmethod
    def draw_line(self, x1: float, y1: float, x2: float, y2: float, css_class: str) -> int:
        """Draw a line and return its handle."""

    @abstractmethod
    def draw_text(
        self, x: float, y: float, text: str, css_class: str, anchor: str = "start"
    ) -> int:
        """Draw a text label and return its handle."""

    @abstractmethod
    def draw_rect(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        css_class: str,
        span_id: Optional[str] = None,
    ) -> int:
        """Draw a rectangle and return its handle."""

    @abstractmethod
    def bind_hover(
        self, handle: int, span: PositionedSpan, handler: HoverHandler, content: str
    ) -> None:
        """Attach hover handling to a previously drawn shape."""

    def finish(self) -> None:
        """Called once after the last shape is drawn."""


class HeadlessSurface(DrawingSurface):
    """In-memory surface that records shapes and replays hover events."""

    def __init__(self, available: bool = True) -> None:
        self._available = available
        self.width = 0.0
        self.height = 0.0
        self.padding = 0.0
        self.shapes: list[Shape] = []
        self.bindings: dict[int, HoverBinding] = {}
        self.finished = False
        self._active: Optional[HoverBinding] = None

    @property
    def available(self) -> bool:
        return self._available

    def begin(self, width: float, height: float, padding: float = 0.0) -> None:
        self.width = width
        self.height = height
        self.padding = padding
        self.shapes = []
        self.bindings = {}
        self.finished = False
        self._active = None

    def _add(self, shape: Shape) -> int:
        self.shapes.append(shape)
        return len(self.shapes) - 1

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, css_class: str) -> int:
        return self._add(Shape("line", css_class, {"x1": x1, "y1": y1, "x2": x2, "y2": y2}))

    def draw_text(
        self, x: float, y: float, text: str, css_class: str, anchor: str = "start"
    ) -> int:
        return self._add(Shape("text", css_class, {"x": x, "y": y, "anchor": anchor}, text=text))

    def draw_rect(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        css_class: str,
        span_id: Optional[str] = None,
    ) -> int:
        return self._add(
            Shape(
                "rect",
                css_class,
                {"x": x, "y": y, "width": width, "height": height},
                span_id=span_id,
            )
        )

    def bind_hover(
        self, handle: int, span: PositionedSpan, handler: HoverHandler, content: str
    ) -> None:
        self.bindings[handle] = HoverBinding(span=span, handler=handler, content=content)

    def finish(self) -> None:
        self.finished = True

    def shapes_of(self, kind: str, css_class: Optional[str] = None) -> list[Shape]:
        return [
            s for s in self.shapes
            if s.kind == kind and (css_class is None or s.css_class == css_class)
        ]

    def rect_for(self, span_id: str) -> Shape:
        for shape in self.shapes:
            if shape.kind == "rect" and shape.span_id == span_id:
                return shape
        raise KeyError(span_id)

    def simulate_enter(self, span_id: str) -> None:
        """Fire pointer-enter on the bar drawn for ``span_id``."""
        for binding in self.bindings.values():
            if binding.span.span_id == span_id:
                self._active = binding
                binding.handler.on_hover_enter(binding.span)
                return
        raise KeyError(span_id)

    def simulate_move(self, x: float, y: float) -> None:
        if self._active is not None:
            self._active.handler.on_hover_move(x, y)

    def simulate_leave(self) -> None:
        if self._active is not None:
            self._active.handler.on_hover_leave()
            self._active = None


def _fmt(value: float) -> str:
    """Compact number formatting for SVG attributes."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


class SvgSurface(DrawingSurface):
    """Builds an SVG document; hover content is emitted as data attributes."""

    def __init__(self) -> None:
        self.width = 0.0
        self.height = 0.0
        self.padding = 0.0
        self._elements: list[dict[str, Any]] = []
        self._markup: Optional[str] = None

    def begin(self, width: float, height: float, padding: float = 0.0) -> None:
        self.width = width
        self.height = height
        self.padding = padding
        self._elements = []
        self._markup = None

    def _add(self, tag: str, attrs: dict[str, Any], text: Optional[str] = None) -> int:
        self._elements.append({"tag": tag, "attrs": attrs, "text": text})
        return len(self._elements) - 1

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, css_class: str) -> int:
        return self._add(
            "line",
            {"class": css_class, "x1": _fmt(x1), "y1": _fmt(y1), "x2": _fmt(x2), "y2": _fmt(y2)},
        )

    def draw_text(
        self, x: float, y: float, text: str, css_class: str, anchor: str = "start"
    ) -> int:
        return self._add(
            "text",
            {"class": css_class, "x": _fmt(x), "y": _fmt(y), "text-anchor": anchor},
            text=text,
        )

    def draw_rect(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        css_class: str,
        span_id: Optional[str] = None,
    ) -> int:
        attrs = {
            "class": css_class,
            "x": _fmt(x),
            "y": _fmt(y),
            "width": _fmt(width),
            "height": _fmt(height),
        }
        if span_id is not None:
            attrs["data-span-id"] = span_id
        return self._add("rect", attrs)

    def bind_hover(
        self, handle: int, span: PositionedSpan, handler: HoverHandler, content: str
    ) -> None:
        attrs = self._elements[handle]["attrs"]
        attrs["data-span-id"] = span.span_id
        attrs["data-tooltip"] = content

    def finish(self) -> None:
        parts = []
        for el in self._elements:
            attrs = " ".join(
                f'{name}="{html.escape(str(value), quote=True)}"'
                for name, value in el["attrs"].items()
            )
            if el["text"] is None:
                parts.append(f'<{el["tag"]} {attrs} />')
            else:
                parts.append(f'<{el["tag"]} {attrs}>{html.escape(el["text"])}</{el["tag"]}>')
        body = "\n        ".join(parts)
        self._markup = f'''<svg id="timeline" xmlns="http://www.w3.org/2000/svg" width="{_fmt(self.width)}" height="{_fmt(self.height)}" viewBox="0 0 {_fmt(self.width)} {_fmt(self.height)}">
    <g transform="translate({_fmt(self.padding)},{_fmt(self.padding)})">
        {body}
    </g>
</svg>'''

    @property
    def markup(self) -> str:
        if self._markup is None:
            raise RuntimeError("SvgSurface.finish() has not been called")
        return self._markup
