"""Gantt-style timeline of a trace's span tree.

This module turns a layout into drawing calls:
- One row per span, bars positioned and sized by a linear time scale
- A fixed number of time-grid ticks with calendar-time labels
- Hover tooltips with span id, names, start/end and duration
- Dark mode toggle remembered in a cookie
"""
from __future__ import annotations

import html
import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Optional, Sequence, Union

from tracegantt.diagrams.surface import DrawingSurface, SvgSurface
from tracegantt.diagrams.tooltip import (
    TIME_UNITS,
    TOOLTIP_OFFSET_X,
    TOOLTIP_OFFSET_Y,
    Tooltip,
    format_timestamp,
)
from tracegantt.errors import RenderTargetUnavailableError
from tracegantt.layout.engine import LayoutResult, layout
from tracegantt.layout.scale import LinearScale
from tracegantt.trace.span_model import PositionedSpan, Timestamp
from tracegantt.trace.trace_model import Trace

logger = logging.getLogger(__name__)


# Timeline layout constants
CANVAS_WIDTH = 1110
PADDING = 20
ROW_HEIGHT = 50
BAR_HEIGHT = 20
ROWS_TOP = 100  # y of the first row
GRID_TOP = 50  # y of the tick labels and top of the grid lines
PLOT_LEFT = 400  # bars start right of the service-name column
PLOT_RIGHT_MARGIN = 100
EXTRA_HEIGHT = 200  # room for the tick labels above and slack below
TICK_COUNT = 4


@dataclass(frozen=True)
class RenderOptions:
    """Geometry and presentation settings for a timeline render."""

    canvas_width: int = CANVAS_WIDTH
    padding: int = PADDING
    row_height: int = ROW_HEIGHT
    bar_height: int = BAR_HEIGHT
    rows_top: int = ROWS_TOP
    grid_top: int = GRID_TOP
    plot_left: int = PLOT_LEFT
    plot_right_margin: int = PLOT_RIGHT_MARGIN
    tick_count: int = TICK_COUNT
    time_unit: str = "ns"
    theme: str = "light"
    search_url: str = "search-traces.html"

    def __post_init__(self) -> None:
        if self.time_unit not in TIME_UNITS:
            raise ValueError(
                f"time_unit must be one of {', '.join(TIME_UNITS)}, got {self.time_unit!r}"
            )
        if self.theme not in ("light", "dark"):
            raise ValueError(f"theme must be 'light' or 'dark', got {self.theme!r}")
        if self.tick_count < 0:
            raise ValueError("tick_count must not be negative")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RenderOptions:
        """Create options from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown render option(s): {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def plot_range(self) -> tuple[float, float]:
        return (float(self.plot_left), float(self.canvas_width - self.plot_right_margin))

    def content_height(self, row_count: int) -> int:
        return row_count * self.row_height + EXTRA_HEIGHT

    def row_y(self, row: int) -> int:
        return self.rows_top + row * self.row_height


def render(
    positioned: Sequence[PositionedSpan],
    domain: tuple[Timestamp, Timestamp],
    canvas_width: Optional[int],
    surface: Optional[DrawingSurface],
    options: Optional[RenderOptions] = None,
    tooltip: Optional[Tooltip] = None,
) -> Tooltip:
    """Draw positioned spans onto a surface.

    Args:
        positioned: Spans in row order, as produced by ``layout``.
        domain: Root span ``(start_time, end_time)``.
        canvas_width: Overrides ``options.canvas_width`` when given.
        surface: Target surface.
        options: Geometry settings; defaults to RenderOptions().
        tooltip: Hover handler to bind; a new Tooltip is created if omitted.

    Returns:
        The Tooltip bound to every bar.

    Raises:
        RenderTargetUnavailableError: If there is no usable surface.
    """
    if surface is None:
        raise RenderTargetUnavailableError("no drawing surface")
    if not surface.available:
        raise RenderTargetUnavailableError(f"{type(surface).__name__} is not available")

    options = options or RenderOptions()
    width = canvas_width if canvas_width is not None else options.canvas_width
    if width != options.canvas_width:
        options = RenderOptions.from_dict({**options.to_dict(), "canvas_width": width})
    tooltip = tooltip or Tooltip(time_unit=options.time_unit)

    x_scale = LinearScale(domain=domain, range=options.plot_range())
    total_height = options.content_height(len(positioned))

    surface.begin(
        width + options.padding * 2,
        total_height + options.padding * 2,
        options.padding,
    )

    for tick in x_scale.ticks(options.tick_count):
        x = x_scale(tick)
        surface.draw_line(x, options.grid_top, x, options.grid_top + total_height, "time-tick")
        surface.draw_text(
            x,
            options.grid_top,
            format_timestamp(tick, options.time_unit),
            "time-label",
            anchor="middle",
        )

    for span in positioned:
        y = options.row_y(span.row)
        surface.draw_text(0, y + 12, span.service_name, "span-label")
        handle = surface.draw_rect(
            x_scale(span.start_time),
            y,
            x_scale.width(span.start_time, span.end_time),
            options.bar_height,
            "span-bar",
            span_id=span.span_id,
        )
        surface.bind_hover(handle, span, tooltip, tooltip.content_for(span))

    surface.finish()
    logger.debug("Rendered %d bars on %s", len(positioned), type(surface).__name__)
    return tooltip


def _as_layout(source: Union[Trace, LayoutResult]) -> LayoutResult:
    if isinstance(source, LayoutResult):
        return source
    return layout(source)


def render_timeline_svg(
    source: Union[Trace, LayoutResult],
    options: Optional[RenderOptions] = None,
) -> str:
    """Render a trace (or an existing layout) as standalone SVG markup."""
    result = _as_layout(source)
    surface = SvgSurface()
    render(result.positioned, result.domain, None, surface, options)
    return surface.markup


def render_timeline_html(
    source: Union[Trace, LayoutResult],
    title: str = "Trace Timeline",
    options: Optional[RenderOptions] = None,
) -> str:
    """Render a timeline as an interactive HTML page.

    Args:
        source: The trace to visualize, or its layout.
        title: Page title.
        options: Geometry and theme settings.

    Returns:
        Complete HTML document string.
    """
    options = options or RenderOptions()
    result = _as_layout(source)
    svg = render_timeline_svg(result, options)
    root = result.root
    theme_attr = ' data-theme="dark"' if options.theme == "dark" else ""
    theme_icon = "☀️" if options.theme == "dark" else "🌙"

    return f'''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <style>
        :root {{
            --bg-color: #ffffff;
            --text-color: #1f2937;
            --border-color: #e5e7eb;
            --panel-bg: #f9fafb;
            --grid-color: #cccccc;
            --bar-color: steelblue;
            --muted-color: #6b7280;
        }}
        [data-theme="dark"] {{
            --bg-color: #1f2937;
            --text-color: #f9fafb;
            --border-color: #374151;
            --panel-bg: #111827;
            --grid-color: #4b5563;
            --bar-color: #60a5fa;
            --muted-color: #9ca3af;
        }}
        * {{
            margin: 0;
            padding: 0;
            box-sizing: border-box;
        }}
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: var(--bg-color);
            color: var(--text-color);
        }}
        header {{
            background: var(--panel-bg);
            border-bottom: 1px solid var(--border-color);
            padding: 1rem 1.5rem;
            display: flex;
            justify-content: space-between;
            align-items: center;
        }}
        .title {{
            font-size: 1.25rem;
            font-weight: 600;
        }}
        .subtitle {{
            font-size: 0.875rem;
            color: var(--muted-color);
        }}
        .controls {{
            display: flex;
            gap: 0.75rem;
            align-items: center;
        }}
        .back-to-search-traces {{
            color: var(--text-color);
            text-decoration: none;
            border: 1px solid var(--border-color);
            padding: 0.5rem 1rem;
            border-radius: 0.375rem;
            font-size: 0.875rem;
        }}
        .theme-btn {{
            background: transparent;
            border: 1px solid var(--border-color);
            color: var(--text-color);
            padding: 0.5rem;
            border-radius: 0.375rem;
            cursor: pointer;
            font-size: 1rem;
        }}
        #timeline-container {{
            padding: 1rem;
            overflow-x: auto;
        }}
        .time-tick {{
            stroke: var(--grid-color);
            stroke-width: 1;
            shape-rendering: crispEdges;
        }}
        .time-label, .span-label {{
            font-size: 15px;
            fill: var(--text-color);
        }}
        .span-bar {{
            fill: var(--bar-color);
        }}
        .span-bar:hover {{
            cursor: pointer;
        }}
        .tooltip {{
            position: absolute;
            z-index: 10;
            display: none;
            background: var(--panel-bg);
            color: var(--text-color);
            border: 1px solid var(--border-color);
            padding: 5px;
            border-radius: 3px;
            font-size: 0.8rem;
            white-space: pre-line;
        }}
    </style>
</head>
<body{theme_attr}>
    <header>
        <div>
            <div class="title">{html.escape(title)}</div>
            <div class="subtitle">{html.escape(root.service_name)} : {html.escape(root.operation_name)} &middot; {result.row_count} spans</div>
        </div>
        <div class="controls">
            <a class="back-to-search-traces" href="{html.escape(options.search_url, quote=True)}">&larr; Back to search</a>
            <button class="theme-btn" onclick="toggleTheme()" title="Toggle dark mode">{theme_icon}</button>
        </div>
    </header>
    <main id="timeline-container">
        {svg}
    </main>
    <div class="tooltip" id="tooltip"></div>

    <script>
    (function() {{
        const theme = readCookie('theme');
        if (theme === 'dark') {{
            document.body.setAttribute('data-theme', 'dark');
        }} else if (theme === 'light') {{
            document.body.removeAttribute('data-theme');
        }}
        syncThemeButton();

        const tooltip = document.getElementById('tooltip');
        document.querySelectorAll('.span-bar').forEach(function(bar) {{
            bar.addEventListener('mouseover', function() {{
                tooltip.textContent = bar.getAttribute('data-tooltip');
                tooltip.style.display = 'block';
            }});
            bar.addEventListener('mousemove', function(event) {{
                tooltip.style.left = (event.pageX + {TOOLTIP_OFFSET_X}) + 'px';
                tooltip.style.top = (event.pageY + {TOOLTIP_OFFSET_Y}) + 'px';
            }});
            bar.addEventListener('mouseout', function() {{
                tooltip.style.display = 'none';
            }});
        }});
    }})();

    function readCookie(name) {{
        const match = document.cookie.split('; ').find(function(row) {{
            return row.startsWith(name + '=');
        }});
        return match ? decodeURIComponent(match.split('=')[1]) : null;
    }}

    function syncThemeButton() {{
        const btn = document.querySelector('.theme-btn');
        btn.textContent = document.body.getAttribute('data-theme') === 'dark' ? '☀️' : '🌙';
    }}

    function toggleTheme() {{
        const body = document.body;
        const next = body.getAttribute('data-theme') === 'dark' ? 'light' : 'dark';
        if (next === 'dark') {{
            body.setAttribute('data-theme', 'dark');
        }} else {{
            body.removeAttribute('data-theme');
        }}
        document.cookie = 'theme=' + next + '; path=/; max-age=31536000';
        syncThemeButton();
    }}
    </script>
</body>
</html>'''
