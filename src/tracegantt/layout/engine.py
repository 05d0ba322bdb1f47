"""Row assignment for span trees.

Walks a span tree depth-first (pre-order) and gives every span its own
timeline row. Children are visited in ascending ``start_time`` order with
ties kept in input order, so a span's whole subtree occupies a contiguous
block of rows directly below it.

The walk uses an explicit stack and a per-call context, so layout is a pure
function of its input: no shared counters and no mutation of the tree.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from tracegantt.errors import CyclicTraceError, InvalidTraceError
from tracegantt.trace.span_model import DEFAULT_MAX_DEPTH, PositionedSpan, Span, Timestamp
from tracegantt.trace.trace_model import Trace, parse_trace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutResult:
    """Positioned spans in row order plus the number of rows they need."""

    positioned: tuple[PositionedSpan, ...]
    row_count: int
    domain: tuple[Timestamp, Timestamp]

    @property
    def root(self) -> PositionedSpan:
        return self.positioned[0]

    @property
    def descendants(self) -> tuple[PositionedSpan, ...]:
        """Every positioned span except the root."""
        return self.positioned[1:]

    def by_span_id(self) -> dict[str, PositionedSpan]:
        return {p.span_id: p for p in self.positioned}

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": list(self.domain),
            "row_count": self.row_count,
            "positioned": [p.to_dict() for p in self.positioned],
        }


@dataclass
class _LayoutContext:
    """Mutable state for a single layout call."""

    max_depth: int
    next_row: int = 0
    positioned: list[PositionedSpan] = field(default_factory=list)
    # id() of spans on the current root-to-node path
    on_path: set[int] = field(default_factory=set)

    def place(self, span: Span, depth: int, parent: Optional[Span]) -> None:
        self.positioned.append(
            PositionedSpan(
                span_id=span.span_id,
                service_name=span.service_name,
                operation_name=span.operation_name,
                start_time=span.start_time,
                end_time=span.end_time,
                row=self.next_row,
                depth=depth,
                parent_span_id=parent.span_id if parent is not None else None,
            )
        )
        self.next_row += 1


def ordered_children(span: Span) -> tuple[Span, ...]:
    """Children sorted by ascending start_time; equal starts keep input order.

    Returns a new tuple and leaves ``span`` untouched.
    """
    return tuple(sorted(span.children, key=lambda child: child.start_time))


def _coerce_root(root: Union[Span, Trace, Mapping[str, Any], None], max_depth: int) -> Span:
    if root is None:
        raise InvalidTraceError("trace has no root span")
    if isinstance(root, Trace):
        return root.root
    if isinstance(root, Span):
        return root
    if isinstance(root, Mapping):
        return parse_trace(root, max_depth=max_depth).root
    raise InvalidTraceError(f"cannot lay out a {type(root).__name__}")


def layout(
    root: Union[Span, Trace, Mapping[str, Any], None],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> LayoutResult:
    """Assign a timeline row to every span in the tree under ``root``.

    Args:
        root: Root span, a Trace, or a decoded JSON root span object.
        max_depth: Deepest nesting accepted before the tree is rejected.

    Returns:
        LayoutResult with one PositionedSpan per node, ordered by row.

    Raises:
        InvalidTraceError: If the root is missing or malformed.
        CyclicTraceError: If a span is its own ancestor or nesting exceeds
            max_depth.
    """
    span = _coerce_root(root, max_depth)
    ctx = _LayoutContext(max_depth=max_depth)

    # Entries are (span, depth, parent, leaving). A "leaving" entry pops the
    # span off the ancestor path once its subtree is done.
    stack: list[tuple[Span, int, Optional[Span], bool]] = [(span, 0, None, False)]
    while stack:
        node, depth, parent, leaving = stack.pop()
        if leaving:
            ctx.on_path.discard(id(node))
            continue

        if depth > ctx.max_depth:
            raise CyclicTraceError(
                f"span {node.span_id!r} is nested deeper than {ctx.max_depth} levels"
            )
        if id(node) in ctx.on_path:
            raise CyclicTraceError(f"span {node.span_id!r} is its own ancestor")

        ctx.place(node, depth, parent)
        ctx.on_path.add(id(node))
        stack.append((node, depth, parent, True))
        for child in reversed(ordered_children(node)):
            stack.append((child, depth + 1, node, False))

    result = LayoutResult(
        positioned=tuple(ctx.positioned),
        row_count=ctx.next_row,
        domain=(span.start_time, span.end_time),
    )
    logger.debug(
        "Laid out %d spans for root %s over domain %s",
        result.row_count,
        span.span_id,
        result.domain,
    )
    return result
