from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from tracegantt.errors import CyclicTraceError, InvalidTraceError

Timestamp = Union[int, float]

# Nesting limit for untrusted payloads; deeper trees are rejected as cyclic
DEFAULT_MAX_DEPTH = 10_000


def _coerce_timestamp(node: Mapping[str, Any], key: str) -> Timestamp:
    """Read a numeric timestamp from a raw span mapping."""
    if key not in node or node[key] is None:
        raise InvalidTraceError(
            f"span {node.get('span_id', '<unknown>')!r} is missing {key}"
        )
    value = node[key]
    # bool is an int subclass; a JSON true/false is never a timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTraceError(
            f"span {node.get('span_id', '<unknown>')!r} has non-numeric {key}: {value!r}"
        )
    return value


def _label(node: Mapping[str, Any], key: str) -> str:
    value = node.get(key)
    return "" if value is None else str(value)


def _raw_children(node: Mapping[str, Any]) -> list[Any]:
    """Return the raw children list, treating null and absent as empty."""
    children = node.get("children")
    if children is None:
        return []
    if not isinstance(children, list):
        raise InvalidTraceError(
            f"span {node.get('span_id', '<unknown>')!r} has children of type "
            f"{type(children).__name__}, expected a list"
        )
    return children


@dataclass(frozen=True)
class Span:
    """One timed operation in a trace, with its nested child operations."""

    span_id: str
    service_name: str
    operation_name: str

    # Timing, in the trace's time unit (nanoseconds by default)
    start_time: Timestamp
    end_time: Timestamp

    children: tuple[Span, ...] = ()

    parent_span_id: Optional[str] = None

    @property
    def duration(self) -> Timestamp:
        return self.end_time - self.start_time

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @classmethod
    def from_dict(cls, payload: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Span:
        """Build a span tree from a decoded JSON object.

        The tree is built bottom-up with an explicit stack so arbitrarily deep
        payloads do not hit the interpreter recursion limit. The payload itself
        is never modified.

        Raises:
            InvalidTraceError: If any node is not an object, lacks numeric
                start_time/end_time, or has a non-list children value.
            CyclicTraceError: If nesting exceeds max_depth.
        """
        if not isinstance(payload, Mapping):
            raise InvalidTraceError(
                f"span must be a JSON object, got {type(payload).__name__}"
            )

        built: dict[int, Span] = {}
        next_key = 1
        # (key, node, parent_span_id, depth, child_keys or None before expansion)
        stack: list[tuple[int, Mapping[str, Any], Optional[str], int, Optional[list[int]]]] = [
            (0, payload, None, 0, None)
        ]
        while stack:
            key, node, parent_id, depth, child_keys = stack.pop()
            if child_keys is None:
                if depth > max_depth:
                    raise CyclicTraceError(
                        f"span nesting exceeds {max_depth} levels "
                        f"at span {node.get('span_id', '<unknown>')!r}"
                    )
                raw_children = _raw_children(node)
                for child in raw_children:
                    if not isinstance(child, Mapping):
                        raise InvalidTraceError(
                            f"child of span {node.get('span_id', '<unknown>')!r} "
                            f"must be a JSON object, got {type(child).__name__}"
                        )
                keys = list(range(next_key, next_key + len(raw_children)))
                next_key += len(raw_children)
                stack.append((key, node, parent_id, depth, keys))
                span_id = _label(node, "span_id")
                for child_key, child in reversed(list(zip(keys, raw_children))):
                    stack.append((child_key, child, span_id, depth + 1, None))
                continue

            built[key] = cls(
                span_id=_label(node, "span_id"),
                service_name=_label(node, "service_name"),
                operation_name=_label(node, "operation_name"),
                start_time=_coerce_timestamp(node, "start_time"),
                end_time=_coerce_timestamp(node, "end_time"),
                children=tuple(built.pop(k) for k in child_keys),
                parent_span_id=parent_id,
            )

        return built[0]

    def to_dict(self) -> dict[str, Any]:
        """Convert the tree back to plain JSON-compatible dicts."""
        converted: dict[int, dict[str, Any]] = {}
        next_key = 1
        stack: list[tuple[int, Span, Optional[list[int]]]] = [(0, self, None)]
        while stack:
            key, span, child_keys = stack.pop()
            if child_keys is None:
                keys = list(range(next_key, next_key + len(span.children)))
                next_key += len(span.children)
                stack.append((key, span, keys))
                stack.extend((k, child, None) for k, child in zip(keys, span.children))
                continue
            converted[key] = {
                "span_id": span.span_id,
                "service_name": span.service_name,
                "operation_name": span.operation_name,
                "start_time": span.start_time,
                "end_time": span.end_time,
                "children": [converted.pop(k) for k in child_keys],
            }
        return converted[0]


@dataclass(frozen=True)
class PositionedSpan:
    """A span with its assigned timeline row."""

    span_id: str
    service_name: str
    operation_name: str
    start_time: Timestamp
    end_time: Timestamp
    row: int
    depth: int
    parent_span_id: Optional[str] = None

    @property
    def duration(self) -> Timestamp:
        return self.end_time - self.start_time

    @property
    def effective_duration(self) -> Timestamp:
        """Duration clamped at zero for spans whose end precedes their start."""
        return max(self.end_time - self.start_time, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "span_id": self.span_id,
            "service_name": self.service_name,
            "operation_name": self.operation_name,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "row": self.row,
            "depth": self.depth,
            "parent_span_id": self.parent_span_id,
        }
