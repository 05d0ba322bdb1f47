"""Trace model and ingestion utilities."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Mapping

from tracegantt.errors import InvalidTraceError
from tracegantt.trace.span_model import DEFAULT_MAX_DEPTH, Span, Timestamp

logger = logging.getLogger(__name__)

# Keys some trace APIs wrap the root span in
_ENVELOPE_KEYS = ("trace", "root")


@dataclass(frozen=True)
class Trace:
    """The root span and its full descendant tree."""

    root: Span

    @property
    def trace_root_id(self) -> str:
        return self.root.span_id

    @property
    def domain(self) -> tuple[Timestamp, Timestamp]:
        """Time interval of the root span, used as the horizontal scale input."""
        return (self.root.start_time, self.root.end_time)

    def iter_spans(self) -> Iterator[Span]:
        """Yield every span in pre-order, children in input order."""
        stack = [self.root]
        while stack:
            span = stack.pop()
            yield span
            stack.extend(reversed(span.children))

    def span_count(self) -> int:
        return sum(1 for _ in self.iter_spans())


def unwrap_envelope(payload: Any) -> Any:
    """Return the root span object, unwrapping a single-key ``trace`` or ``root`` envelope."""
    if not isinstance(payload, Mapping):
        return payload
    if "start_time" in payload or "span_id" in payload:
        return payload
    for key in _ENVELOPE_KEYS:
        if key in payload and len(payload) == 1:
            return payload[key]
    return payload


def parse_trace(payload: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Trace:
    """Parse a decoded JSON payload into a Trace.

    Accepts a bare root span object, or an envelope with a single
    ``trace`` or ``root`` key holding it.

    Raises:
        InvalidTraceError: If the payload is missing or malformed.
        CyclicTraceError: If nesting exceeds max_depth.
    """
    if payload is None:
        raise InvalidTraceError("trace payload is empty")
    if not isinstance(payload, Mapping):
        raise InvalidTraceError(
            f"trace payload must be a JSON object, got {type(payload).__name__}"
        )
    root = unwrap_envelope(payload)
    if root is None:
        raise InvalidTraceError("trace payload has no root span")
    return Trace(root=Span.from_dict(root, max_depth=max_depth))


def load_trace_json(
    path: Path,
    validate: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Trace:
    """Load a trace from a JSON file.

    Args:
        path: Path to the trace JSON file
        validate: Also check the payload against the trace JSON schema
        max_depth: Nesting limit passed to the parser

    Returns:
        Parsed Trace

    Raises:
        FileNotFoundError: If the trace file doesn't exist
        InvalidTraceError: If the file is not valid JSON or not a valid trace
    """
    if not path.exists():
        raise FileNotFoundError(
            f"Trace file not found: {path}\n\n"
            f"Fetch one with: tracegantt fetch --trace-id <id> --out <dir>"
        )

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise InvalidTraceError(
            f"Cannot read trace file {path}: encoding error. "
            f"Ensure the file is saved as UTF-8."
        ) from e
    except json.JSONDecodeError as e:
        raise InvalidTraceError(f"Invalid JSON in trace file {path}: {e}") from e

    if validate:
        from tracegantt.trace.schema import validate_trace_payload

        errors = validate_trace_payload(unwrap_envelope(data))
        if errors:
            error_details = "; ".join(errors[:5])
            raise InvalidTraceError(f"{path} failed schema validation: {error_details}")

    trace = parse_trace(data, max_depth=max_depth)
    logger.debug("Loaded trace %s from %s", trace.trace_root_id, path)
    return trace
