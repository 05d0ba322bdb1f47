"""Validate raw trace payloads against the trace JSON schema."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft202012Validator


def _find_schema_path() -> Optional[Path]:
    """Locate trace.schema.json relative to this file."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        candidate = parent / "schemas" / "trace.schema.json"
        if candidate.exists():
            return candidate
    return None


@lru_cache(maxsize=1)
def _load_validator() -> Draft202012Validator:
    schema_path = _find_schema_path()
    if schema_path is None:
        raise FileNotFoundError("Could not locate trace.schema.json")
    schema = json.loads(schema_path.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def validate_trace_payload(data: Any) -> list[str]:
    """Validate trace data against the JSON schema. Returns list of errors (empty if valid)."""
    validator = _load_validator()
    errors: list[str] = []
    for error in validator.iter_errors(data):
        errors.append(f"{error.json_path}: {error.message}")
    return errors
