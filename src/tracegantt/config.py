"""tracegantt configuration management.

Handles:
- Source mode (dev-fixtures reads local trace JSON, live fetches over HTTP)
- .env file loading with precedence: CLI > .env > env vars
- Optional YAML render-options file
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from tracegantt.diagrams.timeline_view import RenderOptions
from tracegantt.trace.span_model import DEFAULT_MAX_DEPTH

ENV_PREFIX = "TRACEGANTT_"


class Mode(str, Enum):
    """Where trace payloads come from."""

    DEV_FIXTURES = "dev-fixtures"
    LIVE = "live"


@dataclass
class ApiTarget:
    """Trace API endpoint used in live mode."""

    base_url: str | None = None
    endpoint: str = "api/traces/ganttchart"
    start_epoch: str = "now-3h"
    end_epoch: str = "now"
    timeout_seconds: float = 10.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApiTarget:
        """Create an ApiTarget from a dictionary."""
        return cls(
            base_url=data.get("base_url"),
            endpoint=data.get("endpoint", "api/traces/ganttchart"),
            start_epoch=data.get("start_epoch", "now-3h"),
            end_epoch=data.get("end_epoch", "now"),
            timeout_seconds=float(data.get("timeout_seconds", 10.0)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "endpoint": self.endpoint,
            "start_epoch": self.start_epoch,
            "end_epoch": self.end_epoch,
            "timeout_seconds": self.timeout_seconds,
        }
        if self.base_url:
            result["base_url"] = self.base_url
        return result


@dataclass
class Config:
    """tracegantt runtime configuration."""

    mode: Mode = Mode.DEV_FIXTURES
    api: ApiTarget = field(default_factory=ApiTarget)
    render: RenderOptions = field(default_factory=RenderOptions)
    max_depth: int = DEFAULT_MAX_DEPTH
    log_level: str = "WARNING"
    log_file: str | None = None
    log_format: str = "text"
    env_file_path: Path | None = None
    options_file_path: Path | None = None

    def is_live(self) -> bool:
        """Check if running in live mode."""
        return self.mode == Mode.LIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "api": self.api.to_dict(),
            "render": self.render.to_dict(),
            "max_depth": self.max_depth,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "log_format": self.log_format,
            "env_file": str(self.env_file_path) if self.env_file_path else None,
            "options_file": str(self.options_file_path) if self.options_file_path else None,
        }


def parse_env_file(env_file: Path) -> dict[str, str]:
    """Parse a .env file into a dictionary.

    Supports:
    - KEY=value
    - KEY="quoted value"
    - KEY='single quoted'
    - export KEY=value
    - # comments
    - Empty lines
    """
    result: dict[str, str] = {}

    if not env_file.exists():
        return result

    for line in env_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()

        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if line.startswith("export "):
            line = line[7:]

        # Skip lines without =
        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()

        # Remove quotes
        if (value.startswith('"') and value.endswith('"')) or (
            value.startswith("'") and value.endswith("'")
        ):
            value = value[1:-1]

        result[key] = value

    return result


def _find_env_file(start: Path | None = None) -> Path | None:
    """Find .env file by walking up directory tree.

    Stops at git root, home directory, or filesystem root.
    Returns None if not found.
    """
    current = (start or Path.cwd()).resolve()

    try:
        home = Path.home()
    except RuntimeError:
        home = None  # Can't determine home, just walk to root

    for _ in range(20):  # Max depth
        env_file = current / ".env"
        if env_file.exists():
            return env_file

        # Stop conditions
        if home and current == home:
            break
        if current == current.parent:
            break

        # Stop at git root (but check .env first)
        if (current / ".git").exists():
            break

        current = current.parent

    return None


def load_render_options_file(path: Path) -> dict[str, Any]:
    """Load render option overrides from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the YAML is malformed or not a mapping
    """
    if not path.exists():
        raise FileNotFoundError(f"Render options file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in render options file {path}:\n{e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Render options file must contain a YAML mapping, got {type(data).__name__}: {path}"
        )
    # Accept either top-level options or a "render:" section
    if "render" in data and isinstance(data["render"], dict):
        data = data["render"]
    return data


def _render_overrides_from_env(env_vars: dict[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    int_keys = {
        "CANVAS_WIDTH": "canvas_width",
        "TICK_COUNT": "tick_count",
        "ROW_HEIGHT": "row_height",
    }
    for env_key, option in int_keys.items():
        value = env_vars.get(ENV_PREFIX + env_key)
        if value:
            try:
                overrides[option] = int(value)
            except ValueError as e:
                raise ValueError(f"{ENV_PREFIX}{env_key} must be an integer, got {value!r}") from e
    for env_key, option in {
        "TIME_UNIT": "time_unit",
        "THEME": "theme",
        "SEARCH_URL": "search_url",
    }.items():
        value = env_vars.get(ENV_PREFIX + env_key)
        if value:
            overrides[option] = value
    return overrides


def load_config(
    mode: str | None = None,
    env_file: str | Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> Config:
    """Load configuration with precedence: CLI > .env > env vars.

    Args:
        mode: Explicit mode override (dev-fixtures or live)
        env_file: Path to .env file to load
        cli_overrides: Additional CLI-provided overrides. Recognized keys:
            api_url, start_epoch, end_epoch, options_file, log_level, log_file,
            log_format,
            max_depth, and any RenderOptions field name.

    Returns:
        Loaded Config instance
    """
    cli_overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}

    # Step 1: Load environment variables as base
    env_vars = dict(os.environ)

    # Step 2: Load .env file and merge (overrides env vars)
    env_file_path: Path | None = Path(env_file) if env_file else _find_env_file()
    if env_file_path and env_file_path.exists():
        env_vars.update(parse_env_file(env_file_path))

    # Step 3: Determine mode
    resolved_mode: Mode
    if mode:
        resolved_mode = Mode(mode)
    elif ENV_PREFIX + "MODE" in env_vars:
        resolved_mode = Mode(env_vars[ENV_PREFIX + "MODE"])
    else:
        resolved_mode = Mode.DEV_FIXTURES

    # Step 4: API target
    api = ApiTarget(
        base_url=cli_overrides.get("api_url") or env_vars.get(ENV_PREFIX + "API_URL"),
        endpoint=env_vars.get(ENV_PREFIX + "API_ENDPOINT", "api/traces/ganttchart"),
        start_epoch=cli_overrides.get("start_epoch")
        or env_vars.get(ENV_PREFIX + "START_EPOCH", "now-3h"),
        end_epoch=cli_overrides.get("end_epoch") or env_vars.get(ENV_PREFIX + "END_EPOCH", "now"),
        timeout_seconds=float(env_vars.get(ENV_PREFIX + "API_TIMEOUT", "10")),
    )

    # Step 5: Render options: defaults < options file < env < CLI
    options_file = cli_overrides.get("options_file") or env_vars.get(ENV_PREFIX + "OPTIONS_FILE")
    options_file_path = Path(options_file) if options_file else None
    render_values: dict[str, Any] = {}
    if options_file_path:
        render_values.update(load_render_options_file(options_file_path))
    render_values.update(_render_overrides_from_env(env_vars))
    render_field_names = set(RenderOptions().to_dict())
    render_values.update({k: v for k, v in cli_overrides.items() if k in render_field_names})
    render = RenderOptions.from_dict(render_values)

    max_depth = int(cli_overrides.get("max_depth") or env_vars.get(ENV_PREFIX + "MAX_DEPTH", DEFAULT_MAX_DEPTH))
    log_level = str(cli_overrides.get("log_level") or env_vars.get(ENV_PREFIX + "LOG_LEVEL", "WARNING")).upper()
    log_file = cli_overrides.get("log_file") or env_vars.get(ENV_PREFIX + "LOG_FILE") or None
    log_format = str(cli_overrides.get("log_format") or env_vars.get(ENV_PREFIX + "LOG_FORMAT", "text")).lower()
    if log_format not in ("text", "json"):
        raise ValueError(f"log format must be 'text' or 'json', got {log_format!r}")

    return Config(
        mode=resolved_mode,
        api=api,
        render=render,
        max_depth=max_depth,
        log_level=log_level,
        log_file=log_file,
        log_format=log_format,
        env_file_path=env_file_path,
        options_file_path=options_file_path,
    )


# Global config instance (set by CLI)
_config: Config | None = None


def get_config() -> Config:
    """Get the current configuration.

    Raises:
        RuntimeError: If config not initialized (call load_config first)
    """
    if _config is None:
        raise RuntimeError("Config not initialized. Call load_config() first.")
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration."""
    global _config
    _config = config
