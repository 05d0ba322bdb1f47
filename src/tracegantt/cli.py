from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from tracegantt import __version__
from tracegantt.config import Config, Mode, load_config, set_config
from tracegantt.errors import (
    ErrorCode,
    TraceGanttError,
    handle_exception,
    is_verbose,
    make_error,
    set_verbose,
)
from tracegantt.layout.engine import LayoutResult, layout
from tracegantt.logging_config import setup_logging
from tracegantt.trace.trace_model import Trace, load_trace_json
from tracegantt.utils.artifacts import ARTIFACT_FORMATS, write_render_artifacts

OUTPUT_FORMATS = ["all", *ARTIFACT_FORMATS]


def _load_cli_config(args: argparse.Namespace, **overrides: Any) -> Config:
    """Build the effective config from global flags plus command overrides."""
    cli_overrides: dict[str, Any] = {
        "options_file": getattr(args, "options_file", None),
        "log_level": getattr(args, "log_level", None),
        "log_file": getattr(args, "log_file", None),
        "log_format": getattr(args, "log_format", None),
        "max_depth": getattr(args, "max_depth", None),
        "canvas_width": getattr(args, "width", None),
        "theme": getattr(args, "theme", None),
        "time_unit": getattr(args, "time_unit", None),
    }
    cli_overrides.update(overrides)
    config = load_config(
        mode=getattr(args, "mode", None),
        env_file=getattr(args, "env_file", None),
        cli_overrides=cli_overrides,
    )
    set_config(config)
    setup_logging(config.log_level, log_file=config.log_file, fmt=config.log_format)
    return config


def _formats_from_arg(value: str) -> tuple[str, ...]:
    if value == "all":
        return ARTIFACT_FORMATS
    return (value,)


def _write_outputs(
    args: argparse.Namespace, config: Config, trace: Trace, result: LayoutResult
) -> int:
    out_dir = Path(args.out)
    try:
        written = write_render_artifacts(
            out_dir=out_dir,
            trace=trace,
            layout_result=result,
            options=config.render,
            formats=_formats_from_arg(getattr(args, "format", "all") or "all"),
            title=getattr(args, "title", None),
        )
    except OSError as e:
        make_error(ErrorCode.E301, f"{out_dir}: {e}").print()
        return 1

    print(f"Laid out {result.row_count} spans for trace root {trace.trace_root_id}")
    for fmt, path in written.items():
        print(f"  {fmt:<5} {path}")
    return 0


def _cmd_render(args: argparse.Namespace) -> int:
    config = _load_cli_config(args)
    trace = load_trace_json(Path(args.trace), max_depth=config.max_depth)
    result = layout(trace, max_depth=config.max_depth)
    return _write_outputs(args, config, trace, result)


def _cmd_layout(args: argparse.Namespace) -> int:
    config = _load_cli_config(args)
    trace = load_trace_json(Path(args.trace), max_depth=config.max_depth)
    result = layout(trace, max_depth=config.max_depth)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print(f"{'ROW':>4}  {'DEPTH':>5}  {'START':>20}  {'DURATION':>12}  SERVICE : OPERATION")
    for p in result.positioned:
        indent = "  " * p.depth
        print(
            f"{p.row:>4}  {p.depth:>5}  {p.start_time:>20}  {p.effective_duration:>12}  "
            f"{indent}{p.service_name} : {p.operation_name}"
        )
    print(f"\n{result.row_count} rows, domain {result.domain[0]} → {result.domain[1]}")
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    from tracegantt.trace.schema import validate_trace_payload
    from tracegantt.trace.trace_model import parse_trace, unwrap_envelope

    config = _load_cli_config(args)
    path = Path(args.trace)
    if not path.exists():
        make_error(ErrorCode.E300, str(path)).print()
        return 1

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        make_error(ErrorCode.E100, f"{path}: not UTF-8 encoded: {e}").print()
        return 1
    except json.JSONDecodeError as e:
        make_error(ErrorCode.E100, f"{path}: invalid JSON: {e}").print()
        return 1

    errors = validate_trace_payload(unwrap_envelope(data))
    if errors:
        print(f"✗ {path}: {len(errors)} schema error(s)")
        for err in errors[:20]:
            print(f"  - {err}")
        return 1

    trace = parse_trace(data, max_depth=config.max_depth)
    result = layout(trace, max_depth=config.max_depth)
    inverted = [p for p in result.positioned if p.end_time < p.start_time]
    print(f"✓ {path}: {result.row_count} spans, max depth {max(p.depth for p in result.positioned)}")
    if inverted:
        print(f"  ⚠️  {len(inverted)} span(s) end before they start and will render with zero width")
    return 0


def _cmd_fetch(args: argparse.Namespace) -> int:
    from tracegantt.fetch import TraceFetchClient

    config = _load_cli_config(
        args,
        api_url=args.api_url,
        start_epoch=args.start,
        end_epoch=args.end,
    )
    if not config.is_live():
        # Stand-in for the trace API: <fixtures-dir>/<trace-id>.json
        trace = load_trace_json(
            Path(args.fixtures_dir) / f"{args.trace_id}.json", max_depth=config.max_depth
        )
        result = layout(trace, max_depth=config.max_depth)
        return _write_outputs(args, config, trace, result)

    if not config.api.base_url:
        make_error(ErrorCode.E002).print()
        return 1

    client = TraceFetchClient(
        base_url=config.api.base_url,
        endpoint=config.api.endpoint,
        timeout=config.api.timeout_seconds,
        max_depth=config.max_depth,
    )
    trace = client.fetch(args.trace_id, config.api.start_epoch, config.api.end_epoch)
    result = layout(trace, max_depth=config.max_depth)
    return _write_outputs(args, config, trace, result)


def _cmd_show_config(args: argparse.Namespace) -> int:
    config = _load_cli_config(args)
    print(json.dumps(config.to_dict(), indent=2))
    return 0


def _add_render_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("--out", required=True, help="Output directory for artifacts")
    p.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="all",
        help="Output format: all (default), html, svg, or json",
    )
    p.add_argument("--title", help="Page title for the HTML timeline")
    p.add_argument("--width", type=int, help="Canvas width in pixels (default: 1110)")
    p.add_argument("--theme", choices=["light", "dark"], help="Initial page theme")
    p.add_argument(
        "--time-unit",
        dest="time_unit",
        choices=["ns", "us", "ms", "s"],
        help="Unit of span timestamps (default: ns)",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tracegantt",
        description="Render distributed-trace span trees as Gantt timelines",
    )

    # Global flags
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show full tracebacks on errors",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    p.add_argument(
        "--env-file",
        dest="env_file",
        help="Path to .env file (default: nearest .env above cwd)",
    )
    p.add_argument(
        "--options-file",
        dest="options_file",
        help="YAML file with render options",
    )
    p.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )
    p.add_argument(
        "--log-file",
        dest="log_file",
        help="Also write JSON log lines to this rotating file",
    )
    p.add_argument(
        "--log-format",
        dest="log_format",
        choices=["text", "json"],
        help="Console log format (default: text)",
    )
    p.add_argument(
        "--max-depth",
        dest="max_depth",
        type=int,
        help="Reject span trees nested deeper than this",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    # render
    p_render = sub.add_parser(
        "render",
        help="Offline: render a timeline from a trace JSON file",
    )
    p_render.add_argument("--trace", required=True, help="Path to a trace JSON file")
    _add_render_flags(p_render)
    p_render.set_defaults(func=_cmd_render)

    # layout
    p_layout = sub.add_parser(
        "layout",
        help="Print the row assignment for a trace JSON file",
    )
    p_layout.add_argument("--trace", required=True, help="Path to a trace JSON file")
    p_layout.add_argument("--json", action="store_true", help="Print layout as JSON")
    p_layout.set_defaults(func=_cmd_layout)

    # validate
    p_val = sub.add_parser(
        "validate",
        help="Validate a trace JSON file against the trace schema",
    )
    p_val.add_argument("--trace", required=True, help="Path to a trace JSON file")
    p_val.set_defaults(func=_cmd_validate)

    # fetch (live)
    p_fetch = sub.add_parser(
        "fetch",
        help="Live: fetch a trace from the trace API and render it",
    )
    p_fetch.add_argument("--trace-id", dest="trace_id", required=True, help="Trace ID to fetch")
    p_fetch.add_argument("--api-url", dest="api_url", help="Trace API base URL")
    p_fetch.add_argument("--start", help="Search window start (default: now-3h)")
    p_fetch.add_argument("--end", help="Search window end (default: now)")
    p_fetch.add_argument(
        "--mode",
        choices=[m.value for m in Mode],
        default=Mode.LIVE.value,
        help="live (default) calls the trace API; dev-fixtures reads <fixtures-dir>/<trace-id>.json",
    )
    p_fetch.add_argument(
        "--fixtures-dir",
        dest="fixtures_dir",
        default="fixtures/traces",
        help="Trace JSON directory used in dev-fixtures mode (default: fixtures/traces)",
    )
    _add_render_flags(p_fetch)
    p_fetch.set_defaults(func=_cmd_fetch)

    # show-config
    p_show_config = sub.add_parser(
        "show-config",
        help="Show effective configuration from all sources",
    )
    p_show_config.add_argument(
        "--mode",
        choices=[m.value for m in Mode],
        help="Override mode for display",
    )
    p_show_config.set_defaults(func=_cmd_show_config)

    return p


def main(argv: list[str] | None = None) -> None:
    p = build_parser()
    args = p.parse_args(argv)

    set_verbose(args.verbose)

    try:
        rc = args.func(args)
        raise SystemExit(rc)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted by user", file=sys.stderr)
        raise SystemExit(130)
    except FileNotFoundError as e:
        handle_exception(e, ErrorCode.E300, str(e))
        raise SystemExit(1)
    except TraceGanttError as e:
        handle_exception(e)
        raise SystemExit(1)
    except ValueError as e:
        handle_exception(e, ErrorCode.E001, str(e))
        raise SystemExit(1)
    except Exception as e:
        if is_verbose():
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
            print("Run with --verbose for full traceback", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
