"""Tests for error kinds and the CLI error registry."""
from __future__ import annotations

import pytest

from tracegantt.errors import (
    ERROR_TEMPLATES,
    CyclicTraceError,
    ErrorCode,
    InvalidTraceError,
    RenderTargetUnavailableError,
    TraceFetchError,
    TraceGanttError,
    error_exit,
    handle_exception,
    is_verbose,
    make_error,
    set_verbose,
)


class TestErrorKinds:
    """Tests for exception types raised by the core."""

    @pytest.mark.parametrize(
        "exc_type, code",
        [
            (InvalidTraceError, ErrorCode.E100),
            (CyclicTraceError, ErrorCode.E101),
            (TraceFetchError, ErrorCode.E102),
            (RenderTargetUnavailableError, ErrorCode.E200),
        ],
    )
    def test_codes(self, exc_type: type[TraceGanttError], code: ErrorCode) -> None:
        assert issubclass(exc_type, TraceGanttError)
        assert exc_type("x").code == code

    def test_every_code_has_a_template(self) -> None:
        assert set(ERROR_TEMPLATES) == set(ErrorCode)


class TestMakeError:
    """Tests for make_error formatting."""

    def test_details_in_message(self) -> None:
        err = make_error(ErrorCode.E300, "traces/x.json")

        assert err.message == "Trace file not found: traces/x.json"
        assert err.details is None
        assert str(err).startswith("TG-E300: Trace file not found")
        assert "Next step: Check the --trace path" in str(err)

    def test_details_appended_when_template_has_no_slot(self) -> None:
        err = make_error(ErrorCode.E002, "fetch command")

        assert err.message == "No trace API URL configured: fetch command"
        assert "Details: fetch command" in str(err)

    def test_without_details(self) -> None:
        err = make_error(ErrorCode.E100)
        assert err.message == "Trace payload is invalid"

    def test_error_exit(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            error_exit(ErrorCode.E301, "/readonly", exit_code=3)

        assert exc_info.value.code == 3
        assert "TG-E301" in capsys.readouterr().err


class TestHandleException:
    """Tests for handle_exception."""

    def test_uses_exception_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        handle_exception(CyclicTraceError("span 'a' is its own ancestor"))

        err = capsys.readouterr().err
        assert "TG-E101" in err
        assert "own ancestor" in err

    def test_explicit_code_wins(self, capsys: pytest.CaptureFixture[str]) -> None:
        handle_exception(ValueError("bad theme"), ErrorCode.E001)
        assert "TG-E001: Invalid configuration: bad theme" in capsys.readouterr().err

    def test_verbose_prints_traceback(self, capsys: pytest.CaptureFixture[str]) -> None:
        set_verbose(True)
        try:
            try:
                raise InvalidTraceError("broken")
            except InvalidTraceError as e:
                handle_exception(e)
        finally:
            set_verbose(False)

        err = capsys.readouterr().err
        assert "Full Traceback" in err
        assert not is_verbose()
