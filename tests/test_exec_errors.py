"""Termination classification tests."""

from __future__ import annotations

import pytest

from rawexec.lib.exec.errors import (
    ExecError,
    ExitCodeError,
    FailureContext,
    SignalError,
    SpawnError,
    classify_termination,
)
from rawexec.lib.exec.types import ExecOptions
from rawexec.lib.serialization import to_jsonable


def _context() -> FailureContext:
    return FailureContext(
        cmd="/bin/sh -c false",
        options=ExecOptions(),
        stdout="partial out",
        stderr="partial err",
    )


def test_clean_exit_is_not_a_failure() -> None:
    assert classify_termination(_context(), exit_code=0) is None


def test_nonzero_exit_becomes_exit_code_error() -> None:
    failure = classify_termination(_context(), exit_code=2)

    assert isinstance(failure, ExitCodeError)
    assert failure.message == 'Process exited with exit code "2"'
    assert failure.exit_code == 2
    assert failure.signal is None
    assert failure.stdout == "partial out"
    assert failure.stderr == "partial err"
    assert failure.cmd == "/bin/sh -c false"


def test_signal_takes_precedence_over_exit_code() -> None:
    failure = classify_termination(_context(), exit_code=0, signal_name="SIGTERM")

    assert isinstance(failure, SignalError)
    assert failure.message == 'Process signaled with "SIGTERM"'
    assert failure.signal == "SIGTERM"
    assert failure.exit_code is None


def test_cause_takes_precedence_over_everything() -> None:
    cause = FileNotFoundError(2, "No such file or directory")
    failure = classify_termination(
        _context(),
        exit_code=1,
        signal_name="SIGKILL",
        cause=cause,
    )

    assert isinstance(failure, SpawnError)
    assert failure.cause is cause
    assert failure.__cause__ is cause
    assert "No such file or directory" in failure.message


def test_cause_without_message_uses_class_name() -> None:
    failure = classify_termination(_context(), cause=RuntimeError())

    assert failure is not None
    assert failure.message == "RuntimeError"


@pytest.mark.parametrize("error_type", [SpawnError, SignalError, ExitCodeError])
def test_error_kinds_share_base(error_type: type[ExecError]) -> None:
    assert issubclass(error_type, ExecError)


def test_payload_is_jsonable() -> None:
    failure = classify_termination(_context(), exit_code=3)
    assert failure is not None

    payload = failure.to_payload()

    assert payload == {
        "kind": "ExitCodeError",
        "message": 'Process exited with exit code "3"',
        "cmd": "/bin/sh -c false",
        "stdout": "partial out",
        "stderr": "partial err",
        "exit_code": 3,
        "signal": None,
        "cause": None,
    }
    assert to_jsonable(payload) == payload
