"""Structured execution failures and termination classification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rawexec.lib.exec.types import ExecOptions


class ExecError(Exception):
    """A failed execution, carrying whatever output was captured before it failed."""

    def __init__(
        self,
        message: str,
        *,
        cmd: str,
        options: ExecOptions,
        stdout: str,
        stderr: str,
        exit_code: int | None = None,
        signal: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cmd = cmd
        self.options = options
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code
        self.signal = signal
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_payload(self) -> dict[str, object]:
        return {
            "kind": type(self).__name__,
            "message": self.message,
            "cmd": self.cmd,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "signal": self.signal,
            "cause": None if self.cause is None else str(self.cause),
        }


class SpawnError(ExecError):
    """The process could not be created, or an output channel overflowed."""


class SignalError(ExecError):
    """The process was killed by a terminal signal."""


class ExitCodeError(ExecError):
    """The process exited with a non-zero status."""


@dataclass(frozen=True, slots=True)
class FailureContext:
    """Snapshot of an execution at the moment it failed."""

    cmd: str
    options: ExecOptions
    stdout: str
    stderr: str


def _cause_message(cause: BaseException) -> str:
    message = str(cause).strip()
    if message:
        return message
    return cause.__class__.__name__


def classify_termination(
    context: FailureContext,
    *,
    exit_code: int | None = None,
    signal_name: str | None = None,
    cause: BaseException | None = None,
) -> ExecError | None:
    """Turn a raw termination cause into a structured error.

    Returns None when the process exited with code 0 and no signal.
    """

    if cause is not None:
        return SpawnError(
            _cause_message(cause),
            cmd=context.cmd,
            options=context.options,
            stdout=context.stdout,
            stderr=context.stderr,
            cause=cause,
        )
    if signal_name is not None:
        return SignalError(
            f'Process signaled with "{signal_name}"',
            cmd=context.cmd,
            options=context.options,
            stdout=context.stdout,
            stderr=context.stderr,
            signal=signal_name,
        )
    if exit_code != 0:
        return ExitCodeError(
            f'Process exited with exit code "{exit_code}"',
            cmd=context.cmd,
            options=context.options,
            stdout=context.stdout,
            stderr=context.stderr,
            exit_code=exit_code,
        )
    return None
