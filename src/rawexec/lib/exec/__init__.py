"""Process execution primitives."""

from rawexec.lib.config.settings import DEFAULT_MAX_BUFFER
from rawexec.lib.exec.buffer import BufferAccumulator
from rawexec.lib.exec.errors import (
    ExecError,
    ExitCodeError,
    FailureContext,
    SignalError,
    SpawnError,
    classify_termination,
)
from rawexec.lib.exec.limiter import StreamLimiter, StreamOverflowError
from rawexec.lib.exec.signals import NON_TERMINAL_SIGNALS, is_terminal_signal
from rawexec.lib.exec.supervisor import (
    ProcessHandle,
    ProcessSupervisor,
    SpawnedProcess,
    execute,
    spawn_shell,
    terminate,
)
from rawexec.lib.exec.types import ExecOptions, ExecResult

__all__ = [
    "DEFAULT_MAX_BUFFER",
    "NON_TERMINAL_SIGNALS",
    "BufferAccumulator",
    "ExecError",
    "ExecOptions",
    "ExecResult",
    "ExitCodeError",
    "FailureContext",
    "ProcessHandle",
    "ProcessSupervisor",
    "SignalError",
    "SpawnError",
    "SpawnedProcess",
    "StreamLimiter",
    "StreamOverflowError",
    "classify_termination",
    "execute",
    "is_terminal_signal",
    "spawn_shell",
    "terminate",
]
