"""Async process supervision: spawn, capture, classify, settle once."""

from __future__ import annotations

import asyncio
import os
import signal
import sys
from dataclasses import dataclass
from typing import Any

import structlog

from rawexec.lib.config.settings import RawexecConfig
from rawexec.lib.exec.errors import ExecError, FailureContext, classify_termination
from rawexec.lib.exec.limiter import READ_CHUNK_SIZE, StreamLimiter, StreamOverflowError
from rawexec.lib.exec.process_groups import signal_process_group
from rawexec.lib.exec.signals import is_terminal_signal, resolve_signal, split_returncode
from rawexec.lib.exec.types import ExecOptions, ExecResult

IS_WINDOWS = sys.platform == "win32"
logger = structlog.get_logger(__name__)

# Spawn arguments the supervisor owns; passthrough options cannot override them.
_RESERVED_SPAWN_KEYS = frozenset({"stdout", "stderr", "shell", "executable", "start_new_session"})


def default_shell() -> str:
    """Return the shell `asyncio.create_subprocess_shell` uses when none is given."""

    if IS_WINDOWS:
        return os.environ.get("COMSPEC", "cmd.exe")
    return "/bin/sh"


def resolve_shell(options: ExecOptions, config: RawexecConfig) -> str | None:
    """Return an explicit shell executable, or None for the platform default."""

    if isinstance(options.shell, str) and options.shell:
        return options.shell
    return config.shell


def spawn_args(cmd: str, shell: str | None) -> tuple[str, ...]:
    """Return the argv the shell is started with, as reported in errors."""

    executable = shell or default_shell()
    if IS_WINDOWS:
        return (executable, "/c", f'"{cmd}"')
    return (executable, "-c", cmd)


def resolve_max_buffer(options: ExecOptions, config: RawexecConfig) -> int:
    max_buffer = options.max_buffer if options.max_buffer is not None else config.max_buffer
    if max_buffer < 0:
        raise ValueError(f"max_buffer must be >= 0, got {max_buffer}.")
    return max_buffer


class _ExitWatchingProtocol(asyncio.subprocess.SubprocessStreamProtocol):
    """Stream protocol that also resolves a future when the child itself exits.

    `Process.wait()` only returns once every pipe has closed, which a
    background descendant can postpone indefinitely.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(limit=READ_CHUNK_SIZE, loop=loop)
        self.exited: asyncio.Future[None] = loop.create_future()

    def process_exited(self) -> None:
        super().process_exited()
        if not self.exited.done():
            self.exited.set_result(None)


@dataclass(frozen=True)
class SpawnedProcess:
    process: asyncio.subprocess.Process
    transport: asyncio.SubprocessTransport
    exited: asyncio.Future[None]


async def spawn_shell(cmd: str, **kwargs: Any) -> SpawnedProcess:
    """Start `cmd` through a shell, like `asyncio.create_subprocess_shell`."""

    loop = asyncio.get_running_loop()
    transport, protocol = await loop.subprocess_shell(
        lambda: _ExitWatchingProtocol(loop),
        cmd,
        **kwargs,
    )
    return SpawnedProcess(
        process=asyncio.subprocess.Process(transport, protocol, loop),
        transport=transport,
        exited=protocol.exited,
    )


class ProcessHandle:
    """A live child process plus the limiters reading its two output pipes."""

    def __init__(
        self,
        spawned: SpawnedProcess,
        stdout: StreamLimiter,
        stderr: StreamLimiter,
        *,
        group_signals: bool = False,
    ) -> None:
        self.process = spawned.process
        self.stdout = stdout
        self.stderr = stderr
        self._transport = spawned.transport
        self._exited = spawned.exited
        self._group_signals = group_signals and not IS_WINDOWS
        self._readers: tuple[asyncio.Task[None], ...] = ()
        self._released = False

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    @property
    def released(self) -> bool:
        return self._released

    def start_readers(self) -> None:
        if self.process.stdout is None or self.process.stderr is None:
            raise RuntimeError("Subprocess did not expose stdout/stderr pipes.")
        self._readers = (
            asyncio.create_task(self.stdout.pump(self.process.stdout)),
            asyncio.create_task(self.stderr.pump(self.process.stderr)),
        )

    async def wait_exit(self) -> int:
        """Wait for the child to exit, without waiting for its pipes to close."""

        await asyncio.shield(self._exited)
        returncode = self.returncode
        if returncode is None:
            raise RuntimeError("Child exit reported without a return code.")
        return returncode

    async def drained(self, timeout: float | None = None) -> list[Exception]:
        """Wait up to `timeout` for both readers; return the read errors they raised.

        Readers still running when the timeout expires are left alone.
        """

        if not self._readers:
            return []
        done, pending = await asyncio.wait(self._readers, timeout=timeout)
        if pending:
            logger.debug(
                "Output pipes still open after exit; a descendant may hold them.",
                pid=self.pid,
            )
        errors: list[Exception] = []
        for reader in done:
            if reader.cancelled():
                continue
            error = reader.exception()
            if isinstance(error, Exception):
                errors.append(error)
        return errors

    def release(self) -> bool:
        """Stop consuming output. Only the first call has any effect."""

        if self._released:
            return False
        self._released = True
        self.stdout.close()
        self.stderr.close()
        for reader in self._readers:
            if not reader.done():
                reader.cancel()
        return True

    def close(self) -> None:
        """Close the pipe transport once the child has exited."""

        if self.returncode is not None:
            self._transport.close()

    def send_signal(self, signum: signal.Signals) -> bool:
        if self.returncode is not None:
            return False
        if self._group_signals:
            return signal_process_group(self.pid, signum)
        try:
            self.process.send_signal(signum)
        except ProcessLookupError:
            return False
        return True

    def kill(self) -> bool:
        if self.returncode is not None:
            return False
        if self._group_signals:
            return signal_process_group(self.pid, signal.SIGKILL)
        try:
            self.process.kill()
        except ProcessLookupError:
            return False
        return True


def terminate(handle: ProcessHandle, signum: signal.Signals | str) -> bool:
    """Release the handle's streams and send `signum`; never raises.

    Returns whether the signal was delivered.
    """

    try:
        handle.release()
        resolved = resolve_signal(signum) if isinstance(signum, str) else signum
        return handle.send_signal(resolved)
    except Exception:
        logger.debug("Process termination failed.", pid=handle.pid, exc_info=True)
        return False


class ProcessSupervisor:
    """Runs one shell command to completion and settles exactly once.

    Three event sources feed the settlement: the stdout reader, the stderr
    reader (both via their limiters) and the exit watcher. Whichever settles
    first wins; every later event is a no-op.
    """

    def __init__(
        self,
        cmd: str,
        options: ExecOptions | None = None,
        *,
        config: RawexecConfig | None = None,
    ) -> None:
        self._options = options or ExecOptions()
        self._config = config or RawexecConfig()
        self._shell = resolve_shell(self._options, self._config)
        self._command = cmd
        self.cmd = " ".join(spawn_args(cmd, self._shell))
        self.max_buffer = resolve_max_buffer(self._options, self._config)
        self._stdout = StreamLimiter(
            "stdout", max_buffer=self.max_buffer, on_overflow=self._on_overflow
        )
        self._stderr = StreamLimiter(
            "stderr", max_buffer=self.max_buffer, on_overflow=self._on_overflow
        )
        self._handle: ProcessHandle | None = None
        self._settlement: asyncio.Future[ExecResult] | None = None
        self._started = False

    @property
    def settled(self) -> bool:
        return self._settlement is not None and self._settlement.done()

    @property
    def handle(self) -> ProcessHandle | None:
        return self._handle

    async def outcome(self) -> ExecResult:
        """Wait for the settlement; raises the ExecError on failure."""

        return await self._future()

    async def run(self) -> ExecResult:
        if self._started:
            raise RuntimeError("ProcessSupervisor is single-shot; create one per command.")
        self._started = True

        settlement = self._future()
        watcher: asyncio.Task[None] | None = None
        try:
            try:
                spawned = await spawn_shell(self._command, **self._spawn_kwargs())
            except (OSError, ValueError, TypeError) as exc:
                logger.debug("Process spawn failed.", cmd=self.cmd, error=str(exc))
                self.handle_error(exc)
            else:
                watcher = self._supervise(spawned)
            return await settlement
        finally:
            await self._cleanup(watcher)

    def handle_error(self, cause: BaseException) -> None:
        """Spawn-error path: spawn failure, overflow, or a failed reader."""

        if self.settled:
            return
        if self._handle is not None:
            terminate(self._handle, signal.SIGTERM)
        failure = classify_termination(self._failure_context(), cause=cause)
        if failure is not None:
            self._settle_failure(failure)

    def handle_exit(self, exit_code: int | None, signal_name: str | None) -> None:
        """Exit path: classify the reported code/signal and settle."""

        if self.settled:
            return
        if signal_name is not None and not is_terminal_signal(signal_name):
            logger.debug("Ignoring non-terminal signal.", cmd=self.cmd, signal=signal_name)
            return
        if signal_name is not None and self._handle is not None:
            terminate(self._handle, signal_name)

        failure = classify_termination(
            self._failure_context(),
            exit_code=exit_code,
            signal_name=signal_name,
        )
        if failure is not None:
            self._settle_failure(failure)
            return
        self._settle_result(
            ExecResult(
                stdout=self._stdout.buffer.materialize(),
                stderr=self._stderr.buffer.materialize(),
            )
        )

    def _future(self) -> asyncio.Future[ExecResult]:
        if self._settlement is None:
            self._settlement = asyncio.get_running_loop().create_future()
        return self._settlement

    def _spawn_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"stdin": asyncio.subprocess.DEVNULL}
        for key, value in self._options.extra.items():
            if key in _RESERVED_SPAWN_KEYS:
                logger.debug("Ignoring reserved spawn option.", option=key)
                continue
            kwargs[key] = value
        kwargs["stdout"] = asyncio.subprocess.PIPE
        kwargs["stderr"] = asyncio.subprocess.PIPE
        if self._options.cwd is not None:
            kwargs["cwd"] = str(self._options.cwd)
        if self._options.env is not None:
            kwargs["env"] = dict(self._options.env)
        if self._shell is not None:
            kwargs["executable"] = self._shell
        if not IS_WINDOWS:
            # A new session makes the child its own process-group leader.
            kwargs["start_new_session"] = True
        return kwargs

    def _supervise(self, spawned: SpawnedProcess) -> asyncio.Task[None] | None:
        handle = ProcessHandle(
            spawned,
            self._stdout,
            self._stderr,
            group_signals=self._config.signal_process_group,
        )
        self._handle = handle
        logger.debug("Spawned process.", pid=handle.pid, cmd=self.cmd)
        try:
            handle.start_readers()
        except RuntimeError as exc:
            self.handle_error(exc)
            return None

        watcher = asyncio.create_task(self._watch_exit(handle))
        watcher.add_done_callback(self._on_watcher_done)
        return watcher

    async def _watch_exit(self, handle: ProcessHandle) -> None:
        returncode = await handle.wait_exit()
        # Descendants can keep the pipes open; settle on what arrives within the window.
        read_errors = await handle.drained(timeout=self._config.drain_timeout_seconds)
        handle.release()
        if read_errors:
            self.handle_error(read_errors[0])
            return

        exit_code, signal_name = split_returncode(returncode)
        self.handle_exit(exit_code, signal_name)
        if not self.settled:
            # The child has exited, so no later exit event can arrive.
            failure = classify_termination(self._failure_context(), signal_name=signal_name)
            if failure is not None:
                self._settle_failure(failure)

    def _on_watcher_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.handle_error(error)

    def _on_overflow(self, error: StreamOverflowError) -> None:
        logger.debug(
            "Output channel exceeded maxBuffer.",
            cmd=self.cmd,
            channel=error.channel,
            max_buffer=error.max_buffer,
        )
        self.handle_error(error)

    def _failure_context(self) -> FailureContext:
        return FailureContext(
            cmd=self.cmd,
            options=self._options,
            stdout=self._stdout.buffer.materialize(),
            stderr=self._stderr.buffer.materialize(),
        )

    def _settle_result(self, result: ExecResult) -> bool:
        settlement = self._future()
        if settlement.done():
            return False
        settlement.set_result(result)
        logger.debug("Process succeeded.", cmd=self.cmd)
        return True

    def _settle_failure(self, failure: ExecError) -> bool:
        settlement = self._future()
        if settlement.done():
            return False
        settlement.set_exception(failure)
        logger.debug(
            "Process failed.",
            cmd=self.cmd,
            kind=type(failure).__name__,
            exit_code=failure.exit_code,
            signal=failure.signal,
        )
        return True

    async def _reap(self, handle: ProcessHandle) -> None:
        if handle.returncode is not None:
            return
        if not handle.released:
            terminate(handle, signal.SIGTERM)
        try:
            await asyncio.wait_for(
                handle.wait_exit(),
                timeout=self._config.kill_grace_seconds,
            )
        except TimeoutError:
            if handle.returncode is None:
                logger.warning("Child ignored SIGTERM; killing.", pid=handle.pid, cmd=self.cmd)
                handle.kill()
                await handle.wait_exit()

    async def _cleanup(self, watcher: asyncio.Task[None] | None) -> None:
        settlement = self._settlement
        if settlement is not None and not settlement.done():
            settlement.cancel()

        handle = self._handle
        if handle is not None:
            try:
                await self._reap(handle)
            except Exception:
                logger.warning("Failed to reap child process.", pid=handle.pid, exc_info=True)
            handle.release()
            await handle.drained()
            handle.close()

        if watcher is not None and not watcher.done():
            watcher.cancel()
            await asyncio.gather(watcher, return_exceptions=True)


async def execute(
    cmd: str,
    options: ExecOptions | None = None,
    *,
    config: RawexecConfig | None = None,
) -> ExecResult:
    """Run `cmd` through a shell and return its captured output.

    Raises:
        SpawnError: the process could not start or a channel overflowed.
        SignalError: the process was killed by a terminal signal.
        ExitCodeError: the process exited non-zero.
    """

    return await ProcessSupervisor(cmd, options, config=config).run()
