"""Operation wrapping one supervised command execution."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rawexec.lib.exec import ExecError, ExecOptions, execute
from rawexec.lib.ops._runtime import build_runtime
from rawexec.lib.ops.registry import OperationSpec, operation

if TYPE_CHECKING:
    from rawexec.lib.formatting import FormatContext


@dataclass(frozen=True, slots=True)
class ExecRunInput:
    command: str = ""
    cwd: str | None = None
    shell: str | None = None
    max_buffer: int | None = None
    repo_root: str | None = None


@dataclass(frozen=True, slots=True)
class ExecRunOutput:
    ok: bool
    stdout: str
    stderr: str
    exit_code: int | None = None
    signal: str | None = None
    message: str | None = None
    cmd: str | None = None
    error_kind: str | None = None

    def format_text(self, ctx: FormatContext | None = None) -> str:
        if self.ok:
            return self.stdout
        text = f"error: {self.message}"
        if ctx is not None and ctx.verbosity > 0 and self.cmd:
            text += f"\ncmd: {self.cmd}"
        return text

    def cli_exit_code(self) -> int:
        if self.ok:
            return 0
        if self.exit_code is not None and self.exit_code > 0:
            return self.exit_code
        return 1


async def exec_run(payload: ExecRunInput) -> ExecRunOutput:
    command = payload.command.strip()
    if not command:
        raise ValueError("command must not be empty.")

    config = build_runtime(payload.repo_root).config
    options = ExecOptions(
        cwd=payload.cwd,
        shell=payload.shell or True,
        max_buffer=payload.max_buffer,
    )
    try:
        result = await execute(command, options, config=config)
    except ExecError as exc:
        return ExecRunOutput(
            ok=False,
            stdout=exc.stdout,
            stderr=exc.stderr,
            exit_code=exc.exit_code,
            signal=exc.signal,
            message=exc.message,
            cmd=exc.cmd,
            error_kind=type(exc).__name__,
        )
    return ExecRunOutput(ok=True, stdout=result.stdout, stderr=result.stderr, exit_code=0)


def exec_run_sync(payload: ExecRunInput) -> ExecRunOutput:
    return asyncio.run(exec_run(payload))


operation(
    OperationSpec[ExecRunInput, ExecRunOutput](
        name="exec.run",
        handler=exec_run,
        sync_handler=exec_run_sync,
        input_type=ExecRunInput,
        output_type=ExecRunOutput,
        cli_name="run",
        mcp_name="exec_run",
        description="Run a shell command and capture its stdout/stderr.",
    )
)
