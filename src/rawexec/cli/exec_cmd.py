"""CLI command handler for the exec.run operation."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING, Annotated, Any

from cyclopts import Parameter

from rawexec.cli.output import OutputConfig, emit_error, relay_streams
from rawexec.lib.ops.exec import ExecRunInput, exec_run_sync
from rawexec.lib.ops.registry import get_all_operations

if TYPE_CHECKING:
    from cyclopts import App

Emitter = Callable[[Any], None]


def _run(
    emit: Emitter,
    output: Callable[[], OutputConfig],
    command: str,
    cwd: Annotated[
        str | None,
        Parameter(name="--cwd", help="Working directory for the command."),
    ] = None,
    shell: Annotated[
        str | None,
        Parameter(name="--shell", help="Shell executable used to run the command."),
    ] = None,
    max_buffer: Annotated[
        int | None,
        Parameter(name="--max-buffer", help="Per-stream output limit in bytes."),
    ] = None,
) -> None:
    result = exec_run_sync(
        ExecRunInput(command=command, cwd=cwd, shell=shell, max_buffer=max_buffer)
    )
    if output().json:
        emit(result)
    else:
        relay_streams(result.stdout, result.stderr)
        if not result.ok:
            emit_error(result.message or "command failed")

    exit_code = result.cli_exit_code()
    if exit_code != 0:
        raise SystemExit(exit_code)


def register_exec_commands(
    app: App,
    emit: Emitter,
    output: Callable[[], OutputConfig],
) -> tuple[set[str], dict[str, str]]:
    registered: set[str] = set()
    descriptions: dict[str, str] = {}

    for op in get_all_operations():
        if op.name != "exec.run":
            continue
        handler = partial(_run, emit, output)
        handler.__name__ = f"cmd_{op.cli_name}"
        app.command(handler, name=op.cli_name, help=op.description)
        registered.add(op.cli_name)
        descriptions[op.name] = op.description

    return registered, descriptions
