"""Cyclopts CLI entry point for rawexec."""

from __future__ import annotations

import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Annotated

from cyclopts import App, Parameter

from rawexec import __version__
from rawexec.cli.exec_cmd import register_exec_commands
from rawexec.cli.init_cmd import register_init_command
from rawexec.cli.output import OutputConfig, emit_error
from rawexec.cli.output import emit as emit_output

if TYPE_CHECKING:
    from collections.abc import Sequence

_DEFAULT_OUTPUT = OutputConfig(format="text")
_OUTPUT: ContextVar[OutputConfig] = ContextVar("_OUTPUT", default=_DEFAULT_OUTPUT)

# Flags consumed before cyclopts sees argv, so they work in any position.
_JSON_FLAGS = {"--json": True, "--no-json": False}
_VERBOSE_FLAGS = frozenset({"--verbose", "-v"})


def get_output_config() -> OutputConfig:
    return _OUTPUT.get()


def emit(payload: object) -> None:
    emit_output(payload, _OUTPUT.get())


def split_global_flags(argv: Sequence[str]) -> tuple[list[str], OutputConfig]:
    """Pull `--json`/`-v` out of argv; everything after `--` is left alone."""

    json_mode = False
    verbosity = 0
    remaining: list[str] = []
    for index, arg in enumerate(argv):
        if arg == "--":
            remaining.extend(argv[index:])
            break
        if arg in _JSON_FLAGS:
            json_mode = _JSON_FLAGS[arg]
        elif arg in _VERBOSE_FLAGS:
            verbosity += 1
        else:
            remaining.append(arg)
    return remaining, OutputConfig(format="json" if json_mode else "text", verbosity=verbosity)


app = App(
    name="rawexec",
    help="Run shell commands with bounded output capture.",
    version=__version__,
    help_formatter="plain",
)


@app.default
def root(
    json_mode: Annotated[
        bool,
        Parameter(name="--json", help="Emit command output as JSON."),
    ] = False,
    verbose: Annotated[
        bool,
        Parameter(name=["--verbose", "-v"], help="Log more to stderr; repeat for debug."),
    ] = False,
) -> None:
    """Show help; global flags are listed here."""

    _ = (json_mode, verbose)
    app.help_print()


@app.command(name="serve")
def serve() -> None:
    """Start FastMCP server on stdio."""

    from rawexec.server.main import run_server

    run_server()


_CLI_NAMES: set[str] = set()
_CLI_COMMANDS: dict[str, str] = {}


def _register_commands() -> None:
    for names, descriptions in (
        register_exec_commands(app, emit, get_output_config),
        register_init_command(app, emit),
    ):
        _CLI_NAMES.update(names)
        _CLI_COMMANDS.update(descriptions)


def get_registered_cli_commands() -> set[str]:
    return set(_CLI_NAMES)


def get_registered_cli_descriptions() -> dict[str, str]:
    """Operation name to help text, for parity with the MCP tool list."""

    return dict(_CLI_COMMANDS)


def _error_message(exc: Exception) -> str:
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc).strip() or type(exc).__name__


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point used by `rawexec` and `python -m rawexec`."""

    from rawexec.lib.logging import configure_logging

    args, output = split_global_flags(list(sys.argv[1:] if argv is None else argv))
    configure_logging(json_mode=output.json, verbosity=output.verbosity)

    token = _OUTPUT.set(output)
    try:
        app(args)
    except (KeyError, ValueError, OSError) as exc:
        emit_error(_error_message(exc))
        raise SystemExit(1) from None
    finally:
        _OUTPUT.reset(token)


_register_commands()
