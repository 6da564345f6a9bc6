"""CLI command handler for the init.check operation."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING, Any

from rawexec.lib.ops.init import InitCheckInput, init_check_sync
from rawexec.lib.ops.registry import get_all_operations

if TYPE_CHECKING:
    from cyclopts import App

Emitter = Callable[[Any], None]


def _init(emit: Emitter) -> None:
    result = init_check_sync(InitCheckInput())
    emit(result)
    if not result.ok:
        raise SystemExit(1)


def register_init_command(app: App, emit: Emitter) -> tuple[set[str], dict[str, str]]:
    registered: set[str] = set()
    descriptions: dict[str, str] = {}

    for op in get_all_operations():
        if op.name != "init.check":
            continue
        handler = partial(_init, emit)
        handler.__name__ = f"cmd_{op.cli_name}"
        app.command(handler, name=op.cli_name, help=op.description)
        registered.add(op.cli_name)
        descriptions[op.name] = op.description

    return registered, descriptions
