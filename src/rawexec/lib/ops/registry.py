"""Operation registry shared by the CLI and MCP surfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


@dataclass(frozen=True, slots=True)
class OperationSpec(Generic[InputT, OutputT]):
    """One operation: an async handler plus how each surface names it."""

    name: str
    handler: Callable[[InputT], Coroutine[Any, Any, OutputT]]
    sync_handler: Callable[[InputT], OutputT]
    input_type: type[InputT]
    output_type: type[OutputT]
    cli_name: str
    mcp_name: str
    description: str
    cli_only: bool = False


_REGISTRY: dict[str, OperationSpec[Any, Any]] = {}
_bootstrapped = False


def _surface_owner(attribute: str, value: str) -> str | None:
    for registered in _REGISTRY.values():
        if getattr(registered, attribute) == value:
            return registered.name
    return None


def operation(spec: OperationSpec[InputT, OutputT]) -> OperationSpec[InputT, OutputT]:
    """Register an operation; names must be unique on every surface."""

    if spec.name in _REGISTRY:
        raise ValueError(f"Duplicate operation name '{spec.name}'")
    for attribute in ("cli_name", "mcp_name"):
        owner = _surface_owner(attribute, getattr(spec, attribute))
        if owner is not None:
            raise ValueError(
                f"Operation '{spec.name}' reuses {attribute} "
                f"'{getattr(spec, attribute)}' of '{owner}'"
            )
    _REGISTRY[spec.name] = spec
    return spec


def get_all_operations() -> list[OperationSpec[Any, Any]]:
    """Return all registered operations sorted by canonical name."""

    _ensure_bootstrapped()
    return [_REGISTRY[name] for name in sorted(_REGISTRY)]


def get_mcp_operations() -> list[OperationSpec[Any, Any]]:
    return [op for op in get_all_operations() if not op.cli_only]


def get_operation(name: str) -> OperationSpec[Any, Any]:
    _ensure_bootstrapped()
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(f"Unknown operation '{name}'") from None


def _ensure_bootstrapped() -> None:
    global _bootstrapped
    if _bootstrapped:
        return
    # Operation modules register themselves on import.
    from rawexec.lib.ops import exec as exec_ops
    from rawexec.lib.ops import init as init_ops

    _ = (exec_ops, init_ops)
    _bootstrapped = True
