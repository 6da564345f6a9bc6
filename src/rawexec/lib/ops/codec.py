"""Turning MCP tool arguments into operation input dataclasses."""

from __future__ import annotations

import inspect
import types
from collections.abc import Mapping
from dataclasses import MISSING, fields, is_dataclass
from typing import Any, TypeVar, Union, cast, get_args, get_origin, get_type_hints

PayloadT = TypeVar("PayloadT")

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


def _target_type(annotation: Any) -> Any:
    """Strip `X | None` down to `X`."""

    if get_origin(annotation) in (types.UnionType, Union):
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) == 1:
            return members[0]
    return annotation


def _coerce_field(name: str, annotation: Any, value: object) -> object:
    if value is None:
        return None
    target = _target_type(annotation)
    try:
        if target is bool:
            if isinstance(value, str):
                return value.strip().lower() in _TRUE_STRINGS
            return bool(value)
        if target in (int, float, str):
            return target(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for '{name}': {value!r}") from exc
    return value


def coerce_input_payload(payload_type: type[PayloadT], raw_input: object) -> PayloadT:
    """Build `payload_type` from a tool-argument mapping; unknown keys are dropped."""

    if raw_input is None:
        raw_input = {}
    if not isinstance(raw_input, Mapping):
        raise TypeError(f"Tool input must be an object, got {type(raw_input).__name__}")
    arguments = cast("Mapping[str, object]", raw_input)

    hints = get_type_hints(payload_type)
    kwargs: dict[str, object] = {}
    for field in fields(cast("Any", payload_type)):
        if field.name in arguments:
            kwargs[field.name] = _coerce_field(
                field.name, hints.get(field.name), arguments[field.name]
            )
        elif field.default is MISSING and field.default_factory is MISSING:
            raise TypeError(f"Missing required field '{field.name}'")
    return payload_type(**kwargs)


def signature_from_dataclass(payload_type: type[object]) -> inspect.Signature:
    """Keyword-only signature mirroring the dataclass fields."""

    if not is_dataclass(payload_type):
        return inspect.Signature()
    hints = get_type_hints(payload_type)
    return inspect.Signature(
        [
            inspect.Parameter(
                field.name,
                inspect.Parameter.KEYWORD_ONLY,
                default=inspect.Parameter.empty if field.default is MISSING else field.default,
                annotation=hints.get(field.name, field.type),
            )
            for field in fields(payload_type)
        ]
    )
