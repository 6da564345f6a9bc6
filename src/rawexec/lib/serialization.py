"""JSON conversion for operation outputs and execution failures."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from pathlib import Path
from typing import Any, cast


def to_jsonable(value: Any) -> Any:
    """Convert results, failures and plain containers to JSON-ready values.

    Objects exposing `to_payload()` (execution errors) serialize through it;
    other exceptions collapse to `"<Type>: <message>"`.
    """

    to_payload = getattr(value, "to_payload", None)
    if callable(to_payload):
        return to_jsonable(to_payload())
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    if is_dataclass(value) and not isinstance(value, type):
        # Shallow walk so nested payloads still pass through to_payload().
        return {field.name: to_jsonable(getattr(value, field.name)) for field in fields(value)}
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        typed_mapping = cast("Mapping[object, object]", value)
        return {str(key): to_jsonable(item) for key, item in typed_mapping.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in cast("Any", value)]
    return value
