"""Text rendering protocol for operation outputs.

Operation outputs live in lib/ and the CLI renders them; this module keeps
the protocol on the lib side so nothing in lib/ imports cli/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class FormatContext:
    verbosity: int = 0


@runtime_checkable
class TextFormattable(Protocol):
    def format_text(self, ctx: FormatContext | None = None) -> str: ...


def kv_block(pairs: list[tuple[str, str | None]]) -> str:
    """Render `key: value` lines, dropping pairs whose value is None.

    >>> kv_block([("base_dir", "/tmp/rawexec"), ("git", "ok"), ("limit", None)])
    'base_dir: /tmp/rawexec\\ngit: ok'
    """
    return "\n".join(f"{key}: {value}" for key, value in pairs if value is not None)
