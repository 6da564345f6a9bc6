"""Writing command results to the terminal."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Any, Literal

from rawexec.lib.formatting import FormatContext, TextFormattable
from rawexec.lib.serialization import to_jsonable

OutputFormat = Literal["text", "json"]


@dataclass(frozen=True, slots=True)
class OutputConfig:
    format: OutputFormat
    verbosity: int = 0

    @property
    def json(self) -> bool:
        return self.format == "json"


def emit(value: Any, config: OutputConfig) -> None:
    """Print one result: a JSON line, or its text rendering."""

    if config.json:
        print(json.dumps(to_jsonable(value), sort_keys=True))
    elif isinstance(value, TextFormattable):
        print(value.format_text(FormatContext(verbosity=config.verbosity)))
    else:
        print(json.dumps(to_jsonable(value), sort_keys=True, indent=2))


def relay_streams(stdout: str, stderr: str) -> None:
    """Pass captured child output through untouched, without added newlines."""

    sys.stdout.write(stdout)
    sys.stdout.flush()
    sys.stderr.write(stderr)
    sys.stderr.flush()


def emit_error(message: str) -> None:
    print(f"error: {message}", file=sys.stderr)
