"""Value types shared by the process supervisor and its callers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rawexec.lib.formatting import FormatContext


@dataclass(frozen=True, slots=True)
class ExecOptions:
    """Options for one execution.

    `shell` is either `True` (platform default shell) or an explicit shell
    path; commands always run through a shell. `env` replaces the child
    environment when given. `extra` carries passthrough keyword arguments
    for `asyncio.create_subprocess_shell`.
    """

    cwd: Path | str | None = None
    env: Mapping[str, str] | None = None
    shell: bool | str = True
    max_buffer: int | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Captured output of a process that exited with code 0."""

    stdout: str
    stderr: str

    def format_text(self, ctx: FormatContext | None = None) -> str:
        _ = ctx
        return self.stdout
