"""Config resolution shared by operation handlers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rawexec.lib.config import RawexecConfig, load_config, resolve_repo_root


@dataclass(frozen=True, slots=True)
class OperationRuntime:
    """Repository root and the config loaded from it."""

    repo_root: Path
    config: RawexecConfig


def build_runtime(repo_root: str | None = None) -> OperationRuntime:
    explicit = Path(repo_root) if repo_root else None
    resolved = resolve_repo_root(explicit)
    return OperationRuntime(repo_root=resolved, config=load_config(resolved))
