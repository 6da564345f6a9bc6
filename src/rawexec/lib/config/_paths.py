"""Locate the repository whose `.rawexec/config.toml` applies."""

from __future__ import annotations

import os
from pathlib import Path


def _has_marker(candidate: Path) -> bool:
    # A `.git` file (worktree or submodule) marks a root as well as a directory.
    return (candidate / ".rawexec").is_dir() or (candidate / ".git").exists()


def resolve_repo_root(explicit: Path | None = None) -> Path:
    """Return the repo root: explicit path, `RAWEXEC_REPO_ROOT`, nearest marked ancestor, cwd."""

    if explicit is None:
        override = os.getenv("RAWEXEC_REPO_ROOT", "").strip()
        explicit = Path(override) if override else None
    if explicit is not None:
        return explicit.expanduser().resolve()

    cwd = Path.cwd().resolve()
    return next((path for path in (cwd, *cwd.parents) if _has_marker(path)), cwd)
