"""Startup sequence: toolchain checks, directories and run limits."""

from rawexec.lib.bootstrap.git import parse_git_version, validate_git_version
from rawexec.lib.bootstrap.initialize import (
    GitVersionError,
    InitHooks,
    global_finalize,
    global_initialize,
    set_directories,
)
from rawexec.lib.bootstrap.limits import (
    Limit,
    increment_limit,
    is_limit_reached,
    reset_all_limits,
    set_max_limit,
)

__all__ = [
    "GitVersionError",
    "InitHooks",
    "Limit",
    "global_finalize",
    "global_initialize",
    "increment_limit",
    "is_limit_reached",
    "parse_git_version",
    "reset_all_limits",
    "set_directories",
    "set_max_limit",
    "validate_git_version",
]
