"""Configuration discovery and parsing helpers."""

from rawexec.lib.config._paths import resolve_repo_root
from rawexec.lib.config.settings import (
    DEFAULT_MAX_BUFFER,
    RawexecConfig,
    load_config,
    resolve_config_path,
)

__all__ = [
    "DEFAULT_MAX_BUFFER",
    "RawexecConfig",
    "load_config",
    "resolve_config_path",
    "resolve_repo_root",
]
