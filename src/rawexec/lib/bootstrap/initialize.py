"""Global startup and shutdown sequence around the process supervisor."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from pathlib import Path

import structlog

from rawexec.lib.bootstrap.git import validate_git_version
from rawexec.lib.bootstrap.limits import Limit, set_max_limit
from rawexec.lib.config.settings import RawexecConfig

logger = structlog.get_logger(__name__)

_BUILDPACK_BINARY_SOURCES = frozenset({"docker", "install"})


class GitVersionError(RuntimeError):
    """Raised when the installed git is missing or too old."""

    def __init__(self, min_version: str) -> None:
        self.min_version = min_version
        super().__init__("Init: git version needs upgrading")


async def _keep_config(config: RawexecConfig) -> RawexecConfig:
    return config


async def _no_async_op(config: RawexecConfig) -> None:
    _ = config


def _no_op(config: RawexecConfig) -> None:
    _ = config


@dataclass(frozen=True, slots=True)
class InitHooks:
    """Collaborators the startup sequence calls out to.

    Platform setup, the package cache and host-rule registration live
    outside rawexec; the defaults leave the config untouched.
    """

    init_platform: Callable[[RawexecConfig], Awaitable[RawexecConfig]] = _keep_config
    init_package_cache: Callable[[RawexecConfig], Awaitable[None]] = _no_async_op
    cleanup_package_cache: Callable[[RawexecConfig], Awaitable[None]] = _no_async_op
    apply_host_rules: Callable[[RawexecConfig], None] = _no_op


def set_directories(config: RawexecConfig) -> RawexecConfig:
    """Resolve and create base/cache directories; export `TMPDIR`."""

    tmpdir = os.environ.get("RAWEXEC_TMPDIR") or tempfile.gettempdir()
    os.environ["TMPDIR"] = tmpdir

    if config.base_dir:
        base_dir = Path(config.base_dir).expanduser()
        logger.debug("Using configured base_dir.", base_dir=str(base_dir))
    else:
        base_dir = Path(tmpdir) / "rawexec"
        logger.debug("Using base_dir.", base_dir=str(base_dir))
    base_dir.mkdir(parents=True, exist_ok=True)

    if config.cache_dir:
        cache_dir = Path(config.cache_dir).expanduser()
        logger.debug("Using configured cache_dir.", cache_dir=str(cache_dir))
    else:
        cache_dir = base_dir / "cache"
        logger.debug("Using cache_dir.", cache_dir=str(cache_dir))
    cache_dir.mkdir(parents=True, exist_ok=True)

    if config.binary_source in _BUILDPACK_BINARY_SOURCES:
        (cache_dir / "buildpack").mkdir(parents=True, exist_ok=True)

    return replace(config, base_dir=str(base_dir), cache_dir=str(cache_dir))


def limit_commits_per_run(config: RawexecConfig) -> None:
    set_max_limit(Limit.COMMITS, config.commits_per_run_limit)


async def check_versions(config: RawexecConfig) -> None:
    if not await validate_git_version(config.min_git_version, config=config):
        raise GitVersionError(config.min_git_version)


async def global_initialize(
    config: RawexecConfig,
    hooks: InitHooks | None = None,
) -> RawexecConfig:
    """Validate the toolchain and prepare directories; return the updated config."""

    resolved_hooks = hooks or InitHooks()
    await check_versions(config)
    config = await resolved_hooks.init_platform(config)
    config = set_directories(config)
    await resolved_hooks.init_package_cache(config)
    limit_commits_per_run(config)
    resolved_hooks.apply_host_rules(config)
    return config


async def global_finalize(config: RawexecConfig, hooks: InitHooks | None = None) -> None:
    await (hooks or InitHooks()).cleanup_package_cache(config)
