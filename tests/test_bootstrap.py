"""Startup sequence, git version and limit tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

import rawexec.lib.bootstrap.git as git_module
import rawexec.lib.bootstrap.initialize as initialize_module
from rawexec.lib.bootstrap import (
    GitVersionError,
    InitHooks,
    Limit,
    global_finalize,
    global_initialize,
    increment_limit,
    is_limit_reached,
    parse_git_version,
    reset_all_limits,
    set_directories,
    set_max_limit,
    validate_git_version,
)
from rawexec.lib.bootstrap.git import parse_version
from rawexec.lib.bootstrap.limits import get_max_limit
from rawexec.lib.config import RawexecConfig
from rawexec.lib.exec import ExecOptions, ExecResult, ExitCodeError


def _fake_execute(stdout: str):
    async def _execute(cmd, options=None, *, config=None) -> ExecResult:
        assert cmd == "git --version"
        return ExecResult(stdout=stdout, stderr="")

    return _execute


async def _failing_execute(cmd, options=None, *, config=None) -> ExecResult:
    raise ExitCodeError(
        'Process exited with exit code "127"',
        cmd=f"/bin/sh -c {cmd}",
        options=options or ExecOptions(),
        stdout="",
        stderr="git: not found",
        exit_code=127,
    )


def test_limits_default_to_unlimited() -> None:
    increment_limit(Limit.COMMITS, by=50)

    assert get_max_limit(Limit.COMMITS) is None
    assert not is_limit_reached(Limit.COMMITS)


def test_limit_reached_at_maximum() -> None:
    set_max_limit(Limit.COMMITS, 2)
    increment_limit(Limit.COMMITS)
    assert not is_limit_reached(Limit.COMMITS)

    increment_limit(Limit.COMMITS)
    assert is_limit_reached(Limit.COMMITS)

    reset_all_limits()
    assert not is_limit_reached(Limit.COMMITS)


@pytest.mark.parametrize("value", [None, 0, -3])
def test_non_positive_limit_means_unlimited(value: int | None) -> None:
    set_max_limit(Limit.COMMITS, value)

    assert get_max_limit(Limit.COMMITS) is None


@pytest.mark.parametrize(
    ("output", "expected"),
    [
        ("git version 2.39.2\n", (2, 39, 2)),
        ("git version 2.45.1.windows.1\n", (2, 45, 1)),
        ("git version 2.40\n", (2, 40, 0)),
        ("not git at all", None),
    ],
)
def test_parse_git_version(output: str, expected: tuple[int, int, int] | None) -> None:
    assert parse_git_version(output) == expected


def test_parse_version_rejects_garbage() -> None:
    assert parse_version("2") == (2, 0, 0)
    with pytest.raises(ValueError):
        parse_version("two.three")


@pytest.mark.asyncio
async def test_validate_git_version_accepts_new_enough(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(git_module, "execute", _fake_execute("git version 2.45.0\n"))

    assert await validate_git_version("2.33.0") is True


@pytest.mark.asyncio
async def test_validate_git_version_rejects_old(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(git_module, "execute", _fake_execute("git version 2.20.1\n"))

    assert await validate_git_version("2.33.0") is False


@pytest.mark.asyncio
async def test_validate_git_version_rejects_unparseable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(git_module, "execute", _fake_execute("hub version 1\n"))

    assert await validate_git_version() is False


@pytest.mark.asyncio
async def test_validate_git_version_handles_exec_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(git_module, "execute", _failing_execute)

    assert await validate_git_version() is False


def test_set_directories_defaults_under_tmpdir(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("RAWEXEC_TMPDIR", str(tmp_path))
    monkeypatch.setenv("TMPDIR", "/should/be/replaced")

    resolved = set_directories(RawexecConfig())

    assert os.environ["TMPDIR"] == str(tmp_path)
    assert resolved.base_dir == str(tmp_path / "rawexec")
    assert resolved.cache_dir == str(tmp_path / "rawexec" / "cache")
    assert Path(resolved.cache_dir).is_dir()
    assert not (Path(resolved.cache_dir) / "buildpack").exists()


@pytest.mark.parametrize("binary_source", ["docker", "install"])
def test_set_directories_creates_buildpack_cache(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    binary_source: str,
) -> None:
    monkeypatch.setenv("RAWEXEC_TMPDIR", str(tmp_path / "tmp"))
    config = RawexecConfig(
        base_dir=str(tmp_path / "base"),
        cache_dir=str(tmp_path / "cache"),
        binary_source=binary_source,
    )

    resolved = set_directories(config)

    assert resolved.base_dir == str(tmp_path / "base")
    assert (tmp_path / "base").is_dir()
    assert (tmp_path / "cache" / "buildpack").is_dir()


@pytest.mark.asyncio
async def test_global_initialize_runs_steps_in_order(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("RAWEXEC_TMPDIR", str(tmp_path))
    calls: list[str] = []

    async def _validate(min_version: str, *, config=None) -> bool:
        calls.append(f"git>={min_version}")
        return True

    async def _init_platform(config: RawexecConfig) -> RawexecConfig:
        calls.append("platform")
        assert config.base_dir is None
        return config

    async def _init_package_cache(config: RawexecConfig) -> None:
        calls.append("cache")
        assert config.cache_dir == str(tmp_path / "rawexec" / "cache")

    def _apply_host_rules(config: RawexecConfig) -> None:
        calls.append("host-rules")
        assert get_max_limit(Limit.COMMITS) == 5

    monkeypatch.setattr(initialize_module, "validate_git_version", _validate)
    hooks = InitHooks(
        init_platform=_init_platform,
        init_package_cache=_init_package_cache,
        apply_host_rules=_apply_host_rules,
    )

    resolved = await global_initialize(RawexecConfig(commits_per_run_limit=5), hooks)

    assert calls == ["git>=2.33.0", "platform", "cache", "host-rules"]
    assert resolved.base_dir == str(tmp_path / "rawexec")


@pytest.mark.asyncio
async def test_global_initialize_raises_on_old_git(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _validate(min_version: str, *, config=None) -> bool:
        return False

    monkeypatch.setattr(initialize_module, "validate_git_version", _validate)

    with pytest.raises(GitVersionError, match="Init: git version needs upgrading"):
        await global_initialize(RawexecConfig())


@pytest.mark.asyncio
async def test_global_finalize_cleans_package_cache() -> None:
    cleaned: list[RawexecConfig] = []

    async def _cleanup(config: RawexecConfig) -> None:
        cleaned.append(config)

    config = RawexecConfig()
    await global_finalize(config, InitHooks(cleanup_package_cache=_cleanup))

    assert cleaned == [config]


@pytest.mark.asyncio
async def test_caller_counts_commits_against_initialized_limit(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("RAWEXEC_TMPDIR", str(tmp_path))

    async def _validate(min_version: str, *, config=None) -> bool:
        return True

    monkeypatch.setattr(initialize_module, "validate_git_version", _validate)
    await global_initialize(RawexecConfig(commits_per_run_limit=2))

    committed = 0
    while not is_limit_reached(Limit.COMMITS):
        committed += 1
        increment_limit(Limit.COMMITS)

    assert committed == 2


def test_default_min_git_version_matches_config() -> None:
    assert git_module.DEFAULT_MIN_GIT_VERSION == RawexecConfig().min_git_version
    defaults = validate_git_version.__defaults__
    assert defaults == (git_module.DEFAULT_MIN_GIT_VERSION,)
