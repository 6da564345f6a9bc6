"""Operation registry and handler tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

import rawexec.lib.ops.init as init_ops
from rawexec.lib.bootstrap import GitVersionError
from rawexec.lib.config import RawexecConfig
from rawexec.lib.ops import get_all_operations, get_operation
from rawexec.lib.ops.codec import coerce_input_payload, signature_from_dataclass
from rawexec.lib.ops.exec import ExecRunInput, ExecRunOutput, exec_run
from rawexec.lib.ops.init import InitCheckInput, InitCheckOutput, init_check

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell")


def test_registry_lists_operations_sorted() -> None:
    names = [op.name for op in get_all_operations()]

    assert names == ["exec.run", "init.check"]
    assert get_operation("exec.run").mcp_name == "exec_run"
    assert get_operation("init.check").cli_name == "init"


def test_codec_coerces_tool_input() -> None:
    payload = coerce_input_payload(
        ExecRunInput,
        {"command": "true", "max_buffer": "128", "cwd": None},
    )

    assert payload == ExecRunInput(command="true", max_buffer=128)


def test_codec_rejects_non_mapping_input() -> None:
    with pytest.raises(TypeError, match="must be an object"):
        coerce_input_payload(ExecRunInput, ["true"])


def test_signature_from_dataclass_is_keyword_only() -> None:
    signature = signature_from_dataclass(ExecRunInput)

    assert list(signature.parameters) == ["command", "cwd", "shell", "max_buffer", "repo_root"]
    assert all(param.kind is param.KEYWORD_ONLY for param in signature.parameters.values())


@pytest.mark.asyncio
async def test_exec_run_rejects_empty_command() -> None:
    with pytest.raises(ValueError, match="command must not be empty"):
        await exec_run(ExecRunInput(command="   "))


@posix_only
@pytest.mark.asyncio
async def test_exec_run_reports_success(tmp_path: Path) -> None:
    result = await exec_run(ExecRunInput(command="printf ok", repo_root=str(tmp_path)))

    assert result == ExecRunOutput(ok=True, stdout="ok", stderr="", exit_code=0)
    assert result.cli_exit_code() == 0
    assert result.format_text() == "ok"


@posix_only
@pytest.mark.asyncio
async def test_exec_run_maps_failure_into_output(tmp_path: Path) -> None:
    result = await exec_run(
        ExecRunInput(command="printf partial; exit 4", repo_root=str(tmp_path))
    )

    assert result.ok is False
    assert result.stdout == "partial"
    assert result.exit_code == 4
    assert result.error_kind == "ExitCodeError"
    assert result.cmd == "/bin/sh -c printf partial; exit 4"
    assert result.cli_exit_code() == 4
    assert result.format_text() == 'error: Process exited with exit code "4"'


@posix_only
@pytest.mark.asyncio
async def test_exec_run_honours_repo_config(tmp_path: Path) -> None:
    config_path = tmp_path / ".rawexec" / "config.toml"
    config_path.parent.mkdir()
    config_path.write_text("[exec]\nmax_buffer = 3\n", encoding="utf-8")

    result = await exec_run(ExecRunInput(command="printf 12345", repo_root=str(tmp_path)))

    assert result.ok is False
    assert result.error_kind == "SpawnError"
    assert result.message == "stdout maxBuffer exceeded"
    assert result.cli_exit_code() == 1


@pytest.mark.asyncio
async def test_init_check_reports_directories(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    async def _initialize(config: RawexecConfig) -> RawexecConfig:
        return RawexecConfig(base_dir=str(tmp_path / "base"), cache_dir=str(tmp_path / "cache"))

    monkeypatch.setattr(init_ops, "global_initialize", _initialize)

    result = await init_check(InitCheckInput(repo_root=str(tmp_path)))

    assert result.ok is True
    assert result.git_ok is True
    assert result.base_dir == str(tmp_path / "base")
    text = result.format_text()
    assert "commits_per_run_limit: unlimited" in text
    assert f"cache_dir: {tmp_path / 'cache'}" in text


@pytest.mark.asyncio
async def test_init_check_reports_old_git(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    async def _initialize(config: RawexecConfig) -> RawexecConfig:
        raise GitVersionError(config.min_git_version)

    monkeypatch.setattr(init_ops, "global_initialize", _initialize)

    result = await init_check(InitCheckInput(repo_root=str(tmp_path)))

    assert result == InitCheckOutput(
        ok=False,
        repo_root=tmp_path.resolve().as_posix(),
        git_ok=False,
        warnings=("Init: git version needs upgrading",),
    )
    assert "git: needs upgrading" in result.format_text()
