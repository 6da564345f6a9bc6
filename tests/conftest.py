"""Shared pytest fixtures for supervisor and CLI integration checks."""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from rawexec.lib.bootstrap.limits import reset_all_limits

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

PACKAGE_ROOT = Path(__file__).resolve().parents[1]


@dataclass(frozen=True, slots=True)
class CliResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


@pytest.fixture
def package_root() -> Path:
    return PACKAGE_ROOT


@pytest.fixture(autouse=True)
def _isolated_rawexec_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in list(os.environ):
        if name.startswith("RAWEXEC_"):
            monkeypatch.delenv(name, raising=False)
    reset_all_limits()
    yield
    reset_all_limits()


@pytest.fixture
def cli_env(package_root: Path, tmp_path: Path) -> dict[str, str]:
    env = {key: value for key, value in os.environ.items() if not key.startswith("RAWEXEC_")}
    existing = env.get("PYTHONPATH", "")
    root = str(package_root / "src")
    env["PYTHONPATH"] = root if not existing else f"{root}{os.pathsep}{existing}"
    env["RAWEXEC_REPO_ROOT"] = str(tmp_path)
    env["RAWEXEC_TMPDIR"] = str(tmp_path / "tmp")
    return env


@pytest.fixture
def run_rawexec(package_root: Path, cli_env: dict[str, str]) -> Callable[..., CliResult]:
    def _run(args: list[str], timeout: float = 15.0) -> CliResult:
        completed = subprocess.run(
            [sys.executable, "-m", "rawexec", *args],
            cwd=package_root,
            env=cli_env,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
        return CliResult(
            args=tuple(args),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    return _run
