"""Operation running the global startup checks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rawexec.lib.bootstrap import GitVersionError, Limit, global_finalize, global_initialize
from rawexec.lib.bootstrap.limits import get_max_limit
from rawexec.lib.ops._runtime import build_runtime
from rawexec.lib.ops.registry import OperationSpec, operation

if TYPE_CHECKING:
    from rawexec.lib.formatting import FormatContext


@dataclass(frozen=True, slots=True)
class InitCheckInput:
    repo_root: str | None = None


@dataclass(frozen=True, slots=True)
class InitCheckOutput:
    ok: bool
    repo_root: str
    git_ok: bool
    base_dir: str | None = None
    cache_dir: str | None = None
    commits_per_run_limit: int | None = None
    warnings: tuple[str, ...] = ()

    def format_text(self, ctx: FormatContext | None = None) -> str:
        """Key-value startup check output for text output mode."""
        from rawexec.lib.formatting import kv_block

        pairs: list[tuple[str, str | None]] = [
            ("ok", "ok" if self.ok else "FAILED"),
            ("repo_root", self.repo_root),
            ("git", "ok" if self.git_ok else "needs upgrading"),
            ("base_dir", self.base_dir),
            ("cache_dir", self.cache_dir),
            (
                "commits_per_run_limit",
                str(self.commits_per_run_limit)
                if self.commits_per_run_limit is not None
                else "unlimited",
            ),
        ]
        result = kv_block(pairs)
        for warning in self.warnings:
            result += f"\nwarning: {warning}"
        return result


async def init_check(payload: InitCheckInput) -> InitCheckOutput:
    runtime = build_runtime(payload.repo_root)
    try:
        initialized = await global_initialize(runtime.config)
    except GitVersionError as exc:
        return InitCheckOutput(
            ok=False,
            repo_root=runtime.repo_root.as_posix(),
            git_ok=False,
            warnings=(str(exc),),
        )
    await global_finalize(initialized)
    return InitCheckOutput(
        ok=True,
        repo_root=runtime.repo_root.as_posix(),
        git_ok=True,
        base_dir=initialized.base_dir,
        cache_dir=initialized.cache_dir,
        commits_per_run_limit=get_max_limit(Limit.COMMITS),
    )


def init_check_sync(payload: InitCheckInput) -> InitCheckOutput:
    return asyncio.run(init_check(payload))


operation(
    OperationSpec[InitCheckInput, InitCheckOutput](
        name="init.check",
        handler=init_check,
        sync_handler=init_check_sync,
        input_type=InitCheckInput,
        output_type=InitCheckOutput,
        cli_name="init",
        mcp_name="init_check",
        description="Validate git, prepare base/cache directories and apply run limits.",
    )
)
