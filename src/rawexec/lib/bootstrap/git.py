"""Git version validation on top of the process supervisor."""

from __future__ import annotations

import re

import structlog

from rawexec.lib.config.settings import DEFAULT_MIN_GIT_VERSION, RawexecConfig
from rawexec.lib.exec import ExecError, ExecOptions, execute

logger = structlog.get_logger(__name__)

_GIT_VERSION_PATTERN = re.compile(r"git version (\d+)\.(\d+)(?:\.(\d+))?")


def parse_version(text: str) -> tuple[int, int, int]:
    """Parse `MAJOR[.MINOR[.PATCH]]` into a comparable tuple."""

    parts = text.strip().split(".")
    if not parts or len(parts) > 3 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid version string: {text!r}")
    numbers = [int(part) for part in parts] + [0] * (3 - len(parts))
    return numbers[0], numbers[1], numbers[2]


def parse_git_version(output: str) -> tuple[int, int, int] | None:
    """Extract the version from `git --version` output."""

    match = _GIT_VERSION_PATTERN.search(output)
    if match is None:
        return None
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch or 0)


async def validate_git_version(
    min_version: str = DEFAULT_MIN_GIT_VERSION,
    *,
    options: ExecOptions | None = None,
    config: RawexecConfig | None = None,
) -> bool:
    """Return whether the installed git is at least `min_version`."""

    minimum = parse_version(min_version)
    try:
        result = await execute("git --version", options, config=config)
    except ExecError as exc:
        logger.error("Error fetching git version.", error=exc.message, stderr=exc.stderr)
        return False

    version = parse_git_version(result.stdout)
    if version is None:
        logger.error("Unable to parse git version.", output=result.stdout.strip())
        return False
    if version < minimum:
        logger.error(
            "Git version needs upgrading.",
            found=".".join(map(str, version)),
            minimum=min_version,
        )
        return False

    logger.debug("Found valid git version.", version=".".join(map(str, version)))
    return True
