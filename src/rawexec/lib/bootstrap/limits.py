"""Per-run counters with optional maximums.

`global_initialize` sets the maximums. Callers that perform the counted work
call `increment_limit` after each unit and check `is_limit_reached` first.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import structlog

logger = structlog.get_logger(__name__)


class Limit(StrEnum):
    COMMITS = "commits"


@dataclass(slots=True)
class _LimitValue:
    max: int | None
    current: int = 0


_LIMITS: dict[Limit, _LimitValue] = {}


def reset_all_limits() -> None:
    _LIMITS.clear()


def set_max_limit(key: Limit, value: int | None) -> None:
    """Set the maximum for `key`; non-positive or missing values mean unlimited."""

    max_value = value if value is not None and value > 0 else None
    logger.debug("Limits.set_max_limit", key=str(key), max=max_value)
    _LIMITS[key] = _LimitValue(max=max_value)


def get_max_limit(key: Limit) -> int | None:
    limit = _LIMITS.get(key)
    return None if limit is None else limit.max


def increment_limit(key: Limit, by: int = 1) -> None:
    limit = _LIMITS.get(key)
    if limit is None:
        limit = _LimitValue(max=None)
        _LIMITS[key] = limit
    limit.current += by


def is_limit_reached(key: Limit) -> bool:
    limit = _LIMITS.get(key)
    if limit is None or limit.max is None:
        return False
    return limit.current >= limit.max
