"""Repository-level operational config loader."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Literal, cast

logger = logging.getLogger(__name__)

DEFAULT_MAX_BUFFER = 10 * 1024 * 1024
DEFAULT_KILL_GRACE_SECONDS = 2.0
DEFAULT_DRAIN_TIMEOUT_SECONDS = 0.5
DEFAULT_MIN_GIT_VERSION = "2.33.0"

BinarySource = Literal["global", "docker", "install", "hermit"]
_BINARY_SOURCES = frozenset({"global", "docker", "install", "hermit"})

ValueKind = Literal["int", "optional_int", "float", "bool", "str", "optional_str"]


@dataclass(frozen=True, slots=True)
class RawexecConfig:
    """Resolved operational configuration for rawexec."""

    max_buffer: int = DEFAULT_MAX_BUFFER
    shell: str | None = None
    kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS
    drain_timeout_seconds: float = DEFAULT_DRAIN_TIMEOUT_SECONDS
    signal_process_group: bool = False
    base_dir: str | None = None
    cache_dir: str | None = None
    binary_source: BinarySource = "global"
    commits_per_run_limit: int | None = None
    min_git_version: str = DEFAULT_MIN_GIT_VERSION


_FIELD_KINDS: dict[str, ValueKind] = {
    "max_buffer": "int",
    "shell": "optional_str",
    "kill_grace_seconds": "float",
    "drain_timeout_seconds": "float",
    "signal_process_group": "bool",
    "base_dir": "optional_str",
    "cache_dir": "optional_str",
    "binary_source": "str",
    "commits_per_run_limit": "optional_int",
    "min_git_version": "str",
}

_SECTION_KEY_MAP: dict[str, dict[str, str]] = {
    "exec": {
        "max_buffer": "max_buffer",
        "shell": "shell",
        "kill_grace_seconds": "kill_grace_seconds",
        "drain_timeout_seconds": "drain_timeout_seconds",
        "signal_process_group": "signal_process_group",
    },
    "bootstrap": {
        "base_dir": "base_dir",
        "cache_dir": "cache_dir",
        "binary_source": "binary_source",
        "commits_per_run_limit": "commits_per_run_limit",
        "pr_commits_per_run_limit": "commits_per_run_limit",
        "min_git_version": "min_git_version",
    },
}

_TOP_LEVEL_KEY_MAP: dict[str, str] = {name: name for name in _FIELD_KINDS}

_ENV_OVERRIDE_MAP: dict[str, str] = {
    "RAWEXEC_MAX_BUFFER": "max_buffer",
    "RAWEXEC_SHELL": "shell",
    "RAWEXEC_KILL_GRACE_SECONDS": "kill_grace_seconds",
    "RAWEXEC_DRAIN_TIMEOUT_SECONDS": "drain_timeout_seconds",
    "RAWEXEC_SIGNAL_PROCESS_GROUP": "signal_process_group",
    "RAWEXEC_BASE_DIR": "base_dir",
    "RAWEXEC_CACHE_DIR": "cache_dir",
    "RAWEXEC_BINARY_SOURCE": "binary_source",
    "RAWEXEC_COMMITS_PER_RUN_LIMIT": "commits_per_run_limit",
    "RAWEXEC_MIN_GIT_VERSION": "min_git_version",
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def resolve_config_path(repo_root: Path) -> Path:
    """Return the config file path, honoring `RAWEXEC_CONFIG`."""

    override = os.getenv("RAWEXEC_CONFIG", "").strip()
    if not override:
        return repo_root / ".rawexec" / "config.toml"

    candidate = Path(override).expanduser()
    if candidate.is_absolute():
        return candidate
    return repo_root / candidate



def _type_error(source: str, expected: str, raw_value: object) -> ValueError:
    return ValueError(
        f"Invalid value for '{source}': expected {expected}, got "
        f"{type(raw_value).__name__} ({raw_value!r})."
    )


def _coerce_file_value(*, field_name: str, raw_value: object, source: str) -> object:
    """Check a TOML value against the field's kind; TOML already typed it."""

    kind = _FIELD_KINDS[field_name]
    # bool is an int subclass; never accept it for numeric fields.
    is_number = isinstance(raw_value, int | float) and not isinstance(raw_value, bool)
    if kind in {"int", "optional_int"}:
        if not is_number or not isinstance(raw_value, int):
            raise _type_error(source, "int", raw_value)
        return raw_value
    if kind == "float":
        if not is_number:
            raise _type_error(source, "float", raw_value)
        return float(cast("float", raw_value))
    if kind == "bool":
        if not isinstance(raw_value, bool):
            raise _type_error(source, "bool", raw_value)
        return raw_value
    if not isinstance(raw_value, str):
        raise _type_error(source, "str", raw_value)
    if not raw_value.strip():
        raise ValueError(f"Invalid value for '{source}': expected non-empty string.")
    return raw_value.strip()


def _coerce_env_value(*, field_name: str, raw_value: str, env_name: str) -> object:
    """Parse an environment string; blank clears optional fields."""

    kind = _FIELD_KINDS[field_name]
    text = raw_value.strip()
    if not text and kind.startswith("optional_"):
        return None

    def invalid(expected: str) -> ValueError:
        return ValueError(
            f"Invalid environment override '{env_name}': expected {expected}, got {raw_value!r}."
        )

    if kind in {"int", "optional_int"}:
        try:
            return int(text)
        except ValueError:
            raise invalid("int") from None
    if kind == "float":
        try:
            return float(text)
        except ValueError:
            raise invalid("float") from None
    if kind == "bool":
        if text.lower() in _TRUTHY:
            return True
        if text.lower() in _FALSY:
            return False
        raise invalid("bool")
    if not text:
        raise invalid("non-empty string")
    return text


def _apply_toml_payload(
    *,
    values: dict[str, object],
    payload: dict[str, object],
    path: Path,
) -> None:
    entries: list[tuple[str, str | None, object]] = []
    for key, raw_value in payload.items():
        section_map = _SECTION_KEY_MAP.get(key)
        if section_map is None:
            entries.append((key, _TOP_LEVEL_KEY_MAP.get(key), raw_value))
            continue
        if not isinstance(raw_value, dict):
            raise ValueError(f"Invalid value for '{key}' in '{path}': expected table.")
        for section_key, section_value in cast("dict[str, object]", raw_value).items():
            entries.append((f"{key}.{section_key}", section_map.get(section_key), section_value))

    for source, field_name, raw_value in entries:
        if field_name is None:
            logger.warning("Ignoring unknown rawexec config key '%s'.", source)
            continue
        values[field_name] = _coerce_file_value(
            field_name=field_name,
            raw_value=raw_value,
            source=source,
        )


def _apply_env_overrides(values: dict[str, object]) -> None:
    for env_name, field_name in _ENV_OVERRIDE_MAP.items():
        raw_value = os.getenv(env_name)
        if raw_value is not None:
            values[field_name] = _coerce_env_value(
                field_name=field_name,
                raw_value=raw_value,
                env_name=env_name,
            )


def _validate(config: RawexecConfig) -> RawexecConfig:
    if config.max_buffer <= 0:
        raise ValueError(f"Invalid max_buffer: expected positive int, got {config.max_buffer}.")
    if config.kill_grace_seconds < 0:
        raise ValueError(
            f"Invalid kill_grace_seconds: expected >= 0, got {config.kill_grace_seconds}."
        )
    if config.drain_timeout_seconds < 0:
        raise ValueError(
            f"Invalid drain_timeout_seconds: expected >= 0, got {config.drain_timeout_seconds}."
        )
    if config.binary_source not in _BINARY_SOURCES:
        raise ValueError(
            f"Invalid binary_source: expected one of {sorted(_BINARY_SOURCES)}, "
            f"got {config.binary_source!r}."
        )
    return config


def load_config(repo_root: Path) -> RawexecConfig:
    """Load `.rawexec/config.toml` under `repo_root`, then apply `RAWEXEC_*` overrides."""

    defaults = RawexecConfig()
    values: dict[str, object] = {
        field.name: getattr(defaults, field.name) for field in fields(RawexecConfig)
    }
    path = resolve_config_path(repo_root)
    if path.is_file():
        payload = cast("dict[str, object]", tomllib.loads(path.read_text(encoding="utf-8")))
        _apply_toml_payload(values=values, payload=payload, path=path)

    _apply_env_overrides(values)
    return _validate(RawexecConfig(**cast("dict[str, Any]", values)))
