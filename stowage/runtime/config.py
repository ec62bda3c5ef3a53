"""Engine configuration and env loading."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

DEFAULT_ENV_FILES: tuple[str, ...] = (".env.stowage", ".env.stowage.local")


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Immutable engine configuration sourced from environment."""

    log_level: str = "INFO"
    log_format: str = "text"
    log_file: str | None = None
    strict_contracts: bool = False
    debug_occupancy: bool = False


def load_env_file(path: str = ".env.stowage", *, override_existing: bool = True) -> None:
    """Load KEY=VALUE pairs from an env file into process environment.

    By default, values from the env file overwrite existing environment variables.
    """
    env_path = Path(path)
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue

        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]

        if override_existing or key not in os.environ:
            os.environ[key] = value


def load_default_env_files(
    *, override_existing: bool = True, paths: Sequence[str] | None = None
) -> None:
    """Load env files left-to-right; later files overwrite earlier values."""
    to_load = tuple(paths) if paths is not None else DEFAULT_ENV_FILES
    for path in to_load:
        load_env_file(path, override_existing=override_existing)


def _raw(name: str, *, env: Mapping[str, str] | None = None) -> str | None:
    value = os.getenv(name) if env is None else env.get(name)
    return None if value is None else str(value)


def _flag(name: str, default: bool, *, env: Mapping[str, str] | None = None) -> bool:
    raw = _raw(name, env=env)
    if raw is None:
        return bool(default)
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return bool(default)


def _text(name: str, default: str, *, env: Mapping[str, str] | None = None) -> str:
    raw = _raw(name, env=env)
    if raw is None:
        return str(default)
    value = raw.strip()
    return value if value else str(default)


def resolve_log_level_name(default: str = "INFO", *, env: Mapping[str, str] | None = None) -> str:
    """Resolve log level with engine-prefixed override."""
    value = _raw("STOWAGE_LOG_LEVEL", env=env)
    if value is None or not value.strip():
        value = _text("LOG_LEVEL", default, env=env)
    return value.strip().upper()


def load_engine_config(*, env: Mapping[str, str] | None = None) -> EngineConfig:
    """Load immutable engine configuration from env vars."""
    log_format = _text("STOWAGE_LOG_FORMAT", "text", env=env).lower()
    if log_format not in {"text", "json"}:
        log_format = "text"
    log_file = _text("STOWAGE_LOG_FILE", "", env=env) or None
    return EngineConfig(
        log_level=resolve_log_level_name(env=env),
        log_format=log_format,
        log_file=log_file,
        strict_contracts=_flag("STOWAGE_STRICT_CONTRACTS", False, env=env),
        debug_occupancy=_flag("STOWAGE_DEBUG_OCCUPANCY", False, env=env),
    )
