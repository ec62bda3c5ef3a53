from __future__ import annotations

import os

from stowage.runtime.config import (
    EngineConfig,
    load_default_env_files,
    load_engine_config,
    load_env_file,
    resolve_log_level_name,
)


def test_load_env_file_sets_values_with_overwrite_by_default(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env.stowage"
    env_file.write_text("STOWAGE_A=1\nSTOWAGE_B='two'\n#comment\nINVALID\nSTOWAGE_C=three\n", encoding="utf-8")
    monkeypatch.delenv("STOWAGE_A", raising=False)
    monkeypatch.delenv("STOWAGE_B", raising=False)
    monkeypatch.setenv("STOWAGE_C", "already")
    load_env_file(str(env_file))
    assert os.environ.get("STOWAGE_A") == "1"
    assert os.environ.get("STOWAGE_B") == "two"
    assert os.environ.get("STOWAGE_C") == "three"


def test_load_env_file_can_preserve_existing_values(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env.stowage"
    env_file.write_text("STOWAGE_C=three\n", encoding="utf-8")
    monkeypatch.setenv("STOWAGE_C", "already")
    load_env_file(str(env_file), override_existing=False)
    assert os.environ.get("STOWAGE_C") == "already"


def test_load_env_file_missing_is_noop(tmp_path) -> None:
    load_env_file(str(tmp_path / ".env.missing"))


def test_load_default_env_files_local_overrides_base(tmp_path, monkeypatch) -> None:
    base = tmp_path / ".env.stowage"
    local = tmp_path / ".env.stowage.local"
    base.write_text("STOWAGE_A=base\nSTOWAGE_B=base\n", encoding="utf-8")
    local.write_text("STOWAGE_B=local\n", encoding="utf-8")
    monkeypatch.delenv("STOWAGE_A", raising=False)
    monkeypatch.delenv("STOWAGE_B", raising=False)

    load_default_env_files(paths=(str(base), str(local)))
    assert os.environ.get("STOWAGE_A") == "base"
    assert os.environ.get("STOWAGE_B") == "local"


def test_load_engine_config_defaults() -> None:
    assert load_engine_config(env={}) == EngineConfig()


def test_load_engine_config_reads_overrides() -> None:
    config = load_engine_config(
        env={
            "STOWAGE_LOG_LEVEL": "debug",
            "STOWAGE_LOG_FORMAT": "JSON",
            "STOWAGE_LOG_FILE": "logs/stowage.jsonl",
            "STOWAGE_STRICT_CONTRACTS": "yes",
            "STOWAGE_DEBUG_OCCUPANCY": "1",
        }
    )
    assert config == EngineConfig(
        log_level="DEBUG",
        log_format="json",
        log_file="logs/stowage.jsonl",
        strict_contracts=True,
        debug_occupancy=True,
    )


def test_invalid_values_fall_back_to_defaults() -> None:
    config = load_engine_config(
        env={"STOWAGE_LOG_FORMAT": "xml", "STOWAGE_STRICT_CONTRACTS": "maybe", "STOWAGE_LOG_FILE": "  "}
    )
    assert config.log_format == "text"
    assert config.strict_contracts is False
    assert config.log_file is None


def test_log_level_falls_back_to_generic_variable(monkeypatch) -> None:
    assert resolve_log_level_name(env={"LOG_LEVEL": "warning"}) == "WARNING"
    assert resolve_log_level_name(env={"LOG_LEVEL": "warning", "STOWAGE_LOG_LEVEL": "error"}) == "ERROR"
    monkeypatch.delenv("STOWAGE_LOG_LEVEL", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert load_engine_config().log_level == "DEBUG"
