from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from pi_extensions.recorder.store import DEFAULT_DB_PATH
from pi_extensions.tools.kagi.kagi_config import DEFAULT_CONFIG_PATH


@dataclass
class RuntimeEnv:
    recorder_db_path: str | None
    kagi_config_path: str | None


@dataclass
class AppConfig:
    working_directory: str | None
    max_tool_result_chars: int
    recorder_enabled: bool
    recorder_db_path: str
    kagi_enabled: bool
    kagi_config_path: str
    log_level: str
    log_consumers: list | None


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def _expand(path: str) -> str:
    return str(Path(path).expanduser())


def parse_app_config(config: dict, env: RuntimeEnv | None = None) -> AppConfig:
    recorder_db_path = str(config.get("RecorderDbPath", DEFAULT_DB_PATH))
    kagi_config_path = str(config.get("KagiConfigPath", DEFAULT_CONFIG_PATH))
    if env is not None:
        recorder_db_path = env.recorder_db_path or recorder_db_path
        kagi_config_path = env.kagi_config_path or kagi_config_path

    return AppConfig(
        working_directory=config.get("WorkingDirectory"),
        max_tool_result_chars=int(config.get("MaxToolResultChars", 40_000)),
        recorder_enabled=_to_bool(config.get("RecorderEnabled", True), default=True),
        recorder_db_path=_expand(recorder_db_path),
        kagi_enabled=_to_bool(config.get("KagiEnabled", True), default=True),
        kagi_config_path=_expand(kagi_config_path),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        recorder_db_path=os.environ.get("PI_RECORDER_DB"),
        kagi_config_path=os.environ.get("KAGI_CONFIG_PATH"),
    )
