from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class RuntimeEnv:
    access_token: str | None
    app_id: str | None
    domain: str | None


@dataclass
class AppConfig:
    domain: str
    app_id: str | None
    skill_id: str | None
    session_key: str | None
    continue_conversation: bool
    poll_interval_seconds: float
    max_poll_attempts: int | None
    request_timeout_seconds: float
    log_level: str
    log_consumers: list | None


def load_json_config(path: Path | None = None) -> dict:
    config_path = path or Path.cwd() / "config.json"
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


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def _optional_int(value: object) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return int(value)


def parse_app_config(config: dict) -> AppConfig:
    poll_interval = float(config.get("PollIntervalSeconds", 0.5))
    if poll_interval < 0:
        raise ValueError(f"PollIntervalSeconds must be >= 0, got {poll_interval}")

    max_poll_attempts = _optional_int(config.get("MaxPollAttempts"))
    if max_poll_attempts is not None and max_poll_attempts < 1:
        raise ValueError(f"MaxPollAttempts must be >= 1, got {max_poll_attempts}")

    return AppConfig(
        domain=str(config.get("Domain", "feishu")).strip(),
        app_id=_optional_str(config.get("AppId")),
        skill_id=_optional_str(config.get("SkillId")),
        session_key=_optional_str(config.get("SessionKey")),
        continue_conversation=_to_bool(config.get("ContinueConversation", True), default=True),
        poll_interval_seconds=poll_interval,
        max_poll_attempts=max_poll_attempts,
        request_timeout_seconds=float(config.get("RequestTimeoutSeconds", 30)),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        access_token=_optional_str(os.environ.get("LARK_ACCESS_TOKEN")),
        app_id=_optional_str(os.environ.get("LARK_AILY_APP_ID")),
        domain=_optional_str(os.environ.get("LARK_DOMAIN")),
    )
