from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import ConfigError
from .logging_utils import DEFAULT_BACKUP_COUNT, DEFAULT_MAX_BYTES, LogConfig

DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_OPENAI_MODEL = "gpt-4-turbo"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
BOT_TOKEN_ENV = "SENKO_BOT_TOKEN"
OPENAI_KEY_ENV = "SENKO_OPENAI_KEY"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class BotConfig:
    root: Path
    bot_token: str
    client_id: str
    guild_ids: tuple[str, ...]
    openai_api_key: str
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    intents: int = 0
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_raw(cls, *, root: Path, raw: dict[str, Any]) -> "BotConfig":
        cfg: dict[str, Any] = raw if isinstance(raw, dict) else {}

        bot_token = _env_or_value(BOT_TOKEN_ENV, cfg.get("token"))
        if not bot_token:
            raise ConfigError(f"token must be set in config or via {BOT_TOKEN_ENV}")
        client_id = _as_str(cfg.get("clientId"))
        if not client_id:
            raise ConfigError("clientId must be a non-empty string")
        openai_api_key = _env_or_value(OPENAI_KEY_ENV, cfg.get("openAIKey"))
        if not openai_api_key:
            raise ConfigError(
                f"openAIKey must be set in config or via {OPENAI_KEY_ENV}"
            )

        openai_model = _as_str(cfg.get("openAIModel")) or DEFAULT_OPENAI_MODEL
        openai_base_url = (
            _as_str(cfg.get("openAIBaseUrl")) or DEFAULT_OPENAI_BASE_URL
        ).rstrip("/")

        intents_value = cfg.get("intents", 0)
        if isinstance(intents_value, bool) or not isinstance(intents_value, int):
            raise ConfigError("intents must be an integer")
        if intents_value < 0:
            raise ConfigError("intents must be >= 0")

        return cls(
            root=root,
            bot_token=bot_token,
            client_id=client_id,
            guild_ids=tuple(_parse_string_ids(cfg.get("guildIds"))),
            openai_api_key=openai_api_key,
            openai_model=openai_model,
            openai_base_url=openai_base_url,
            intents=intents_value,
            log=_parse_log_config(root, cfg.get("log")),
        )


def load_bot_config(path: Optional[Path] = None) -> BotConfig:
    config_path = (path or Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    if config_path.is_dir():
        config_path = config_path / DEFAULT_CONFIG_FILE
    raw = _load_mapping(config_path)
    config = BotConfig.from_raw(root=config_path.parent, raw=raw)
    logging.getLogger(__name__).debug("Loaded bot config from %s", config_path)
    return config


def _load_mapping(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        # JSON is a subset of YAML, so config.json loads through the same path.
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid config in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def _parse_log_config(root: Path, value: Any) -> LogConfig:
    if value is None:
        return LogConfig()
    if not isinstance(value, dict):
        raise ConfigError("log must be a mapping")
    path_value = value.get("path")
    log_path: Optional[Path] = None
    if path_value is not None:
        if not isinstance(path_value, str) or not path_value.strip():
            raise ConfigError("log.path must be a string path")
        log_path = (root / path_value.strip()).resolve()
    level = str(value.get("level", "INFO")).strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"log.level must be one of {sorted(_LOG_LEVELS)}")
    return LogConfig(
        path=log_path,
        level=level,
        max_bytes=_parse_positive_int_or_default(
            value.get("max_bytes"), default=DEFAULT_MAX_BYTES, key="log.max_bytes"
        ),
        backup_count=_parse_positive_int_or_default(
            value.get("backup_count"),
            default=DEFAULT_BACKUP_COUNT,
            key="log.backup_count",
        ),
    )


def _env_or_value(env_name: str, value: Any) -> str:
    override = os.environ.get(env_name)
    if override is not None and override.strip():
        return override.strip()
    return _as_str(value)


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_string_ids(value: Any) -> list[str]:
    if value is None:
        return []
    items = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
    parsed: list[str] = []
    for item in items:
        token = str(item).strip()
        if token and token not in parsed:
            parsed.append(token)
    return parsed


def _parse_positive_int_or_default(value: Any, *, default: int, key: str) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer") from exc
    if parsed <= 0:
        return default
    return parsed
