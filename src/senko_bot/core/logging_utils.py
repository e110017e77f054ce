from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 3


@dataclass(frozen=True)
class LogConfig:
    path: Optional[Path] = None
    level: str = "INFO"
    max_bytes: int = DEFAULT_MAX_BYTES
    backup_count: int = DEFAULT_BACKUP_COUNT


def _coerce_field(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_coerce_field(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _coerce_field(item) for key, item in value.items()}
    return str(value)


def format_event(event: str, **fields: Any) -> str:
    payload: dict[str, Any] = {"event": event}
    for key, value in fields.items():
        if value is None:
            continue
        payload[key] = _coerce_field(value)
    return json.dumps(payload, sort_keys=False, ensure_ascii=False)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc: Optional[BaseException] = None,
    **fields: Any,
) -> None:
    """Emit a structured single-line JSON event.

    When ``exc`` is given its summary is added to the payload and, for
    warnings and above, the traceback is attached to the record.
    """
    if not logger.isEnabledFor(level):
        return
    if exc is not None:
        fields["exc"] = exc
    exc_info = None
    if exc is not None and level >= logging.WARNING:
        exc_info = (type(exc), exc, exc.__traceback__)
    logger.log(level, format_event(event, **fields), exc_info=exc_info)


def setup_rotating_logger(name: str, config: Optional[LogConfig] = None) -> logging.Logger:
    config = config or LogConfig()
    logger = logging.getLogger(name)
    logger.setLevel(logging.getLevelName(config.level.upper()))
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if config.path is not None:
        config.path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger
