"""
Логирование dialplan-redis.

- stdout, по строке JSON на событие (LOG_FORMAT=text — человекочитаемо)
- msg — имя события (snake_case), данные — в extra={"payload": {...}}
- логгер команд "dialplan-redis.commands": текст каждой команды Redis на debug,
  аргументы AUTH маскируются фильтром, если не включён REDIS_LOG_SECRETS
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from dialplan_redis.common.config import get_settings

PROJECT_LOGGER = "dialplan-redis"
COMMAND_LOGGER = f"{PROJECT_LOGGER}.commands"

SECRET_MASK = "********"
# Команды, аргументы которых являются секретами
SECRET_COMMANDS = frozenset({"AUTH"})


def _record_payload(record: logging.LogRecord) -> dict[str, Any] | None:
    payload = getattr(record, "payload", None)
    return payload if isinstance(payload, dict) else None


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload = _record_payload(record)
        if payload is not None:
            out["payload"] = payload
        if record.exc_info:
            out["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(out, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """
    "2024-01-01 12:00:00 DEBUG dialplan-redis.commands: redis_command command='GET k'"
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        payload = _record_payload(record)
        if payload:
            line += " " + " ".join(f"{k}={v!r}" for k, v in payload.items())
        return line


class CommandRedactionFilter(logging.Filter):
    """
    Маскирует аргументы секретных команд в payload["command"].

    Payload ожидается в виде {"command": "AUTH pw", "argc": 1}; argc нужен,
    чтобы пароль с пробелами не "раскрылся" частично.
    Запись не отбрасывается, payload подменяется копией.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        payload = _record_payload(record)
        if payload is None or get_settings().redis_log_secrets:
            return True

        text = str(payload.get("command") or "")
        name = text.split(" ", 1)[0].upper()
        if name not in SECRET_COMMANDS:
            return True

        argc = payload.get("argc")
        if not isinstance(argc, int):
            argc = len(text.split()) - 1
        if argc <= 0:
            return True

        record.payload = {**payload, "command": " ".join([name, *([SECRET_MASK] * argc)])}
        return True


def _build_formatter() -> logging.Formatter:
    s = get_settings()
    if (s.log_format or "").lower() == "text":
        return TextFormatter()
    return JsonFormatter()


def setup_logging() -> None:
    s = get_settings()
    root = logging.getLogger()
    level = getattr(logging, (s.log_level or "INFO").upper(), logging.INFO)
    root.setLevel(level)

    # Не плодим хэндлеры при повторном вызове
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter())
    root.addHandler(handler)


def get_project_logger(name: str = PROJECT_LOGGER) -> logging.Logger:
    return logging.getLogger(name)


def get_command_logger() -> logging.Logger:
    """
    Логгер текста команд Redis. Фильтр маскирования вешается один раз.
    """
    logger = logging.getLogger(COMMAND_LOGGER)
    if not any(isinstance(f, CommandRedactionFilter) for f in logger.filters):
        logger.addFilter(CommandRedactionFilter())
    return logger
