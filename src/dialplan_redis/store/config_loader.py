"""
Загрузка func_redis.conf.

Назначение:
- чтение секции [general] (hostname, port, dbname, password, timeout)
- значения по умолчанию с предупреждением на каждое
- валидация через pydantic (port > 0, timeout >= 0)

Ошибки:
- нет файла / файл не парсится / значения невалидны → ConfigError
"""

from __future__ import annotations

import configparser
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dialplan_redis.common.config import get_settings
from dialplan_redis.common.errors import ConfigError
from dialplan_redis.common.logging import get_project_logger

log = get_project_logger()

CONFIG_SECTION = "general"

DEFAULT_HOSTNAME = "127.0.0.1"
DEFAULT_PORT = 6379
DEFAULT_DBNAME = "asterisk"
DEFAULT_PASSWORD = ""
DEFAULT_TIMEOUT_SEC = 5


class RedisConfig(BaseModel):
    """
    Параметры подключения. Неизменяемы между reload.
    """

    model_config = ConfigDict(frozen=True)

    hostname: str = DEFAULT_HOSTNAME
    port: int = Field(default=DEFAULT_PORT, gt=0)
    dbname: str = DEFAULT_DBNAME
    password: str = Field(default=DEFAULT_PASSWORD, repr=False)
    timeout: float = Field(default=DEFAULT_TIMEOUT_SEC, ge=0)

    @property
    def db_index(self) -> int | None:
        """
        Номер БД Redis, если dbname числовой (иначе имя только информационное).
        """
        name = (self.dbname or "").strip()
        return int(name) if name.isdigit() else None


# (ключ, значение по умолчанию, событие для warning)
_DEFAULTS: tuple[tuple[str, str, str], ...] = (
    ("hostname", DEFAULT_HOSTNAME, "config_default_hostname"),
    ("port", str(DEFAULT_PORT), "config_default_port"),
    ("dbname", DEFAULT_DBNAME, "config_default_dbname"),
    ("password", DEFAULT_PASSWORD, "config_no_password_auth_disabled"),
    ("timeout", str(DEFAULT_TIMEOUT_SEC), "config_default_timeout"),
)


def load_config(path: str | Path | None = None) -> RedisConfig:
    """
    Прочитать конфиг и вернуть RedisConfig.

    path=None → путь из настроек процесса (FUNC_REDIS_CONFIG_DIR/FUNC_REDIS_CONFIG_FILE).
    """
    conf_path = Path(path) if path is not None else get_settings().config_path

    # Формат Asterisk: "key = value ; комментарий"
    parser = configparser.ConfigParser(
        interpolation=None,
        comment_prefixes=(";", "#"),
        inline_comment_prefixes=(";",),
    )
    try:
        with conf_path.open(encoding="utf-8") as fh:
            parser.read_file(fh)
    except FileNotFoundError as e:
        log.error("config_load_failed", extra={"payload": {"path": str(conf_path), "reason": "missing"}})
        raise ConfigError(f"Unable to load config {conf_path}", {"path": str(conf_path)}) from e
    except (OSError, configparser.Error) as e:
        log.error(
            "config_load_failed",
            extra={"payload": {"path": str(conf_path), "reason": str(e)[:200]}},
        )
        raise ConfigError(f"Unable to load config {conf_path}", {"path": str(conf_path)}) from e

    section = parser[CONFIG_SECTION] if parser.has_section(CONFIG_SECTION) else {}

    values: dict[str, str] = {}
    for key, default, event in _DEFAULTS:
        raw = section.get(key)
        if raw is None:
            log.warning(event, extra={"payload": {"key": key, "default": default}})
            raw = default
        values[key] = raw.strip()

    try:
        config = RedisConfig(**values)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        log.error(
            "config_invalid",
            extra={"payload": {"path": str(conf_path), "fields": fields}},
        )
        raise ConfigError(f"Invalid values in {conf_path}", {"fields": fields}) from e

    log.info(
        "config_loaded",
        extra={
            "payload": {
                "hostname": config.hostname,
                "port": config.port,
                "dbname": config.dbname,
                "auth": bool(config.password),
                "timeout": config.timeout,
            }
        },
    )
    return config
