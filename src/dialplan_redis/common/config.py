"""
Централизованная конфигурация процесса (ENV / .env).

Важно:
- настройки читаются из .env и переменных окружения
- типизированные значения через pydantic-settings
- параметры подключения к Redis живут отдельно, в func_redis.conf
  (см. dialplan_redis.store.config_loader)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # значения из *_FILE приводятся к типу поля
        validate_assignment=True,
    )

    # -------------------------------------------------------------------------
    # func_redis.conf
    # -------------------------------------------------------------------------
    config_dir: str = Field(default="/etc/asterisk", alias="FUNC_REDIS_CONFIG_DIR")
    config_file: str = Field(default="func_redis.conf", alias="FUNC_REDIS_CONFIG_FILE")

    # -------------------------------------------------------------------------
    # Dialplan
    # -------------------------------------------------------------------------
    # Разрешить "опасные" функции из недоверенных источников (AMI, ARI и т.п.)
    live_dangerously: bool = Field(default=False, alias="LIVE_DANGEROUSLY")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")  # json|text
    # AUTH <password> в debug-логе как есть (только для доверенного канала логов)
    redis_log_secrets: bool = Field(default=False, alias="REDIS_LOG_SECRETS")

    def model_post_init(self, __context) -> None:
        _apply_file_overrides(self)

    @property
    def config_path(self) -> Path:
        return Path(self.config_dir) / self.config_file


def _apply_file_overrides(settings: Settings) -> None:
    alias_to_field = {}
    for name, field in Settings.model_fields.items():
        alias = field.alias or name
        alias_to_field[str(alias)] = name
        alias_to_field[str(name)] = name

    for key, path in os.environ.items():
        if not key.endswith("_FILE"):
            continue
        base = key[: -len("_FILE")]
        target = alias_to_field.get(base)
        if not target:
            continue
        file_path = (path or "").strip()
        if not file_path:
            continue
        try:
            raw = Path(file_path).read_text(encoding="utf-8")
        except Exception as e:
            logging.getLogger("dialplan-redis").error(
                "config_file_read_failed",
                extra={"payload": {"env_key": key, "path": file_path, "error": str(e)[:200]}},
            )
            raise RuntimeError(f"Failed to read {key} from {file_path}") from e
        setattr(settings, target, (raw or "").strip())


_SETTINGS = Settings()


def get_settings() -> Settings:
    return _SETTINGS
