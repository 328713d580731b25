"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для загрузки модуля, диалплана и CLI
- единый стиль исключений по проекту

Фатальные для load/reload: ConfigError, StoreConnectionError, AuthError.
Видимые диалплану (как пустой результат / "0"): ArgumentError, StoreError.
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    CONFIG = "config"
    ARGUMENT = "argument"
    FORBIDDEN = "forbidden"

    # Хранилище
    CONNECTION = "connection"
    AUTH = "auth"
    STORE = "store"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение (без паролей)
    - details: доп. данные
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


class ConfigError(AppError):
    def __init__(self, message: str = "Invalid configuration", details: dict | None = None) -> None:
        super().__init__(ErrCode.CONFIG, message, details)


class StoreConnectionError(AppError):
    def __init__(
        self, message: str = "Couldn't establish connection", details: dict | None = None
    ) -> None:
        super().__init__(ErrCode.CONNECTION, message, details)


class AuthError(AppError):
    def __init__(self, message: str = "Unable to authenticate", details: dict | None = None) -> None:
        super().__init__(ErrCode.AUTH, message, details)


class ArgumentError(AppError):
    def __init__(self, message: str = "Invalid arguments", details: dict | None = None) -> None:
        super().__init__(ErrCode.ARGUMENT, message, details)


class StoreError(AppError):
    def __init__(self, message: str = "Store error", details: dict | None = None) -> None:
        super().__init__(ErrCode.STORE, message, details)


class EscalationError(AppError):
    def __init__(
        self, message: str = "Function not allowed from this origin", details: dict | None = None
    ) -> None:
        super().__init__(ErrCode.FORBIDDEN, message, details)
