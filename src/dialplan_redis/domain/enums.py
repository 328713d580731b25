"""
Доменные перечисления (enum).

Используются во всей системе:
- жизненный цикл подключения к Redis
- тип ответа Redis
- результат загрузки модуля
"""

from __future__ import annotations

import enum


class ConnectionState(str, enum.Enum):
    """
    Жизненный цикл подключения:
    uninitialized → loaded → connected → (reconnecting) → released
    """

    uninitialized = "uninitialized"
    loaded = "loaded"
    connected = "connected"
    reconnecting = "reconnecting"
    released = "released"


class ReplyType(str, enum.Enum):
    nil = "nil"
    error = "error"
    string = "string"
    integer = "integer"
    array = "array"


class LoadResult(str, enum.Enum):
    """
    Результат load/reload для хоста.
    """

    success = "success"
    decline = "decline"


class CliResult(str, enum.Enum):
    success = "success"
    showusage = "showusage"
    failure = "failure"
