"""
Классификация ответов Redis.

redis-py уже разбирает протокол; здесь ответ приводится к одному из
типов: nil / error / string / integer / array.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dialplan_redis.domain.enums import ReplyType


@dataclass(frozen=True)
class Reply:
    type: ReplyType
    str_value: str | None = None
    int_value: int | None = None
    elements: tuple[Reply, ...] = field(default_factory=tuple)

    @property
    def is_nil(self) -> bool:
        return self.type == ReplyType.nil

    @property
    def is_error(self) -> bool:
        return self.type == ReplyType.error

    @property
    def ok(self) -> bool:
        return self.type not in {ReplyType.nil, ReplyType.error}

    @property
    def text(self) -> str:
        """
        Текстовое представление для переменных канала и CLI.
        """
        if self.type in {ReplyType.string, ReplyType.error}:
            return self.str_value or ""
        if self.type == ReplyType.integer:
            return str(self.int_value)
        return ""

    @classmethod
    def nil(cls) -> Reply:
        return cls(ReplyType.nil)

    @classmethod
    def error(cls, message: str) -> Reply:
        return cls(ReplyType.error, str_value=message)

    @classmethod
    def string(cls, value: str) -> Reply:
        return cls(ReplyType.string, str_value=value)

    @classmethod
    def integer(cls, value: int) -> Reply:
        return cls(ReplyType.integer, int_value=value)

    @classmethod
    def array(cls, elements: list[Reply]) -> Reply:
        return cls(ReplyType.array, elements=tuple(elements))


def classify(raw: Any) -> Reply:
    """
    Привести значение, возвращённое redis-py, к Reply.

    bool проверяется раньше int: callbacks redis-py превращают +OK в True.
    """
    if raw is None:
        return Reply.nil()
    if isinstance(raw, Exception):
        return Reply.error(str(raw))
    if isinstance(raw, bool):
        return Reply.string("OK") if raw else Reply.nil()
    if isinstance(raw, int):
        return Reply.integer(raw)
    if isinstance(raw, bytes):
        return Reply.string(raw.decode("utf-8", errors="replace"))
    if isinstance(raw, str):
        return Reply.string(raw)
    if isinstance(raw, dict):
        flat: list[Reply] = []
        for k, v in raw.items():
            flat.append(classify(k))
            flat.append(classify(v))
        return Reply.array(flat)
    if isinstance(raw, (list, tuple, set)):
        return Reply.array([classify(item) for item in raw])
    return Reply.string(str(raw))
