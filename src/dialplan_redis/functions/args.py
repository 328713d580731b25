"""
Разбор аргументов функций диалплана.

Правила (как у хоста):
- разделитель — запятая
- текст в двойных кавычках не делится, кавычки снимаются
- "\\" экранирует следующий символ
- запятые внутри () и [] не делят аргументы
"""

from __future__ import annotations

from dialplan_redis.common.errors import ArgumentError
from dialplan_redis.common.logging import get_project_logger

log = get_project_logger()

_OPEN = "(["
_CLOSE = ")]"


def split_args(raw: str, delim: str = ",") -> list[str]:
    args: list[str] = []
    buf: list[str] = []
    depth = 0
    quoted = False
    escaped = False

    for ch in raw:
        if escaped:
            buf.append(ch)
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch == '"':
            quoted = not quoted
            continue
        if not quoted:
            if ch in _OPEN:
                depth += 1
            elif ch in _CLOSE and depth > 0:
                depth -= 1
            elif ch == delim and depth == 0:
                args.append("".join(buf))
                buf = []
                continue
        buf.append(ch)

    args.append("".join(buf))
    return args


def parse_args(
    raw: str | None,
    *,
    function: str,
    usage: str,
    min_args: int = 1,
    max_args: int = 1,
) -> list[str]:
    """
    Разобрать и проверить количество аргументов.

    Пустая строка или неверное количество → ArgumentError (без обращения к Redis).
    """
    if not raw:
        log.warning("function_argument_missing", extra={"payload": {"function": function, "usage": usage}})
        raise ArgumentError(usage, {"function": function})

    args = split_args(raw)
    if not (min_args <= len(args) <= max_args):
        log.warning(
            "function_argument_count_invalid",
            extra={"payload": {"function": function, "argc": len(args), "usage": usage}},
        )
        raise ArgumentError(usage, {"function": function, "argc": len(args)})
    return args
