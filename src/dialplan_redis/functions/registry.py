"""
Реестр функций диалплана.

Назначение:
- регистрация / снятие функций модулем
- вычисление выражений NAME(args) и присваиваний NAME(args)=value
- контроль "опасных" (escalating) функций для недоверенных источников
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from dialplan_redis.common.config import get_settings
from dialplan_redis.common.errors import ArgumentError, EscalationError
from dialplan_redis.common.logging import get_project_logger
from dialplan_redis.functions.channel import VariableSink

log = get_project_logger()

ReadHandler = Callable[[VariableSink, str], str]
WriteHandler = Callable[[VariableSink, str, str], None]

_NAME_RE = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)\(")


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    synopsis: str
    read: ReadHandler | None = None
    write: WriteHandler | None = None
    escalating_read: bool = False
    escalating_write: bool = False


def split_call(text: str) -> tuple[str, str, str]:
    """
    "NAME(args)rest" → (NAME, args, rest). Скобки внутри args могут быть вложенными.
    """
    m = _NAME_RE.match(text or "")
    if not m:
        raise ArgumentError(f"Invalid function expression: {text!r}")

    depth = 1
    quoted = False
    escaped = False
    start = m.end()
    for idx in range(start, len(text)):
        ch = text[idx]
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch == '"':
            quoted = not quoted
            continue
        if quoted:
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return m.group(1).upper(), text[start:idx], text[idx + 1 :]
    raise ArgumentError(f"Unbalanced parentheses in {text!r}")


class FunctionRegistry:
    def __init__(self, *, live_dangerously: bool | None = None) -> None:
        self._lock = threading.Lock()
        self._functions: dict[str, FunctionSpec] = {}
        self._live_dangerously = live_dangerously

    @property
    def live_dangerously(self) -> bool:
        if self._live_dangerously is not None:
            return self._live_dangerously
        return bool(get_settings().live_dangerously)

    def register(self, spec: FunctionSpec) -> None:
        name = spec.name.upper()
        with self._lock:
            if name in self._functions:
                raise ArgumentError(f"Function {name} already registered")
            self._functions[name] = spec
        log.debug("function_registered", extra={"payload": {"function": name}})

    def register_multiple(self, specs: Sequence[FunctionSpec]) -> None:
        """
        Всё или ничего: при любом конфликте имён не регистрируется ни одна функция.
        """
        names = [s.name.upper() for s in specs]
        with self._lock:
            taken = sorted({n for n in names if n in self._functions or names.count(n) > 1})
            if taken:
                raise ArgumentError(
                    f"Function {', '.join(taken)} already registered", {"functions": taken}
                )
            for name, spec in zip(names, specs):
                self._functions[name] = spec
        log.debug("functions_registered", extra={"payload": {"functions": names}})

    def unregister(self, name: str) -> bool:
        with self._lock:
            removed = self._functions.pop(name.upper(), None)
        return removed is not None

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._functions)

    def get(self, name: str) -> FunctionSpec | None:
        with self._lock:
            return self._functions.get(name.upper())

    def describe(self, name: str) -> str:
        spec = self._require(name)
        return spec.synopsis

    def _require(self, name: str) -> FunctionSpec:
        spec = self.get(name)
        if spec is None:
            raise ArgumentError(f"Function {name.upper()} not registered")
        return spec

    def _check_escalation(self, spec: FunctionSpec, *, write: bool, trusted: bool) -> None:
        escalating = spec.escalating_write if write else spec.escalating_read
        if escalating and not trusted and not self.live_dangerously:
            log.warning(
                "function_escalation_denied",
                extra={"payload": {"function": spec.name, "mode": "write" if write else "read"}},
            )
            raise EscalationError(f"Dangerous function {spec.name} not allowed from this origin")

    # -------------------------------------------------------------------------
    # Вычисление
    # -------------------------------------------------------------------------
    def read(self, expression: str, chan: VariableSink, *, trusted: bool = True) -> str:
        name, data, rest = split_call(expression)
        if rest.strip():
            raise ArgumentError(f"Unexpected trailing text in {expression!r}")
        spec = self._require(name)
        if spec.read is None:
            raise ArgumentError(f"Function {name} cannot be read")
        self._check_escalation(spec, write=False, trusted=trusted)
        return spec.read(chan, data)

    def write(self, expression: str, value: str, chan: VariableSink, *, trusted: bool = True) -> None:
        name, data, rest = split_call(expression)
        if rest.strip():
            raise ArgumentError(f"Unexpected trailing text in {expression!r}")
        spec = self._require(name)
        if spec.write is None:
            raise ArgumentError(f"Function {name} cannot be written")
        self._check_escalation(spec, write=True, trusted=trusted)
        spec.write(chan, data, value)

    def assign(self, statement: str, chan: VariableSink, *, trusted: bool = True) -> None:
        """
        "NAME(args)=value" → write(NAME(args), value).
        """
        name, data, rest = split_call(statement)
        if not rest.startswith("="):
            raise ArgumentError(f"Expected NAME(args)=value, got {statement!r}")
        self.write(f"{name}({data})", rest[1:], chan, trusted=trusted)
