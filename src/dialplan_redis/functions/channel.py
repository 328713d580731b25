"""
Канал хоста: хранилище переменных, в которые функции пишут результат.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


class VariableSink(Protocol):
    def set_variable(self, name: str, value: str) -> None: ...


@dataclass
class Channel:
    name: str = "local"
    variables: dict[str, str] = field(default_factory=dict)

    def set_variable(self, name: str, value: str) -> None:
        self.variables[name] = value

    def get_variable(self, name: str, default: str = "") -> str:
        return self.variables.get(name, default)
