"""
Метрики Prometheus для модуля.

Назначение:
- счётчики команд Redis по результату
- задержка выполнения команд
- количество переподключений
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

COMMANDS_TOTAL = Counter(
    "func_redis_commands_total",
    "Количество команд, отправленных в Redis",
    ["command", "result"],
)

COMMAND_LATENCY_MS = Histogram(
    "func_redis_command_latency_ms",
    "Задержка команды Redis (мс)",
    ["command"],
    buckets=(1, 2, 5, 10, 25, 50, 100, 250, 500, 1000, 5000),
)

RECONNECTS_TOTAL = Counter(
    "func_redis_reconnects_total",
    "Количество (пере)подключений к Redis",
    ["result"],
)


@contextmanager
def track_command(command: str) -> Iterator[None]:
    """
    Контекстный менеджер для замера задержки команды.
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        COMMAND_LATENCY_MS.labels(command=command).observe(
            (time.perf_counter() - started) * 1000.0
        )
