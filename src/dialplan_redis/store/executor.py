"""
Исполнитель команд Redis.

Назначение:
- отправить команду по текущему подключению и дождаться ответа
- классифицировать ответ (nil / error / string / integer / array)
- залогировать текст каждой команды на уровне debug

Важно:
- никаких автоматических ретраев
- ошибка транспорта → StoreConnectionError, ответ-ошибка Redis → Reply.error
- команды сериализуются через command_lock менеджера подключения,
  чтобы ответы не перепутались между конкурентными вызовами
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from redis import exceptions as redis_exc

from dialplan_redis.common.errors import StoreConnectionError
from dialplan_redis.common.logging import get_command_logger, get_project_logger
from dialplan_redis.common.metrics import COMMANDS_TOTAL, track_command
from dialplan_redis.store.reply import Reply, classify

log = get_project_logger()
cmd_log = get_command_logger()


def format_command(command: str, args: Sequence[str] = ()) -> str:
    """
    Текст команды для лога: "HGET key field". Маскирование AUTH — в логгере команд.
    """
    return " ".join([command.upper(), *(str(a) for a in args)])


def log_command(command: str, args: Sequence[str] = ()) -> None:
    cmd_log.debug(
        "redis_command",
        extra={"payload": {"command": format_command(command, args), "argc": len(args)}},
    )


def execute_command(handle: Any, command: str, args: Sequence[str] = ()) -> Reply:
    """
    Выполнить одну команду на handle и вернуть классифицированный ответ.
    """
    name = command.upper()
    log_command(name, args)

    with track_command(name):
        try:
            raw = handle.execute_command(name, *args)
        except (redis_exc.ResponseError, redis_exc.AuthenticationError) as e:
            # AuthenticationError — наследник ConnectionError, но это ответ сервера
            COMMANDS_TOTAL.labels(command=name, result="error").inc()
            return Reply.error(str(e))
        except (redis_exc.ConnectionError, redis_exc.TimeoutError) as e:
            COMMANDS_TOTAL.labels(command=name, result="transport_error").inc()
            log.error(
                "redis_transport_error",
                extra={"payload": {"command": name, "err": str(e)[:200]}},
            )
            raise StoreConnectionError(
                "Redis transport error", {"command": name, "err": str(e)[:200]}
            ) from e
        except redis_exc.RedisError as e:
            COMMANDS_TOTAL.labels(command=name, result="error").inc()
            return Reply.error(str(e))

    reply = classify(raw)
    COMMANDS_TOTAL.labels(command=name, result=reply.type.value).inc()
    return reply


class CommandExecutor:
    """
    Исполнитель поверх ConnectionManager: берёт текущий handle под command_lock.
    """

    def __init__(self, manager) -> None:
        self._manager = manager

    def execute(self, command: str, *args: str) -> Reply:
        with self._manager.command_lock:
            handle = self._manager.current_handle()
            return execute_command(handle, command, args)

    def execute_many(self, *commands: Sequence[str]) -> list[Reply]:
        """
        Несколько команд подряд под одним command_lock: чужие команды
        не попадут между ними (например, GET + DEL в REDIS_DELETE).
        """
        with self._manager.command_lock:
            handle = self._manager.current_handle()
            return [execute_command(handle, cmd[0], cmd[1:]) for cmd in commands]
