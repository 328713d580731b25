"""
Функции диалплана поверх Redis.

- REDIS(key[,hash])            чтение GET/HGET, запись SET/HSET
- REDIS_EXISTS(key)            "1" / "0"
- REDIS_DELETE(key)            вернуть прежнее значение и удалить ключ (GET+DEL атомарно
                               относительно других команд модуля)
- REDIS_PUBLISH(channel)=msg   PUBLISH, число подписчиков в REDIS_PUBLISH_RESULT

Ответ-ошибка Redis и ошибка транспорта поднимаются как StoreError и гасятся
здесь же: пустой результат / "0" / no-op + лог. Наружу (в диалплан) не уходят.
Результат не обрезается (длина не ограничена).
"""

from __future__ import annotations

from collections.abc import Sequence

from dialplan_redis.common.errors import StoreConnectionError, StoreError
from dialplan_redis.common.logging import get_project_logger
from dialplan_redis.domain.enums import ReplyType
from dialplan_redis.functions.args import parse_args
from dialplan_redis.functions.channel import VariableSink
from dialplan_redis.functions.registry import FunctionSpec
from dialplan_redis.store.executor import CommandExecutor
from dialplan_redis.store.reply import Reply

log = get_project_logger()

RESULT_VARIABLE = "REDIS_RESULT"
PUBLISH_RESULT_VARIABLE = "REDIS_PUBLISH_RESULT"

USAGE_READ = "REDIS requires an argument, REDIS(<key>) or REDIS(<key>,<hash>)"
USAGE_WRITE = "REDIS requires an argument, REDIS(<key>)=<value> or REDIS(<key>,<hash>)=<value>"
USAGE_EXISTS = "REDIS_EXISTS requires one argument, REDIS_EXISTS(<key>)"
USAGE_DELETE = "REDIS_DELETE requires an argument, REDIS_DELETE(<key>)"
USAGE_PUBLISH = "REDIS_PUBLISH requires one argument, REDIS_PUBLISH(<channel>)=<message>"


def _checked(command: str, reply: Reply) -> Reply:
    if reply.is_error:
        raise StoreError(reply.text, {"command": command})
    return reply


class RedisFunctions:
    def __init__(self, executor: CommandExecutor) -> None:
        self._executor = executor

    def _call(self, command: str, *args: str) -> Reply:
        """
        Одна команда. Ответ-ошибка или обрыв соединения → StoreError.
        """
        try:
            reply = self._executor.execute(command, *args)
        except StoreConnectionError as e:
            raise StoreError(e.message, {"command": command, **(e.details or {})}) from e
        return _checked(command, reply)

    def _call_many(self, *commands: Sequence[str]) -> list[Reply]:
        """
        Несколько команд без вклинивания чужих. Первая ошибка → StoreError.
        """
        try:
            replies = self._executor.execute_many(*commands)
        except StoreConnectionError as e:
            raise StoreError(e.message, {"command": commands[0][0], **(e.details or {})}) from e
        return [_checked(cmd[0], reply) for cmd, reply in zip(commands, replies)]

    # -------------------------------------------------------------------------
    # REDIS
    # -------------------------------------------------------------------------
    def redis_read(self, chan: VariableSink, data: str) -> str:
        args = parse_args(data, function="REDIS", usage=USAGE_READ, min_args=1, max_args=2)
        try:
            if len(args) == 1:
                reply = self._call("GET", args[0])
            else:
                reply = self._call("HGET", args[0], args[1])
        except StoreError as e:
            log.debug(
                "redis_read_failed",
                extra={"payload": {"key": args[0], "err": e.message[:200]}},
            )
            return ""

        if reply.is_nil:
            log.debug("redis_key_not_found", extra={"payload": {"key": args[0]}})
            return ""

        value = reply.text
        chan.set_variable(RESULT_VARIABLE, value)
        return value

    def redis_write(self, chan: VariableSink, data: str, value: str) -> None:
        _ = chan
        args = parse_args(data, function="REDIS", usage=USAGE_WRITE, min_args=1, max_args=2)
        try:
            if len(args) == 1:
                self._call("SET", args[0], value)
            else:
                self._call("HSET", args[0], args[1], value)
        except StoreError as e:
            log.warning(
                "redis_write_failed",
                extra={"payload": {"key": args[0], "err": e.message[:200]}},
            )

    # -------------------------------------------------------------------------
    # REDIS_EXISTS
    # -------------------------------------------------------------------------
    def exists_read(self, chan: VariableSink, data: str) -> str:
        args = parse_args(data, function="REDIS_EXISTS", usage=USAGE_EXISTS)
        try:
            reply = self._call("EXISTS", args[0])
        except StoreError as e:
            log.debug("redis_exists_failed", extra={"payload": {"key": args[0], "err": e.message[:200]}})
            return "0"

        if reply.type == ReplyType.integer and (reply.int_value or 0) > 0:
            chan.set_variable(RESULT_VARIABLE, "1")
            return "1"
        return "0"

    # -------------------------------------------------------------------------
    # REDIS_DELETE
    # -------------------------------------------------------------------------
    def delete_read(self, chan: VariableSink, data: str) -> str:
        args = parse_args(data, function="REDIS_DELETE", usage=USAGE_DELETE)
        key = args[0]

        try:
            previous, removed = self._call_many(("GET", key), ("DEL", key))
        except StoreError as e:
            log.debug("redis_delete_failed", extra={"payload": {"key": key, "err": e.message[:200]}})
            return ""

        if removed.type == ReplyType.integer and not removed.int_value:
            log.debug("redis_delete_key_not_found", extra={"payload": {"key": key}})

        if previous.type == ReplyType.string:
            chan.set_variable(RESULT_VARIABLE, previous.text)
            return previous.text
        return ""

    def delete_write(self, chan: VariableSink, data: str, value: str) -> None:
        """
        Удаление через запись: REDIS_DELETE(key)=<что угодно>, значение игнорируется.
        """
        _ = value
        self.delete_read(chan, data)

    # -------------------------------------------------------------------------
    # REDIS_PUBLISH
    # -------------------------------------------------------------------------
    def publish_write(self, chan: VariableSink, data: str, value: str) -> None:
        args = parse_args(data, function="REDIS_PUBLISH", usage=USAGE_PUBLISH)
        try:
            reply = self._call("PUBLISH", args[0], value)
            if reply.type != ReplyType.integer:
                raise StoreError("Unexpected PUBLISH reply", {"reply": reply.type.value})
        except StoreError as e:
            log.error(
                "redis_publish_failed",
                extra={"payload": {"channel": args[0], "err": e.message[:200], "code": e.code}},
            )
            return

        chan.set_variable(PUBLISH_RESULT_VARIABLE, str(reply.int_value))

    # -------------------------------------------------------------------------
    # Регистрация
    # -------------------------------------------------------------------------
    def specs(self) -> list[FunctionSpec]:
        return [
            FunctionSpec(
                name="REDIS",
                synopsis="Read from or write to a Redis database.",
                read=self.redis_read,
                write=self.redis_write,
                escalating_read=True,
                escalating_write=True,
            ),
            FunctionSpec(
                name="REDIS_EXISTS",
                synopsis="Check to see if a key exists in the Redis database.",
                read=self.exists_read,
            ),
            FunctionSpec(
                name="REDIS_DELETE",
                synopsis="Return a value from the database and delete it.",
                read=self.delete_read,
                write=self.delete_write,
                escalating_read=True,
            ),
            FunctionSpec(
                name="REDIS_PUBLISH",
                synopsis="Publish a message in a redis channel.",
                write=self.publish_write,
                escalating_write=True,
            ),
        ]
