"""
Административные CLI-команды.

- redis show [pattern]
- redis hshow <hash>
- redis del <key>
- redis set <key> <value> | redis set <key> <hash> <value>

Вывод — текст для человека. Ошибки печатаются, а не возвращаются кодом.
argv содержит полную команду: ["redis", "set", "<key>", "<value>"].
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TextIO

from dialplan_redis.common.errors import StoreConnectionError
from dialplan_redis.common.logging import get_project_logger
from dialplan_redis.domain.enums import CliResult, ReplyType
from dialplan_redis.store.executor import CommandExecutor
from dialplan_redis.store.reply import Reply

log = get_project_logger()

CliHandler = Callable[[Sequence[str], TextIO], CliResult]

USAGE_SET = (
    "Usage: redis set <key> <value>\n"
    "       Creates an entry in the Redis database for a given key and value.\n"
    "redis set <key> <hash> <value>\n"
    "       Creates an entry in the Redis database for a given key, hash and value\n"
)
USAGE_DEL = (
    "Usage: redis del <key>\n"
    "       Deletes an entry in the Redis database for a given key.\n"
)
USAGE_SHOW = (
    "Usage: redis show\n"
    "   OR: redis show [pattern]\n"
    "       Shows Redis database contents, optionally restricted\n"
    "       to a pattern.\n"
    "\n"
    "       [pattern] pattern to match keys\n"
    "       Examples :\n"
    "           - h?llo matches hello, hallo and hxllo\n"
    "           - h*llo matches hllo and heeeello\n"
    "           - h[ae]llo matches hello and hallo, but not hillo\n"
)
USAGE_HSHOW = (
    "Usage: redis hshow <hash>\n"
    "       Shows Redis hash contents\n"
)


@dataclass(frozen=True)
class CliCommand:
    command: str
    summary: str
    usage: str
    handler: CliHandler

    @property
    def words(self) -> tuple[str, ...]:
        return tuple(self.command.split())


def _row(name: str, value: str) -> str:
    return f"{name:<50}: {value:<25}\n"


class AdminCommands:
    def __init__(self, executor: CommandExecutor) -> None:
        self._executor = executor

    def _run(self, command: str, *args: str) -> Reply:
        try:
            return self._executor.execute(command, *args)
        except StoreConnectionError as e:
            return Reply.error(e.message)

    def set(self, argv: Sequence[str], out: TextIO) -> CliResult:
        if len(argv) == 4:
            reply = self._run("SET", argv[2], argv[3])
        elif len(argv) == 5:
            reply = self._run("HSET", argv[2], argv[3], argv[4])
        else:
            return CliResult.showusage

        if reply.is_error:
            log.warning("cli_set_failed", extra={"payload": {"key": argv[2], "err": reply.text[:200]}})
            out.write("Redis database error.\n")
        else:
            out.write("Redis database entry created.\n")
        return CliResult.success

    def delete(self, argv: Sequence[str], out: TextIO) -> CliResult:
        if len(argv) != 3:
            return CliResult.showusage

        reply = self._run("DEL", argv[2])
        if reply.type == ReplyType.integer and (reply.int_value or 0) > 0:
            out.write("Redis database entry removed.\n")
        else:
            out.write("Redis database entry does not exist.\n")
        return CliResult.success

    def show(self, argv: Sequence[str], out: TextIO) -> CliResult:
        if len(argv) == 3:
            pattern = argv[2]
        elif len(argv) == 2:
            pattern = "*"
        else:
            return CliResult.showusage

        keys = self._run("KEYS", pattern)
        return self._print_table(keys, out, lambda name: self._run("GET", name))

    def hshow(self, argv: Sequence[str], out: TextIO) -> CliResult:
        if len(argv) != 3:
            return CliResult.showusage

        hash_name = argv[2]
        fields = self._run("HKEYS", hash_name)
        return self._print_table(fields, out, lambda name: self._run("HGET", hash_name, name))

    def _print_table(
        self, names: Reply, out: TextIO, fetch: Callable[[str], Reply]
    ) -> CliResult:
        if names.type != ReplyType.array:
            if names.is_error:
                out.write("Redis database error.\n")
            out.write("0 results found.\n")
            return CliResult.success

        for element in names.elements:
            value = fetch(element.text)
            out.write(_row(element.text, value.text))
        out.write(f"{len(names.elements)} results found.\n")
        return CliResult.success

    def commands(self) -> list[CliCommand]:
        return [
            CliCommand(
                "redis show", "Get all Redis values or by pattern in key", USAGE_SHOW, self.show
            ),
            CliCommand("redis hshow", "Get all hash values in key", USAGE_HSHOW, self.hshow),
            CliCommand("redis del", "Delete a key - value in Redis", USAGE_DEL, self.delete),
            CliCommand("redis set", "Creates a new key - value in Redis", USAGE_SET, self.set),
        ]


class CliRegistry:
    """
    Реестр CLI-команд хоста: поиск по префиксу слов и вызов обработчика.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._commands: dict[tuple[str, ...], CliCommand] = {}

    def register_multiple(self, commands: Sequence[CliCommand]) -> None:
        with self._lock:
            for cmd in commands:
                self._commands[cmd.words] = cmd

    def unregister_multiple(self, commands: Sequence[CliCommand]) -> None:
        with self._lock:
            for cmd in commands:
                self._commands.pop(cmd.words, None)

    def commands(self) -> list[CliCommand]:
        with self._lock:
            return list(self._commands.values())

    def find(self, argv: Sequence[str]) -> CliCommand | None:
        best: CliCommand | None = None
        for words, cmd in list(self._commands.items()):
            if tuple(argv[: len(words)]) == words and (
                best is None or len(words) > len(best.words)
            ):
                best = cmd
        return best

    def dispatch(self, argv: Sequence[str], out: TextIO) -> CliResult:
        cmd = self.find(argv)
        if cmd is None:
            out.write(f"No such command '{' '.join(argv)}'\n")
            return CliResult.failure

        result = cmd.handler(argv, out)
        if result == CliResult.showusage:
            out.write(cmd.usage)
        return result
