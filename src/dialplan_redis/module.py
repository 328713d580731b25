"""
Модуль "Redis related dialplan functions": жизненный цикл load / reload / unload.

- load: конфиг + подключение; при успехе регистрируются функции и CLI-команды.
  При ConfigError / StoreConnectionError / AuthError модуль отклоняется
  (decline) и ничего не регистрирует. Конфликт имён функций — тоже decline,
  без частичной регистрации.
- reload: перечитать конфиг и переподключиться.
- unload: BGSAVE, освободить подключение, снять регистрацию.
"""

from __future__ import annotations

from pathlib import Path

from dialplan_redis.cli.admin import AdminCommands, CliRegistry
from dialplan_redis.common.errors import (
    AppError,
    ArgumentError,
    AuthError,
    ConfigError,
    StoreConnectionError,
)
from dialplan_redis.common.logging import get_project_logger
from dialplan_redis.domain.enums import LoadResult
from dialplan_redis.functions.adapters import RedisFunctions
from dialplan_redis.functions.registry import FunctionRegistry
from dialplan_redis.store.connection import ClientFactory, ConnectionManager
from dialplan_redis.store.executor import CommandExecutor

log = get_project_logger()

MODULE_NAME = "func_redis"
MODULE_DESCRIPTION = "Redis related dialplan functions"

_FATAL_ERRORS = (ConfigError, StoreConnectionError, AuthError)


class RedisModule:
    def __init__(
        self,
        *,
        functions: FunctionRegistry | None = None,
        cli: CliRegistry | None = None,
        client_factory: ClientFactory | None = None,
        config_path: str | Path | None = None,
    ) -> None:
        self.manager = ConnectionManager(client_factory=client_factory, config_path=config_path)
        self.executor = CommandExecutor(self.manager)
        self.functions = functions if functions is not None else FunctionRegistry()
        self.cli = cli if cli is not None else CliRegistry()
        self._adapters = RedisFunctions(self.executor)
        self._admin = AdminCommands(self.executor)
        self._cli_commands = self._admin.commands()
        self._function_specs = self._adapters.specs()
        self.registered = False
        self.last_error: AppError | None = None

    def load(self) -> LoadResult:
        try:
            self.manager.reload()
        except _FATAL_ERRORS as e:
            self.last_error = e
            log.error(
                "module_load_declined",
                extra={"payload": {"module": MODULE_NAME, "code": e.code, "reason": e.message}},
            )
            return LoadResult.decline

        if not self.registered:
            try:
                self.functions.register_multiple(self._function_specs)
            except ArgumentError as e:
                # функции не зарегистрированы, CLI тоже не регистрируем
                self.manager.release(save=False)
                self.last_error = e
                log.error(
                    "module_load_declined",
                    extra={"payload": {"module": MODULE_NAME, "code": e.code, "reason": e.message}},
                )
                return LoadResult.decline
            self.cli.register_multiple(self._cli_commands)
            self.registered = True

        self.last_error = None

        log.info(
            "module_loaded",
            extra={"payload": {"module": MODULE_NAME, "functions": [s.name for s in self._function_specs]}},
        )
        return LoadResult.success

    def reload(self) -> LoadResult:
        log.warning("module_reloading", extra={"payload": {"module": MODULE_NAME}})
        try:
            self.manager.reload()
        except _FATAL_ERRORS as e:
            self.last_error = e
            log.error(
                "module_reload_declined",
                extra={"payload": {"module": MODULE_NAME, "code": e.code, "reason": e.message}},
            )
            return LoadResult.decline
        self.last_error = None
        return LoadResult.success

    def unload(self, *, save: bool = True) -> None:
        self.manager.release(save=save)

        if self.registered:
            self.cli.unregister_multiple(self._cli_commands)
            for spec in self._function_specs:
                self.functions.unregister(spec.name)
            self.registered = False

        log.info("module_unloaded", extra={"payload": {"module": MODULE_NAME}})
