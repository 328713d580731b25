"""
Менеджер подключения к Redis.

Назначение:
- единственный живой handle на процесс
- (пере)подключение при load/reload, AUTH при непустом пароле
- освобождение handle при unload (с BGSAVE)

Блокировки:
- _reconfigure_lock — загрузка конфига + подключение (reload целиком)
- command_lock — выполнение команд и подмена handle

Reload сначала поднимает новое подключение, затем под command_lock
подменяет handle и только потом закрывает старый. Неудачный reload
оставляет прежний handle рабочим.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import redis
from redis import exceptions as redis_exc
from redis.backoff import NoBackoff
from redis.retry import Retry

from dialplan_redis.common.errors import AuthError, StoreConnectionError
from dialplan_redis.common.logging import get_project_logger
from dialplan_redis.common.metrics import RECONNECTS_TOTAL
from dialplan_redis.domain.enums import ConnectionState
from dialplan_redis.store.config_loader import RedisConfig, load_config
from dialplan_redis.store.executor import execute_command, log_command

log = get_project_logger()

ClientFactory = Callable[..., Any]


def create_client(
    *,
    host: str,
    port: int,
    db: int,
    password: str | None,
    timeout: float | None,
) -> redis.Redis:
    """
    Одно выделенное подключение, без автоматических ретраев.
    """
    return redis.Redis(
        host=host,
        port=port,
        db=db,
        password=password,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        decode_responses=True,
        single_connection_client=True,
        retry=Retry(NoBackoff(), 0),
    )


class ConnectionManager:
    def __init__(
        self,
        *,
        client_factory: ClientFactory | None = None,
        config_path: str | Path | None = None,
    ) -> None:
        self._client_factory = client_factory or create_client
        self._config_path = config_path
        self._reconfigure_lock = threading.Lock()
        self.command_lock = threading.Lock()
        self._config: RedisConfig | None = None
        self._handle: Any | None = None
        self.state = ConnectionState.uninitialized

    @property
    def config(self) -> RedisConfig | None:
        return self._config

    @property
    def connected(self) -> bool:
        return self._handle is not None

    def current_handle(self) -> Any:
        if self._handle is None:
            raise StoreConnectionError("Not connected to Redis", {"state": self.state.value})
        return self._handle

    # -------------------------------------------------------------------------
    # load / connect / reload
    # -------------------------------------------------------------------------
    def load(self) -> RedisConfig:
        """
        Прочитать конфиг (без подключения).
        """
        with self._reconfigure_lock:
            config = load_config(self._config_path)
            self._config = config
            if self._handle is None:
                self.state = ConnectionState.loaded
            return config

    def connect(self, config: RedisConfig | None = None) -> Any:
        with self._reconfigure_lock:
            cfg = config or self._config
            if cfg is None:
                cfg = load_config(self._config_path)
            return self._connect_locked(cfg)

    def reload(self) -> Any:
        """
        load + connect под одной блокировкой.
        """
        with self._reconfigure_lock:
            config = load_config(self._config_path)
            if self._handle is None:
                self.state = ConnectionState.loaded
            return self._connect_locked(config)

    def _connect_locked(self, config: RedisConfig) -> Any:
        previous_state = self.state
        if self._handle is not None:
            self.state = ConnectionState.reconnecting

        try:
            new_handle = self._open_handle(config)
        except (StoreConnectionError, AuthError) as e:
            RECONNECTS_TOTAL.labels(result="failed").inc()
            self.state = previous_state
            log.error(
                "redis_connect_failed",
                extra={
                    "payload": {
                        "host": config.hostname,
                        "port": config.port,
                        "code": e.code,
                        "keep_previous": self._handle is not None,
                    }
                },
            )
            raise

        with self.command_lock:
            old_handle, self._handle = self._handle, new_handle
            self._config = config
            self.state = ConnectionState.connected

        if old_handle is not None:
            _close_quietly(old_handle)

        RECONNECTS_TOTAL.labels(result="ok").inc()
        log.info(
            "redis_connected",
            extra={"payload": {"host": config.hostname, "port": config.port, "db": config.db_index}},
        )
        return new_handle

    def _open_handle(self, config: RedisConfig) -> Any:
        password = config.password or None
        if password:
            log.warning("redis_authenticating", extra={"payload": {"host": config.hostname}})
            log_command("AUTH", (password,))
        if config.db_index is None:
            log.debug(
                "redis_dbname_not_numeric",
                extra={"payload": {"dbname": config.dbname, "db": 0}},
            )

        handle = None
        try:
            handle = self._client_factory(
                host=config.hostname,
                port=config.port,
                db=config.db_index or 0,
                password=password,
                timeout=config.timeout or None,
            )
            # Проверка связи: ошибка протокола сразу после подключения — фатальна
            reply = execute_command(handle, "PING")
        except redis_exc.AuthenticationError as e:
            if handle is not None:
                _close_quietly(handle)
            raise AuthError("Unable to authenticate", {"err": str(e)[:200]}) from e
        except StoreConnectionError:
            if handle is not None:
                _close_quietly(handle)
            raise
        except (redis_exc.ConnectionError, redis_exc.TimeoutError) as e:
            if handle is not None:
                _close_quietly(handle)
            raise StoreConnectionError(
                "Couldn't establish connection", {"err": str(e)[:200]}
            ) from e

        if reply.is_error:
            _close_quietly(handle)
            if _is_auth_failure(reply.text):
                raise AuthError("Unable to authenticate", {"err": reply.text[:200]})
            raise StoreConnectionError("Couldn't establish connection", {"err": reply.text[:200]})

        if password:
            log.warning("redis_authenticated", extra={"payload": {"host": config.hostname}})
        return handle

    # -------------------------------------------------------------------------
    # release
    # -------------------------------------------------------------------------
    def release(self, *, save: bool = False) -> None:
        """
        Освободить handle. save=True — сначала BGSAVE (как при unload).
        """
        with self._reconfigure_lock:
            with self.command_lock:
                handle, self._handle = self._handle, None
                if handle is not None and save:
                    try:
                        reply = execute_command(handle, "BGSAVE")
                        if reply.is_error:
                            log.warning(
                                "redis_bgsave_failed", extra={"payload": {"err": reply.text[:200]}}
                            )
                    except StoreConnectionError as e:
                        log.warning("redis_bgsave_failed", extra={"payload": {"err": e.message}})
                self.state = ConnectionState.released
        if handle is not None:
            _close_quietly(handle)
            log.info("redis_connection_released")


def _is_auth_failure(message: str) -> bool:
    text = (message or "").upper()
    return any(marker in text for marker in ("NOAUTH", "WRONGPASS", "INVALID PASSWORD", "AUTH"))


def _close_quietly(handle: Any) -> None:
    try:
        handle.close()
    except redis_exc.RedisError as e:
        log.warning("redis_close_failed", extra={"payload": {"err": str(e)[:200]}})
