from __future__ import annotations

import logging
import threading

import pytest
from redis import exceptions as redis_exc

from dialplan_redis.common.errors import AuthError, ConfigError, StoreConnectionError
from dialplan_redis.domain.enums import ConnectionState
from dialplan_redis.store.connection import ConnectionManager


def test_connect_without_password_skips_auth(conf_path, fake_factory, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="dialplan-redis")
    manager = ConnectionManager(client_factory=fake_factory, config_path=conf_path)

    handle = manager.reload()

    assert manager.state == ConnectionState.connected
    assert handle is fake_factory.last
    assert handle.kwargs["password"] is None
    assert handle.kwargs["host"] == "10.0.0.5"
    assert handle.kwargs["port"] == 6380
    assert handle.kwargs["db"] == 2
    assert handle.kwargs["timeout"] == 3
    assert handle.calls == [("PING",)]
    commands = [r.payload["command"] for r in caplog.records if r.msg == "redis_command"]
    assert not any(c.startswith("AUTH") for c in commands)


def test_connect_with_password_passes_it_and_redacts_log(write_conf, fake_factory, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="dialplan-redis")
    manager = ConnectionManager(
        client_factory=fake_factory, config_path=write_conf("[general]\npassword = x\n")
    )

    manager.reload()

    assert fake_factory.last.kwargs["password"] == "x"
    commands = [r.payload["command"] for r in caplog.records if r.msg == "redis_command"]
    assert "AUTH ********" in commands
    assert "AUTH x" not in commands


def test_rejected_password_raises_auth_error(write_conf, fake_factory) -> None:
    fake_factory.raise_on_create = redis_exc.AuthenticationError("WRONGPASS invalid username-password pair")
    manager = ConnectionManager(
        client_factory=fake_factory, config_path=write_conf("[general]\npassword = x\n")
    )

    with pytest.raises(AuthError):
        manager.reload()
    assert manager.connected is False


def test_noauth_on_ping_raises_auth_error(conf_path, fake_factory) -> None:
    def _prepare(client) -> None:
        client.errors["PING"] = redis_exc.AuthenticationError("NOAUTH Authentication required.")

    fake_factory.prepare = _prepare
    manager = ConnectionManager(client_factory=fake_factory, config_path=conf_path)

    with pytest.raises(AuthError):
        manager.reload()
    assert fake_factory.last.closed is True


def test_unreachable_store_raises_connection_error(conf_path, fake_factory) -> None:
    fake_factory.raise_on_create = redis_exc.ConnectionError("Connection refused")
    manager = ConnectionManager(client_factory=fake_factory, config_path=conf_path)

    with pytest.raises(StoreConnectionError):
        manager.reload()
    assert manager.state == ConnectionState.loaded


def test_missing_config_raises_config_error(tmp_path, fake_factory) -> None:
    manager = ConnectionManager(client_factory=fake_factory, config_path=tmp_path / "missing.conf")
    with pytest.raises(ConfigError):
        manager.reload()
    assert fake_factory.created == []


def test_reload_replaces_and_closes_previous_handle(conf_path, fake_factory) -> None:
    manager = ConnectionManager(client_factory=fake_factory, config_path=conf_path)
    first = manager.reload()
    second = manager.reload()

    assert first is not second
    assert first.closed is True
    assert second.closed is False
    assert manager.current_handle() is second


def test_failed_reload_keeps_previous_handle(conf_path, fake_factory) -> None:
    manager = ConnectionManager(client_factory=fake_factory, config_path=conf_path)
    first = manager.reload()

    fake_factory.raise_on_create = redis_exc.ConnectionError("Connection refused")
    with pytest.raises(StoreConnectionError):
        manager.reload()

    assert manager.current_handle() is first
    assert first.closed is False
    assert manager.state == ConnectionState.connected


def test_concurrent_reloads_leave_exactly_one_live_handle(conf_path, fake_factory) -> None:
    manager = ConnectionManager(client_factory=fake_factory, config_path=conf_path)
    manager.reload()
    errors: list[Exception] = []

    def _worker() -> None:
        try:
            manager.reload()
        except Exception as e:  # pragma: no cover
            errors.append(e)

    threads = [threading.Thread(target=_worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    live = [h for h in fake_factory.created if not h.closed]
    assert live == [manager.current_handle()]
    assert len(fake_factory.created) == 11
    assert manager.state == ConnectionState.connected


def test_release_with_save_issues_bgsave(conf_path, fake_factory) -> None:
    manager = ConnectionManager(client_factory=fake_factory, config_path=conf_path)
    handle = manager.reload()

    manager.release(save=True)

    assert handle.calls[-1] == ("BGSAVE",)
    assert handle.closed is True
    assert manager.state == ConnectionState.released
    with pytest.raises(StoreConnectionError):
        manager.current_handle()


def test_load_only_reads_config(conf_path, fake_factory) -> None:
    manager = ConnectionManager(client_factory=fake_factory, config_path=conf_path)
    cfg = manager.load()
    assert cfg.hostname == "10.0.0.5"
    assert manager.state == ConnectionState.loaded
    assert fake_factory.created == []

    manager.connect()
    assert manager.state == ConnectionState.connected
