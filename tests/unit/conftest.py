from __future__ import annotations

import fnmatch
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from redis import exceptions as redis_exc


class _FakeRedis:
    """
    Минимальный Redis в памяти: отвечает так же, как redis-py с decode_responses=True.
    """

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.calls: list[tuple[str, ...]] = []
        self.closed = False
        self.strings: dict[str, str] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.subscribers: dict[str, int] = {}
        self.errors: dict[str, Exception] = {}
        # вызывается перед выполнением команды: hooks["GET"](*params)
        self.hooks: dict[str, Callable[..., None]] = {}

    def execute_command(self, *args: Any) -> Any:
        name = str(args[0]).upper()
        params = [str(a) for a in args[1:]]
        self.calls.append((name, *params))
        if name in self.hooks:
            self.hooks[name](*params)
        if name in self.errors:
            raise self.errors[name]

        if name == "PING":
            return True
        if name == "BGSAVE":
            return True
        if name == "GET":
            if params[0] in self.hashes:
                raise redis_exc.ResponseError(
                    "WRONGTYPE Operation against a key holding the wrong kind of value"
                )
            return self.strings.get(params[0])
        if name == "SET":
            self.strings[params[0]] = params[1]
            return True
        if name == "HGET":
            return self.hashes.get(params[0], {}).get(params[1])
        if name == "HSET":
            h = self.hashes.setdefault(params[0], {})
            created = 0 if params[1] in h else 1
            h[params[1]] = params[2]
            return created
        if name == "HKEYS":
            return list(self.hashes.get(params[0], {}))
        if name == "EXISTS":
            return sum(1 for k in params if k in self.strings or k in self.hashes)
        if name == "DEL":
            removed = 0
            for k in params:
                if self.strings.pop(k, None) is not None:
                    removed += 1
                elif self.hashes.pop(k, None) is not None:
                    removed += 1
            return removed
        if name == "KEYS":
            keys = sorted([*self.strings, *self.hashes])
            return [k for k in keys if fnmatch.fnmatchcase(k, params[0])]
        if name == "PUBLISH":
            return self.subscribers.get(params[0], 0)
        raise redis_exc.ResponseError(f"ERR unknown command '{name}'")

    def commands(self, name: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] == name.upper()]

    def close(self) -> None:
        self.closed = True


class _FakeFactory:
    """
    Фабрика клиентов: запоминает kwargs и созданные handle.
    """

    def __init__(self) -> None:
        self.created: list[_FakeRedis] = []
        self.raise_on_create: Exception | None = None
        self.prepare = None

    def __call__(self, **kwargs: Any) -> _FakeRedis:
        if self.raise_on_create is not None:
            raise self.raise_on_create
        client = _FakeRedis(**kwargs)
        if self.prepare is not None:
            self.prepare(client)
        self.created.append(client)
        return client

    @property
    def last(self) -> _FakeRedis:
        return self.created[-1]


@pytest.fixture()
def fake_factory() -> _FakeFactory:
    return _FakeFactory()


@pytest.fixture()
def write_conf(tmp_path: Path):
    def _write(body: str) -> Path:
        path = tmp_path / "func_redis.conf"
        path.write_text(body, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def conf_path(write_conf) -> Path:
    return write_conf(
        "[general]\n"
        "hostname = 10.0.0.5\n"
        "port = 6380\n"
        "dbname = 2\n"
        "timeout = 3\n"
    )
