from __future__ import annotations

import io

import pytest
from redis import exceptions as redis_exc

from dialplan_redis.cli.main import run
from dialplan_redis.common.errors import ArgumentError, AuthError, ConfigError
from dialplan_redis.domain.enums import ConnectionState, LoadResult
from dialplan_redis.functions.registry import FunctionRegistry, FunctionSpec
from dialplan_redis.module import MODULE_DESCRIPTION, RedisModule


def test_load_registers_functions_and_cli(conf_path, fake_factory) -> None:
    module = RedisModule(client_factory=fake_factory, config_path=conf_path)

    assert module.load() == LoadResult.success
    assert module.registered is True
    assert module.functions.names() == ["REDIS", "REDIS_DELETE", "REDIS_EXISTS", "REDIS_PUBLISH"]
    assert {c.command for c in module.cli.commands()} == {
        "redis show",
        "redis hshow",
        "redis del",
        "redis set",
    }
    assert MODULE_DESCRIPTION == "Redis related dialplan functions"


def test_rejected_password_declines_load_without_registering(write_conf, fake_factory) -> None:
    fake_factory.raise_on_create = redis_exc.AuthenticationError("WRONGPASS invalid username-password pair")
    module = RedisModule(
        client_factory=fake_factory, config_path=write_conf("[general]\npassword = x\n")
    )

    assert module.load() == LoadResult.decline
    assert isinstance(module.last_error, AuthError)
    assert module.registered is False
    assert module.functions.names() == []
    assert module.cli.commands() == []


def test_missing_config_declines_load(tmp_path, fake_factory) -> None:
    module = RedisModule(client_factory=fake_factory, config_path=tmp_path / "absent.conf")
    assert module.load() == LoadResult.decline
    assert isinstance(module.last_error, ConfigError)


def test_reload_reconnects(conf_path, fake_factory) -> None:
    module = RedisModule(client_factory=fake_factory, config_path=conf_path)
    module.load()
    first = fake_factory.last

    assert module.reload() == LoadResult.success
    assert fake_factory.last is not first
    assert first.closed is True


def test_reload_failure_keeps_module_usable(conf_path, fake_factory) -> None:
    module = RedisModule(client_factory=fake_factory, config_path=conf_path)
    module.load()
    fake_factory.raise_on_create = redis_exc.ConnectionError("Connection refused")

    assert module.reload() == LoadResult.decline
    assert module.manager.connected is True


def test_unload_saves_releases_and_unregisters(conf_path, fake_factory) -> None:
    module = RedisModule(client_factory=fake_factory, config_path=conf_path)
    module.load()
    store = fake_factory.last

    module.unload()

    assert store.calls[-1] == ("BGSAVE",)
    assert store.closed is True
    assert module.manager.state == ConnectionState.released
    assert module.functions.names() == []
    assert module.cli.commands() == []


def test_cli_runner_executes_admin_command(conf_path, fake_factory) -> None:
    module = RedisModule(client_factory=fake_factory, config_path=conf_path)
    out = io.StringIO()

    code = run(["set", "k", "v"], out=out, module=module)

    assert code == 0
    assert out.getvalue() == "Redis database entry created.\n"
    assert ("SET", "k", "v") in fake_factory.last.calls
    # одноразовый запуск не должен делать BGSAVE
    assert ("BGSAVE",) not in fake_factory.last.calls


def test_cli_runner_evaluates_expression(conf_path, fake_factory) -> None:
    fake_factory.prepare = lambda client: client.strings.update({"k": "v"})
    module = RedisModule(client_factory=fake_factory, config_path=conf_path)
    out = io.StringIO()

    assert run(["func", "REDIS(k)"], out=out, module=module) == 0
    assert out.getvalue() == "v\nREDIS_RESULT=v\n"


def test_cli_runner_prints_argument_errors(conf_path, fake_factory) -> None:
    module = RedisModule(client_factory=fake_factory, config_path=conf_path)
    out = io.StringIO()

    assert run(["func", "REDIS_EXISTS(a,b)"], out=out, module=module) == 0
    assert out.getvalue().startswith("REDIS_EXISTS requires one argument")


def test_cli_runner_reports_load_failure(tmp_path, fake_factory) -> None:
    module = RedisModule(client_factory=fake_factory, config_path=tmp_path / "absent.conf")
    out = io.StringIO()

    assert run(["show"], out=out, module=module) == 1
    assert out.getvalue().startswith("Unable to load module")


def test_name_conflict_declines_load_without_partial_registration(conf_path, fake_factory) -> None:
    functions = FunctionRegistry()
    functions.register(FunctionSpec(name="REDIS", synopsis="taken by another module"))
    module = RedisModule(functions=functions, client_factory=fake_factory, config_path=conf_path)

    assert module.load() == LoadResult.decline
    assert isinstance(module.last_error, ArgumentError)
    assert module.last_error.details == {"functions": ["REDIS"]}
    assert module.registered is False
    assert functions.names() == ["REDIS"]
    assert functions.describe("REDIS") == "taken by another module"
    assert module.cli.commands() == []
    assert module.manager.connected is False


def test_register_multiple_rejects_duplicates_in_batch() -> None:
    functions = FunctionRegistry()
    specs = [FunctionSpec(name="A", synopsis="a"), FunctionSpec(name="a", synopsis="again")]

    with pytest.raises(ArgumentError):
        functions.register_multiple(specs)
    assert functions.names() == []
