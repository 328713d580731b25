#!/usr/bin/env python3
"""Standalone runner: load func_redis.conf, run one admin command or dialplan expression."""

from __future__ import annotations

import argparse
import sys
from typing import TextIO

from dialplan_redis.common.errors import AppError
from dialplan_redis.common.logging import get_project_logger, setup_logging
from dialplan_redis.domain.enums import LoadResult
from dialplan_redis.functions.channel import Channel
from dialplan_redis.functions.registry import split_call
from dialplan_redis.module import RedisModule

log = get_project_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dialplan-redis", description="Redis dialplan functions")
    parser.add_argument("--config", default=None, help="Path to func_redis.conf")
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Get all Redis values or by pattern in key")
    show.add_argument("pattern", nargs="?")

    hshow = sub.add_parser("hshow", help="Get all hash values in key")
    hshow.add_argument("hash")

    delete = sub.add_parser("del", help="Delete a key - value in Redis")
    delete.add_argument("key")

    set_cmd = sub.add_parser("set", help="Creates a new key - value in Redis")
    set_cmd.add_argument("args", nargs="+", metavar="KEY [HASH] VALUE")

    func = sub.add_parser("func", help="Evaluate NAME(args) or assign NAME(args)=value")
    func.add_argument("expression")
    return parser


def _host_argv(ns: argparse.Namespace) -> list[str]:
    if ns.command == "show":
        return ["redis", "show", *([ns.pattern] if ns.pattern is not None else [])]
    if ns.command == "hshow":
        return ["redis", "hshow", ns.hash]
    if ns.command == "del":
        return ["redis", "del", ns.key]
    return ["redis", "set", *ns.args]


def _run_function(module: RedisModule, expression: str, out: TextIO) -> None:
    chan = Channel(name="cli")
    try:
        _, _, rest = split_call(expression)
        if rest.startswith("="):
            module.functions.assign(expression, chan)
        else:
            out.write(module.functions.read(expression, chan) + "\n")
    except AppError as e:
        out.write(f"{e.message}\n")
        return
    for name, value in sorted(chan.variables.items()):
        out.write(f"{name}={value}\n")


def run(argv: list[str] | None = None, *, out: TextIO | None = None, module: RedisModule | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    out = out or sys.stdout
    module = module or RedisModule(config_path=ns.config)

    if module.load() != LoadResult.success:
        err = module.last_error
        out.write(f"Unable to load module: {err.message if err else 'unknown error'}\n")
        return 1

    try:
        if ns.command == "func":
            _run_function(module, ns.expression, out)
        else:
            module.cli.dispatch(_host_argv(ns), out)
    finally:
        module.unload(save=False)
    return 0


def main() -> None:
    setup_logging()
    sys.exit(run())


if __name__ == "__main__":
    main()
