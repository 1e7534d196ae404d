"""Command-line entry point emitting JSON responses.

Usage::

    sqlgate query "SELECT * FROM users"
    sqlgate --db=postgres query "SELECT * FROM users"
    sqlgate --postgres list-tables
    sqlgate describe users
    sqlgate test-connection
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable, Mapping, NoReturn, Sequence, TextIO

from . import __version__
from .commands import Commands
from .config import Settings, load_settings
from .errors import ConfigurationError, UsageError
from .models import EngineKind, QueryResponse
from .router import build_router

LOG = logging.getLogger(__name__)

Handler = Callable[[Commands, list[str]], Awaitable[QueryResponse]]


class _ArgumentParser(argparse.ArgumentParser):
    """Raises :class:`UsageError` so argument problems are reported as JSON."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def main() -> None:
    """Console script entry point."""

    sys.exit(run(sys.argv[1:]))


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="sqlgate",
        description="Permission-gated SQL execution for MySQL and PostgreSQL.",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("--db", dest="db", metavar="TYPE", help="database type (mysql, postgres)")
    parser.add_argument(
        "--postgres",
        "--pg",
        dest="db",
        action="store_const",
        const=EngineKind.POSTGRES.value,
        help="shortcut for --db=postgres",
    )
    parser.add_argument(
        "--mysql",
        dest="db",
        action="store_const",
        const=EngineKind.MYSQL.value,
        help="shortcut for --db=mysql (default)",
    )
    parser.add_argument("-h", "--help", action="store_true", help="print the command overview")
    parser.add_argument("command", nargs="?", help="query, list-tables, describe, test-connection or help")
    parser.add_argument("args", nargs="*", help="SQL text or table name")
    return parser


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    """Parse ``argv``; engine flags are accepted anywhere on the line."""

    return build_parser().parse_intermixed_args(list(argv))


def run(
    argv: Sequence[str],
    *,
    environ: Mapping[str, str] | None = None,
    out: TextIO | None = None,
) -> int:
    """Execute one command and print its JSON response; returns the exit status."""

    stream = out or sys.stdout
    try:
        args = parse_args(argv)
        settings = load_settings(environ)
        _configure_logging(settings.enable_logging)
        engine = settings.resolve_engine(args.db)
    except (UsageError, ConfigurationError) as exc:
        return _emit(stream, QueryResponse.failure(str(exc)))

    if args.help or args.command in {None, "help"}:
        _write_json(stream, help_payload(engine))
        return 0
    handler = COMMANDS.get(args.command)
    if handler is None:
        return _emit(
            stream,
            QueryResponse.failure(f"Unknown command: {args.command}. Use 'help' for available commands."),
        )
    try:
        response = asyncio.run(_dispatch(settings, engine, handler, args.args))
    except Exception as exc:
        LOG.exception("Unexpected error")
        response = QueryResponse.failure(f"Unexpected error: {exc}")
    return _emit(stream, response)


def help_payload(engine: EngineKind) -> dict[str, Any]:
    return {
        "skill": "sql-query",
        "version": __version__,
        "currentDb": engine.value,
        "commands": {
            "query <sql>": "Execute a SQL query",
            "list-tables": "List all tables in the database",
            "describe <table>": "Show table structure",
            "test-connection": "Test database connection",
        },
        "flags": {
            "--db=<type>": "Set database type (mysql, postgres)",
            "--postgres": "Shortcut for --db=postgres",
            "--mysql": "Shortcut for --db=mysql (default)",
        },
        "examples": [
            'sqlgate query "SELECT * FROM users LIMIT 5"',
            'sqlgate --postgres query "SELECT * FROM users"',
            "sqlgate --db=postgres list-tables",
            "sqlgate describe users",
            "sqlgate test-connection",
        ],
        "envVars": {
            "DATABASE_URL": "PostgreSQL connection string (optional)",
            "MYSQL_HOST": "MySQL host (optional, default: 127.0.0.1)",
        },
    }


async def _query(commands: Commands, args: list[str]) -> QueryResponse:
    if not args:
        return QueryResponse.failure("SQL query is required")
    return await commands.run_query(" ".join(args))


async def _list_tables(commands: Commands, args: list[str]) -> QueryResponse:
    return await commands.list_tables()


async def _describe(commands: Commands, args: list[str]) -> QueryResponse:
    return await commands.describe_table(args[0] if args else None)


async def _test_connection(commands: Commands, args: list[str]) -> QueryResponse:
    return await commands.test_connection()


COMMANDS: Mapping[str, Handler] = {
    "query": _query,
    "list-tables": _list_tables,
    "describe": _describe,
    "test-connection": _test_connection,
}


async def _dispatch(settings: Settings, engine: EngineKind, handler: Handler, args: list[str]) -> QueryResponse:
    router = build_router(settings, engine)
    try:
        return await handler(Commands(router, settings.connection_config(engine)), args)
    finally:
        try:
            await router.adapter.close_pool()
        except Exception as exc:  # pragma: no cover - closing errors are not reported
            LOG.warning("Error closing pool: %s", exc)


def _emit(stream: TextIO, response: QueryResponse) -> int:
    _write_json(stream, response.to_payload())
    return 0 if response.success else 1


def _write_json(stream: TextIO, payload: Mapping[str, Any]) -> None:
    stream.write(json.dumps(payload, indent=2, default=str) + "\n")


def _configure_logging(enabled: bool) -> None:
    if not enabled:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["COMMANDS", "build_parser", "help_payload", "main", "parse_args", "run"]
