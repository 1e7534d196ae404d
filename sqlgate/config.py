"""Settings loading from the environment and an optional `.env` file."""

from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path
from typing import Mapping
from urllib.parse import unquote, urlsplit

from dotenv import dotenv_values
from pydantic import BaseModel, Field

from .errors import ConfigurationError
from .models import ConnectionConfig, EngineKind
from .permissions import OperationPolicy, PermissionTable, parse_schema_permissions

LOG = logging.getLogger(__name__)

ENV_FILE = Path(".env")
ENV_FILE_VARIABLE = "SQLGATE_ENV_FILE"


class MySQLSettings(BaseModel):
    """MySQL / MariaDB connection settings."""

    host: str = "127.0.0.1"
    port: int = 3306
    socket_path: str | None = None
    user: str = "root"
    password: str = ""
    database: str | None = None
    pool_size: int = 10
    connect_timeout_ms: int = 10_000
    ssl: bool = False
    ssl_reject_unauthorized: bool = False
    disable_read_only_transactions: bool = False
    multi_db_write_mode: bool = False

    @property
    def multi_db_mode(self) -> bool:
        """True when no database is pinned, so schemas come from the SQL text."""

        return not self.database or not self.database.strip()

    def connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            engine=EngineKind.MYSQL,
            host=None if self.socket_path else self.host,
            port=None if self.socket_path else self.port,
            socket_path=self.socket_path,
            user=self.user,
            password=self.password,
            database=self.database or None,
            pool_size=self.pool_size,
            connect_timeout=self.connect_timeout_ms / 1000,
            ssl=self.ssl,
            ssl_verify=self.ssl_reject_unauthorized,
            read_only_transactions=not self.disable_read_only_transactions,
        )


class PostgresSettings(BaseModel):
    """PostgreSQL connection settings."""

    host: str = "127.0.0.1"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    database: str | None = None
    pool_size: int = 10
    idle_timeout_ms: int = 30_000
    connect_timeout_ms: int = 10_000

    def connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            engine=EngineKind.POSTGRES,
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database or None,
            pool_size=self.pool_size,
            connect_timeout=self.connect_timeout_ms / 1000,
            idle_timeout=self.idle_timeout_ms / 1000,
        )


class PermissionSettings(BaseModel):
    """Global write flags plus per-schema overrides."""

    allow_insert: bool = False
    allow_update: bool = False
    allow_delete: bool = False
    allow_ddl: bool = False
    schema_insert: dict[str, bool] = Field(default_factory=dict)
    schema_update: dict[str, bool] = Field(default_factory=dict)
    schema_delete: dict[str, bool] = Field(default_factory=dict)
    schema_ddl: dict[str, bool] = Field(default_factory=dict)

    def table(self) -> PermissionTable:
        return PermissionTable(
            insert=OperationPolicy(self.allow_insert, self.schema_insert),
            update=OperationPolicy(self.allow_update, self.schema_update),
            delete=OperationPolicy(self.allow_delete, self.schema_delete),
            ddl=OperationPolicy(self.allow_ddl, self.schema_ddl),
        )


class Settings(BaseModel):
    """Everything the CLI needs to build an execution router."""

    db_type: str = EngineKind.MYSQL.value
    mysql: MySQLSettings = Field(default_factory=MySQLSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    permissions: PermissionSettings = Field(default_factory=PermissionSettings)
    enable_logging: bool = False

    def resolve_engine(self, override: str | None = None) -> EngineKind:
        """Engine from an explicit directive, falling back to ``DB_TYPE``."""

        return EngineKind.parse(self.db_type if override is None else override)

    def connection_config(self, engine: EngineKind) -> ConnectionConfig:
        if engine is EngineKind.POSTGRES:
            return self.postgres.connection_config()
        return self.mysql.connection_config()

    def fixed_schema(self, engine: EngineKind) -> str | None:
        """Schema used verbatim for permission lookups, if the engine pins one."""

        if engine is EngineKind.MYSQL and not self.mysql.multi_db_mode:
            return self.mysql.database
        return None


def load_settings(
    environ: Mapping[str, str] | None = None,
    env_file: Path | None = None,
) -> Settings:
    """Build settings from ``.env`` values overlaid with real environment variables."""

    env = _read_environment(environ, env_file)
    return Settings(
        db_type=env.get("DB_TYPE") or EngineKind.MYSQL.value,
        mysql=_mysql_settings(env),
        postgres=_postgres_settings(env),
        permissions=_permission_settings(env),
        enable_logging=env.get("ENABLE_LOGGING") in {"true", "1"},
    )


def parse_mysql_connection_string(value: str) -> dict[str, object]:
    """Parse a mysql-CLI style connection string such as ``mysql -h db -u app shop``."""

    config: dict[str, object] = {}
    try:
        tokens = shlex.split(value.strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid MYSQL_CONNECTION_STRING: {exc}") from exc
    if tokens and tokens[0] == "mysql":
        tokens = tokens[1:]
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.startswith("--"):
            flag, _, flag_value = token[2:].partition("=")
        elif token.startswith("-"):
            flag, flag_value = token[1:2], token[2:]
        else:
            config["database"] = token
            index += 1
            continue
        if not flag_value and index + 1 < len(tokens) and not tokens[index + 1].startswith("-"):
            flag_value = tokens[index + 1]
            index += 1
        key = _MYSQL_FLAGS.get(flag)
        if key == "port":
            config["port"] = _parse_port(flag_value)
        elif key is not None:
            config[key] = flag_value
        index += 1
    return config


def parse_database_url(url: str | None) -> dict[str, object] | None:
    """Split a ``postgres://`` URL into connection fields; credentials are URL-decoded."""

    if not url:
        return None
    try:
        parsed = urlsplit(url)
        port = parsed.port
    except ValueError as exc:
        LOG.error("Failed to parse DATABASE_URL: %s", exc)
        return None
    return {
        "host": parsed.hostname,
        "port": port or 5432,
        "user": unquote(parsed.username or ""),
        "password": unquote(parsed.password or ""),
        "database": parsed.path.lstrip("/"),
    }


_MYSQL_FLAGS: Mapping[str, str] = {
    "h": "host",
    "host": "host",
    "P": "port",
    "port": "port",
    "u": "user",
    "user": "user",
    "p": "password",
    "password": "password",
    "S": "socket_path",
    "socket": "socket_path",
}


def _read_environment(environ: Mapping[str, str] | None, env_file: Path | None) -> dict[str, str]:
    source = os.environ if environ is None else environ
    path = env_file or Path(source.get(ENV_FILE_VARIABLE) or ENV_FILE)
    data: dict[str, str] = {}
    if path.is_file():
        for key, value in dotenv_values(path).items():
            if value is not None:
                data[key] = value
    data.update(source)
    return data


def _mysql_settings(env: Mapping[str, str]) -> MySQLSettings:
    conn = parse_mysql_connection_string(env["MYSQL_CONNECTION_STRING"]) if env.get("MYSQL_CONNECTION_STRING") else {}
    password = conn.get("password")
    if password is None:
        password = env.get("MYSQL_PASS", "")
    return MySQLSettings(
        host=conn.get("host") or env.get("MYSQL_HOST") or "127.0.0.1",
        port=conn.get("port") or _parse_int(env, "MYSQL_PORT", 3306),
        socket_path=conn.get("socket_path") or env.get("MYSQL_SOCKET_PATH") or None,
        user=conn.get("user") or env.get("MYSQL_USER") or "root",
        password=password,
        database=conn.get("database") or env.get("MYSQL_DB") or None,
        connect_timeout_ms=_parse_int(env, "MYSQL_CONNECT_TIMEOUT", 10_000),
        ssl=env.get("MYSQL_SSL") == "true",
        ssl_reject_unauthorized=env.get("MYSQL_SSL_REJECT_UNAUTHORIZED") == "true",
        disable_read_only_transactions=env.get("MYSQL_DISABLE_READ_ONLY_TRANSACTIONS") == "true",
        multi_db_write_mode=env.get("MULTI_DB_WRITE_MODE") == "true",
    )


def _postgres_settings(env: Mapping[str, str]) -> PostgresSettings:
    url = parse_database_url(env.get("DATABASE_URL")) or {}
    return PostgresSettings(
        host=url.get("host") or env.get("PG_HOST") or "127.0.0.1",
        port=url.get("port") or _parse_int(env, "PG_PORT", 5432),
        user=url.get("user") or env.get("PG_USER") or "postgres",
        password=url.get("password") or env.get("PG_PASS") or "",
        database=url.get("database") or env.get("PG_DB") or None,
    )


def _permission_settings(env: Mapping[str, str]) -> PermissionSettings:
    return PermissionSettings(
        allow_insert=env.get("ALLOW_INSERT_OPERATION") == "true",
        allow_update=env.get("ALLOW_UPDATE_OPERATION") == "true",
        allow_delete=env.get("ALLOW_DELETE_OPERATION") == "true",
        allow_ddl=env.get("ALLOW_DDL_OPERATION") == "true",
        schema_insert=parse_schema_permissions(env.get("SCHEMA_INSERT_PERMISSIONS")),
        schema_update=parse_schema_permissions(env.get("SCHEMA_UPDATE_PERMISSIONS")),
        schema_delete=parse_schema_permissions(env.get("SCHEMA_DELETE_PERMISSIONS")),
        schema_ddl=parse_schema_permissions(env.get("SCHEMA_DDL_PERMISSIONS")),
    )


def _parse_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}.") from exc


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        port = 0
    if not 1 <= port <= 65535:
        raise ConfigurationError(f"Invalid port: {value}")
    return port


__all__ = [
    "ENV_FILE",
    "MySQLSettings",
    "PermissionSettings",
    "PostgresSettings",
    "Settings",
    "load_settings",
    "parse_database_url",
    "parse_mysql_connection_string",
]
