"""Statement classification: operation kinds and target schema for a SQL string."""

from __future__ import annotations

import logging
import re

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from .errors import ParseError
from .models import ParsedStatement

LOG = logging.getLogger(__name__)

_STATEMENT_KINDS: tuple[tuple[type[exp.Expression], str], ...] = (
    (exp.Query, "select"),
    (exp.Insert, "insert"),
    (exp.Update, "update"),
    (exp.Delete, "delete"),
    (exp.Merge, "merge"),
    (exp.Create, "create"),
    (exp.Alter, "alter"),
    (exp.Drop, "drop"),
    (exp.TruncateTable, "truncate"),
    (exp.Use, "use"),
    (exp.Show, "show"),
    (exp.Set, "set"),
    (exp.Describe, "describe"),
    (exp.Transaction, "begin"),
    (exp.Commit, "commit"),
    (exp.Rollback, "rollback"),
)

# Bare expressions sqlglot accepts but no database would run as a statement.
_NOT_STATEMENTS: tuple[type[exp.Expression], ...] = (exp.Condition, exp.Alias, exp.Identifier)

_USE_RE = re.compile(r"\bUSE\s+[`\"]?([A-Za-z0-9_]+)[`\"]?", re.IGNORECASE)
_QUALIFIED_RE = re.compile(r"[`\"]?([A-Za-z_][A-Za-z0-9_]*)[`\"]?\.[`\"]?[A-Za-z_][A-Za-z0-9_]*[`\"]?")


def classify(sql: str, *, dialect: str = "mysql", fixed_schema: str | None = None) -> ParsedStatement:
    """Parse ``sql`` into ordered (kind, statement) pairs plus an inferred schema.

    Raises :class:`ParseError` when the text cannot be parsed into at least one
    statement tree.
    """

    LOG.debug("Parsing SQL query: %s", sql)
    try:
        expressions = sqlglot.parse(sql, read=dialect)
    except SqlglotError as exc:
        LOG.error("Error parsing SQL query %r: %s", sql, exc)
        raise ParseError(str(exc).strip()) from exc

    statements: list[tuple[str, str]] = []
    for expression in expressions:
        if expression is None:
            continue
        statements.append((statement_kind(expression), expression.sql(dialect=dialect)))
    if not statements:
        raise ParseError("No SQL statement found.")
    return ParsedStatement(statements=tuple(statements), schema=infer_schema(sql, fixed_schema=fixed_schema))


def statement_kind(expression: exp.Expression) -> str:
    """Lower-cased operation kind for one parsed statement."""

    for node_type, kind in _STATEMENT_KINDS:
        if isinstance(expression, node_type):
            return kind
    if isinstance(expression, exp.Command):
        keyword = str(expression.this or "").strip().split(None, 1)
        return keyword[0].lower() if keyword else "command"
    if isinstance(expression, _NOT_STATEMENTS):
        raise ParseError(f"Unrecognized statement: {expression.sql()}")
    return expression.key


def infer_schema(sql: str, *, fixed_schema: str | None = None) -> str | None:
    """Best-effort schema label for permission lookups.

    A configured schema wins outright, then a ``USE <schema>`` directive, then
    the first ``schema.table`` reference. Aliases such as ``u.id`` also match
    the qualified pattern; the result is a label, not a resolved binding.
    """

    if fixed_schema:
        return fixed_schema
    match = _USE_RE.search(sql)
    if match:
        return match.group(1)
    match = _QUALIFIED_RE.search(sql)
    if match:
        return match.group(1)
    return None


__all__ = ["classify", "infer_schema", "statement_kind"]
