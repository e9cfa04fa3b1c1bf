"""Identifier validation and quoting for generated SQL.

Acceptance and quoting are separate steps: a name that collides with a
reserved keyword is still accepted, because quoting neutralises it.  Every
identifier interpolated into SQL text goes through ``quote_identifier``.
"""

from __future__ import annotations

import re
from typing import Any

from contracts.errors import RejectedInputError
from contracts.security import IdentifierKind, IdentifierOutcome

VALID_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
MAX_IDENTIFIER_LENGTH = 63
QUOTE_CHAR = '"'

RESERVED_KEYWORDS = frozenset({
    "SELECT", "INSERT", "UPDATE", "DELETE", "DROP", "ALTER", "CREATE",
    "TABLE", "DATABASE", "INDEX", "VIEW", "TRIGGER", "FUNCTION",
    "FROM", "WHERE", "AND", "OR", "NOT", "NULL", "TRUE", "FALSE",
    "JOIN", "LEFT", "RIGHT", "INNER", "OUTER", "ON", "AS",
    "ORDER", "BY", "GROUP", "HAVING", "LIMIT", "OFFSET",
    "UNION", "INTERSECT", "EXCEPT", "ALL", "DISTINCT",
    "GRANT", "REVOKE", "EXECUTE", "TRUNCATE",
})


def _kind(kind: IdentifierKind | str) -> str:
    return IdentifierKind(kind).value


def is_reserved(name: str) -> bool:
    return name.upper() in RESERVED_KEYWORDS


def validate_identifier(
    name: Any, kind: IdentifierKind | str = IdentifierKind.TABLE
) -> IdentifierOutcome:
    """Validate a single schema, table or column name."""
    label = _kind(kind)
    if not isinstance(name, str) or not name:
        return IdentifierOutcome.reject(f"{label} name must be a non-empty string")

    trimmed = name.strip()
    if not trimmed:
        return IdentifierOutcome.reject(f"{label} name cannot be empty")

    if len(trimmed) > MAX_IDENTIFIER_LENGTH:
        return IdentifierOutcome.reject(
            f"{label} name too long (max {MAX_IDENTIFIER_LENGTH} characters)"
        )

    if not VALID_IDENTIFIER.match(trimmed):
        return IdentifierOutcome.reject(
            f'Invalid {label} name "{trimmed}". Only letters, numbers, and '
            "underscores allowed. Must start with a letter or underscore."
        )

    return IdentifierOutcome(accepted=True, sanitized_name=trimmed)


def validate_identifiers(
    names: Any, kind: IdentifierKind | str = IdentifierKind.COLUMN
) -> IdentifierOutcome:
    """Validate every name; the first rejection is returned as-is.

    On success ``sanitized_names`` holds the unquoted names in order; an
    empty list is accepted with no names.
    """
    label = _kind(kind)
    if not isinstance(names, (list, tuple)):
        return IdentifierOutcome.reject(f"{label} names must be an array")

    sanitized: list[str] = []
    for name in names:
        outcome = validate_identifier(name, kind)
        if not outcome.accepted:
            return outcome
        sanitized.append(outcome.sanitized_name or "")

    return IdentifierOutcome(accepted=True, sanitized_names=tuple(sanitized))


def quote_identifier(name: str) -> str:
    """Wrap *name* in double quotes, doubling any embedded quote."""
    escaped = name.replace(QUOTE_CHAR, QUOTE_CHAR * 2)
    return f"{QUOTE_CHAR}{escaped}{QUOTE_CHAR}"


def safe_identifier(
    name: Any, kind: IdentifierKind | str = IdentifierKind.TABLE
) -> str | None:
    """Validate and quote in one step; ``None`` when the name is rejected."""
    outcome = validate_identifier(name, kind)
    if not outcome.accepted or outcome.sanitized_name is None:
        return None
    return quote_identifier(outcome.sanitized_name)


def qualified_name(schema: Any, table: Any) -> str:
    """Return ``"schema"."table"`` or raise ``RejectedInputError``."""
    schema_outcome = validate_identifier(schema, IdentifierKind.SCHEMA)
    if not schema_outcome.accepted:
        raise RejectedInputError(schema_outcome.reason or "Invalid schema name")
    table_outcome = validate_identifier(table, IdentifierKind.TABLE)
    if not table_outcome.accepted:
        raise RejectedInputError(table_outcome.reason or "Invalid table name")
    return (
        f"{quote_identifier(schema_outcome.sanitized_name or '')}."
        f"{quote_identifier(table_outcome.sanitized_name or '')}"
    )
