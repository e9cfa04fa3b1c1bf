"""Statement classification for read-only query tools.

This is a lexical classifier, not a parser: a statement is accepted when
its leading keyword is allowed and no blocked keyword, dangerous pattern
or extra statement separator appears anywhere in it.  Sufficiently
adversarial SQL (comments splitting a keyword, homoglyphs) is outside
what it promises to catch; role-level read-only access is the backstop.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

from contracts.security import DEFAULT_ALLOWED_STATEMENTS, ValidationOutcome

MAX_STATEMENT_LENGTH = 100_000

# Write / privilege keywords, matched as whole words anywhere in the statement.
BLOCKED_KEYWORDS = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "ALTER",
    "TRUNCATE",
    "CREATE",
    "GRANT",
    "REVOKE",
    "EXECUTE",
    "CALL",
    "COPY",
    "VACUUM",
    "REINDEX",
    "CLUSTER",
    "COMMENT",
    "SECURITY",
    "OWNER",
    "SET ROLE",
    "RESET",
)

_BLOCKED_RES = [
    (kw, re.compile(rf"\b{re.escape(kw)}\b", re.IGNORECASE)) for kw in BLOCKED_KEYWORDS
]

# Rejected even inside an otherwise read-only statement.
DANGEROUS_PATTERNS = [
    re.compile(r";\s*(INSERT|UPDATE|DELETE|DROP|ALTER|TRUNCATE|CREATE)", re.IGNORECASE),
    re.compile(r"INTO\s+OUTFILE", re.IGNORECASE),
    re.compile(r"INTO\s+DUMPFILE", re.IGNORECASE),
    re.compile(r"LOAD_FILE", re.IGNORECASE),
    re.compile(r"pg_read_file", re.IGNORECASE),
    re.compile(r"pg_write_file", re.IGNORECASE),
    re.compile(r"lo_import", re.IGNORECASE),
    re.compile(r"lo_export", re.IGNORECASE),
    re.compile(r"COPY\s+.*\s+TO", re.IGNORECASE),
    re.compile(r"pg_terminate_backend", re.IGNORECASE),
    re.compile(r"pg_cancel_backend", re.IGNORECASE),
]

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_statement(sql: str) -> str:
    """Trim and collapse every whitespace run to a single space."""
    return _WHITESPACE_RE.sub(" ", sql.strip())


def starts_with_keyword(statement: str, keyword: str) -> bool:
    """Case-insensitive check that *statement* opens with *keyword* as a word."""
    kw = keyword.strip()
    if not kw:
        return False
    return re.match(rf"{re.escape(kw)}\b", statement, re.IGNORECASE) is not None


def validate_statement(
    sql: Any,
    allowed_prefixes: Iterable[str] = DEFAULT_ALLOWED_STATEMENTS,
) -> ValidationOutcome:
    """Classify *sql* as a safe read-only statement or reject it.

    Never raises; the outcome carries either the normalized statement or
    a human-readable reason.
    """
    if not isinstance(sql, str) or not sql:
        return ValidationOutcome.reject("Query must be a non-empty string")

    normalized = normalize_statement(sql)
    if not normalized:
        return ValidationOutcome.reject("Query cannot be empty")

    if len(normalized) > MAX_STATEMENT_LENGTH:
        return ValidationOutcome.reject("Query too long (max 100KB)")

    # A write statement reports its keyword, not a prefix mismatch.
    for keyword, pattern in _BLOCKED_RES:
        if pattern.search(normalized):
            return ValidationOutcome.reject(
                f"Blocked keyword detected: {keyword}. Only read operations are allowed."
            )

    prefixes = sorted({p.strip().upper() for p in allowed_prefixes if p and p.strip()})
    if not any(starts_with_keyword(normalized, p) for p in prefixes):
        return ValidationOutcome.reject(
            f"Query must start with one of: {', '.join(prefixes)}"
        )

    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(normalized):
            return ValidationOutcome.reject("Potentially dangerous SQL pattern detected")

    semicolons = normalized.count(";")
    if semicolons > 1 or (semicolons == 1 and not normalized.endswith(";")):
        return ValidationOutcome.reject(
            "Multiple statements not allowed. Execute one query at a time."
        )

    return ValidationOutcome.accept(normalized)


def scan_positions(sql: str) -> list[tuple[int, bool]]:
    """Parenthesis depth and in-quote flag for every character of *sql*.

    Both single-quoted literals and double-quoted identifiers count as
    quoted; a doubled quote inside them re-enters the same span.
    """
    positions: list[tuple[int, bool]] = []
    depth = 0
    quote: str | None = None
    for ch in sql:
        if quote:
            positions.append((depth, True))
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
            positions.append((depth, True))
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
        positions.append((depth, False))
    return positions


def top_level_matches(pattern: re.Pattern[str], sql: str) -> list[re.Match[str]]:
    """Matches of *pattern* that start outside quotes and all parentheses."""
    positions = scan_positions(sql)
    return [m for m in pattern.finditer(sql) if positions[m.start()] == (0, False)]


def has_ordering(sql: str) -> bool:
    """True when the statement carries its own top-level ORDER BY clause.

    An ORDER BY inside a window, subquery, CTE body or literal does not
    order the returned rows and is ignored.
    """
    return bool(top_level_matches(_ORDER_BY_RE, sql))


_ORDER_BY_RE = re.compile(r"\bORDER\s+BY\b", re.IGNORECASE)
