"""Row-limit rewriting for validated statements.

Only clauses at the outermost nesting level count: a ``LIMIT`` inside a
CTE body or subquery bounds that subquery, not the rows returned to the
caller, and one inside a quoted literal is not a clause at all.
"""

from __future__ import annotations

import re

from runtime.guard.statement import starts_with_keyword, top_level_matches

_LIMIT_RE = re.compile(r"\bLIMIT\s+(\d+|ALL)\b", re.IGNORECASE)
_PAGINATION_RE = re.compile(r"\s*\b(?:LIMIT\s+(?:\d+|ALL)|OFFSET\s+\d+)\b", re.IGNORECASE)

_UNBOUNDED_PREFIXES = ("EXPLAIN", "SHOW")


def _strip_terminator(sql: str) -> str:
    return sql.rstrip().removesuffix(";").rstrip()


def enforce_limit(normalized_sql: str, max_limit: int) -> str:
    """Bound a validated statement to at most *max_limit* rows.

    An existing outer ``LIMIT`` is clamped in place; ``EXPLAIN``/``SHOW``
    statements are left untouched; anything else gets ``LIMIT max_limit``
    appended after its trailing separator is removed.
    """
    sql = normalized_sql.strip()

    existing = top_level_matches(_LIMIT_RE, sql)
    if existing:
        m = existing[0]
        value = m.group(1)
        if value.upper() == "ALL" or int(value) > max_limit:
            return f"{sql[:m.start()]}LIMIT {max_limit}{sql[m.end():]}"
        return sql

    if any(starts_with_keyword(sql, p) for p in _UNBOUNDED_PREFIXES):
        return sql

    return f"{_strip_terminator(sql)} LIMIT {max_limit}"


def strip_pagination(sql: str) -> str:
    """Remove outer LIMIT/OFFSET clauses and the trailing separator."""
    out = _strip_terminator(sql.strip())
    for m in reversed(top_level_matches(_PAGINATION_RE, out)):
        out = out[:m.start()] + out[m.end():]
    return out.strip()


def paginate(base_query: str, limit: int, offset: int) -> str:
    return f"{base_query} LIMIT {limit} OFFSET {offset}"
