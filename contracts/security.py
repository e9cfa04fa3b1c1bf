"""Query safety contracts.

Outcome values returned by the statement validator and identifier guard,
plus the security policy they are evaluated against.  Validators never
raise; callers decide what a rejection means.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


DEFAULT_ALLOWED_STATEMENTS = ("SELECT", "EXPLAIN", "SHOW", "WITH")
DEFAULT_MAX_ROW_LIMIT = 10_000


class IdentifierKind(str, Enum):
    TABLE = "table"
    COLUMN = "column"
    SCHEMA = "schema"


class ValidationOutcome(BaseModel):
    """Result of classifying a whole SQL statement."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: str | None = None
    normalized_statement: str | None = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ValidationOutcome":
        if not self.accepted and self.normalized_statement is not None:
            raise ValueError("rejected outcome cannot carry a statement")
        if self.accepted and not self.normalized_statement:
            raise ValueError("accepted outcome requires a normalized statement")
        return self

    @classmethod
    def reject(cls, reason: str) -> "ValidationOutcome":
        return cls(accepted=False, reason=reason)

    @classmethod
    def accept(cls, statement: str) -> "ValidationOutcome":
        return cls(accepted=True, normalized_statement=statement)


class IdentifierOutcome(BaseModel):
    """Result of validating a single schema/table/column name."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: str | None = None
    sanitized_name: str | None = None  # unquoted
    sanitized_names: tuple[str, ...] | None = None  # set by list validation

    @classmethod
    def reject(cls, reason: str) -> "IdentifierOutcome":
        return cls(accepted=False, reason=reason)


class SecurityPolicy(BaseModel):
    """Read-only policy input, built from the manifest once per call."""

    model_config = ConfigDict(frozen=True)

    allowed_statement_prefixes: frozenset[str] = frozenset(DEFAULT_ALLOWED_STATEMENTS)
    max_row_limit: int = DEFAULT_MAX_ROW_LIMIT
