"""Unit tests for row-limit rewriting and pagination."""

from __future__ import annotations

import pytest

from runtime.guard.limits import enforce_limit, paginate, strip_pagination


class TestEnforceLimit:
    def test_appends_limit(self) -> None:
        assert enforce_limit("SELECT * FROM t", 100) == "SELECT * FROM t LIMIT 100"

    def test_trailing_separator_removed(self) -> None:
        assert enforce_limit("SELECT * FROM t;", 100) == "SELECT * FROM t LIMIT 100"

    def test_smaller_limit_kept(self) -> None:
        sql = "SELECT * FROM t LIMIT 50"
        assert enforce_limit(sql, 100) == sql

    def test_equal_limit_kept(self) -> None:
        sql = "SELECT * FROM t LIMIT 100"
        assert enforce_limit(sql, 100) == sql

    def test_larger_limit_clamped(self) -> None:
        assert enforce_limit("SELECT * FROM t LIMIT 5000", 100) == "SELECT * FROM t LIMIT 100"

    def test_limit_all_clamped(self) -> None:
        assert enforce_limit("SELECT * FROM t LIMIT ALL", 100) == "SELECT * FROM t LIMIT 100"

    def test_clamp_keeps_offset(self) -> None:
        assert (
            enforce_limit("SELECT * FROM t limit 500 OFFSET 10", 100)
            == "SELECT * FROM t LIMIT 100 OFFSET 10"
        )

    @pytest.mark.parametrize("sql", ["EXPLAIN SELECT * FROM t", "SHOW search_path"])
    def test_explain_and_show_untouched(self, sql: str) -> None:
        assert enforce_limit(sql, 100) == sql

    def test_cte_limit_is_not_outer_limit(self) -> None:
        sql = "WITH x AS (SELECT * FROM t LIMIT 5) SELECT * FROM x"
        assert enforce_limit(sql, 100) == sql + " LIMIT 100"

    def test_subquery_limit_untouched(self) -> None:
        sql = "SELECT * FROM (SELECT * FROM t LIMIT 5000) s"
        assert enforce_limit(sql, 100) == sql + " LIMIT 100"

    def test_parenthesis_in_string_literal(self) -> None:
        sql = "SELECT ')' AS p FROM t LIMIT 500"
        assert enforce_limit(sql, 100) == "SELECT ')' AS p FROM t LIMIT 100"

    def test_limit_text_in_literal_ignored(self) -> None:
        sql = "SELECT * FROM logs WHERE msg = 'LIMIT 5'"
        assert enforce_limit(sql, 100) == sql + " LIMIT 100"

    def test_large_limit_text_in_literal_untouched(self) -> None:
        sql = "SELECT 'LIMIT 50000' AS x, * FROM big"
        assert enforce_limit(sql, 100) == sql + " LIMIT 100"

    def test_limit_text_in_quoted_identifier_ignored(self) -> None:
        sql = 'SELECT "LIMIT 5" FROM t'
        assert enforce_limit(sql, 100) == sql + " LIMIT 100"


class TestPagination:
    def test_strip_limit_offset(self) -> None:
        sql = "SELECT * FROM t ORDER BY id LIMIT 10 OFFSET 20;"
        assert strip_pagination(sql) == "SELECT * FROM t ORDER BY id"

    def test_strip_without_pagination(self) -> None:
        assert strip_pagination("SELECT * FROM t ORDER BY id") == "SELECT * FROM t ORDER BY id"

    def test_strip_keeps_literal_text(self) -> None:
        sql = "SELECT * FROM logs WHERE msg = 'LIMIT 5 OFFSET 2' ORDER BY id LIMIT 3"
        assert strip_pagination(sql) == (
            "SELECT * FROM logs WHERE msg = 'LIMIT 5 OFFSET 2' ORDER BY id"
        )

    def test_strip_keeps_inner_limit(self) -> None:
        sql = "SELECT * FROM (SELECT * FROM t ORDER BY id LIMIT 5) s ORDER BY id LIMIT 2"
        assert strip_pagination(sql) == (
            "SELECT * FROM (SELECT * FROM t ORDER BY id LIMIT 5) s ORDER BY id"
        )

    def test_paginate(self) -> None:
        assert (
            paginate("SELECT * FROM t ORDER BY id", 10, 20)
            == "SELECT * FROM t ORDER BY id LIMIT 10 OFFSET 20"
        )


class TestEnforceProperties:
    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT * FROM t",
            "SELECT * FROM t LIMIT 50000",
            "WITH recent AS (SELECT * FROM orders) SELECT * FROM recent",
        ],
    )
    def test_idempotent(self, sql: str) -> None:
        once = enforce_limit(sql, 1000)
        assert enforce_limit(once, 1000) == once

    def test_large_limit_leaves_single_bound(self) -> None:
        out = enforce_limit("SELECT * FROM t LIMIT 50000", 1000)
        assert "LIMIT 1000" in out
        assert "50000" not in out

    def test_cte_bound_appended_once(self) -> None:
        sql = "WITH recent AS (SELECT * FROM orders) SELECT * FROM recent"
        out = enforce_limit(sql, 100)
        assert out == sql + " LIMIT 100"
        assert out.count("LIMIT") == 1
