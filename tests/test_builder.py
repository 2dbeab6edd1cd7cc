"""QueryBuilder のテスト."""

from __future__ import annotations

import pytest

from sqlusers import Dialect, UserQuery
from sqlusers.builder import QueryBuilder, build_search

BASE = "SELECT * FROM users WHERE 1 = 1"


class TestQueryBuilder:
    """断片とパラメータの積み上げ."""

    def test_base_only(self) -> None:
        """条件がなければ基本 SQL のまま."""
        result = QueryBuilder(BASE, Dialect.SQLITE).build()
        assert result.sql == BASE
        assert result.params == []

    def test_where_equals(self) -> None:
        """等価条件を AND で追加する."""
        result = QueryBuilder(BASE, Dialect.SQLITE).where_equals("department", "Sales").build()
        assert result.sql == BASE + " AND department = ?"
        assert result.params == ["Sales"]

    def test_none_is_skipped(self) -> None:
        """None の条件は追加しない."""
        result = QueryBuilder(BASE, Dialect.SQLITE).where_equals("role", None).build()
        assert result.sql == BASE
        assert result.params == []

    def test_false_is_not_skipped(self) -> None:
        """False は条件として追加する."""
        result = QueryBuilder(BASE, Dialect.SQLITE).where_equals("active", False).build()
        assert result.sql == BASE + " AND active = ?"
        assert result.params == [False]

    def test_unknown_column_rejected(self) -> None:
        """許可されていないカラムは ValueError."""
        with pytest.raises(ValueError, match="email"):
            QueryBuilder(BASE, Dialect.SQLITE).where_equals("email", "x")

    def test_postgresql_placeholders(self) -> None:
        """PostgreSQL では %s で組み立てる."""
        result = QueryBuilder(BASE, Dialect.POSTGRESQL).where_equals("role", "Admin").paginate(5, 10).build()
        assert result.sql == BASE + " AND role = %s LIMIT %s OFFSET %s"
        assert result.params == ["Admin", 5, 10]

    def test_order_must_precede_paginate(self) -> None:
        """ORDER BY はページングより前に指定する."""
        builder = QueryBuilder(BASE, Dialect.SQLITE).paginate(10, 0)
        with pytest.raises(ValueError, match="before"):
            builder.order_by("id")

    def test_order_once(self) -> None:
        """ORDER BY は一度だけ."""
        builder = QueryBuilder(BASE, Dialect.SQLITE).order_by("id")
        with pytest.raises(ValueError, match="already"):
            builder.order_by("name")

    def test_paginate_once(self) -> None:
        """ページングは一度だけ."""
        builder = QueryBuilder(BASE, Dialect.SQLITE).paginate(10, 0)
        with pytest.raises(ValueError, match="already"):
            builder.paginate(10, 10)

    def test_source_is_kept(self) -> None:
        """SQL 名を結果に引き継ぐ."""
        assert QueryBuilder(BASE, Dialect.SQLITE, source="users/search.sql").build().source == "users/search.sql"


class TestBuildSearch:
    """検索条件からの組み立て."""

    def test_no_filters_still_orders_and_paginates(self) -> None:
        """条件がなくても新しい順に並べてページングする."""
        result = build_search(BASE, UserQuery(), Dialect.SQLITE)
        assert result.sql == BASE + " ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?"
        assert result.params == [10, 0]

    def test_all_filters_in_fixed_order(self) -> None:
        """条件は department, role, active の順に追加する."""
        query = UserQuery(active=True, role="Manager", department="Sales", limit=20, offset=40)
        result = build_search(BASE, query, Dialect.SQLITE)
        assert result.sql == (
            BASE
            + " AND department = ? AND role = ? AND active = ?"
            + " ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?"
        )
        assert result.params == ["Sales", "Manager", True, 20, 40]

    def test_placeholder_count_matches_params(self) -> None:
        """プレースホルダ数とパラメータ数が一致する."""
        query = UserQuery(role="Developer", limit=3)
        result = build_search(BASE, query, Dialect.MYSQL)
        assert result.sql.count("%s") == len(result.params)
