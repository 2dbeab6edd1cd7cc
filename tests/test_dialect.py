"""Dialect enum のテスト."""

from __future__ import annotations

import platform
import sqlite3
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from sqlusers import Dialect


class TestDialect:
    """Dialect enum の基本動作."""

    def test_sqlite_placeholder(self) -> None:
        """SQLITE のプレースホルダは '?'."""
        assert Dialect.SQLITE.placeholder == "?"

    def test_postgresql_and_mysql_same_placeholder(self) -> None:
        """POSTGRESQL と MYSQL は同じプレースホルダだが別メンバー."""
        assert Dialect.POSTGRESQL.placeholder == Dialect.MYSQL.placeholder == "%s"
        assert Dialect.POSTGRESQL is not Dialect.MYSQL

    def test_all_members(self) -> None:
        """対応する RDBMS は3つ."""
        members = {d.name for d in Dialect}
        assert members == {"SQLITE", "POSTGRESQL", "MYSQL"}

    def test_dialect_ids(self) -> None:
        """SQL ファイルのサフィックスは小文字の製品名."""
        assert [d.dialect_id for d in Dialect] == ["sqlite", "postgresql", "mysql"]

    def test_driver_names(self) -> None:
        """各方言の DB-API ドライバモジュール名."""
        assert Dialect.SQLITE.driver_name == "sqlite3"
        assert Dialect.POSTGRESQL.driver_name == "psycopg"
        assert Dialect.MYSQL.driver_name == "pymysql"


class TestFromScheme:
    """URL スキームからの判定."""

    @pytest.mark.parametrize(
        ("scheme", "expected"),
        [
            ("sqlite", Dialect.SQLITE),
            ("postgresql", Dialect.POSTGRESQL),
            ("postgres", Dialect.POSTGRESQL),
            ("postgresql+psycopg", Dialect.POSTGRESQL),
            ("MySQL", Dialect.MYSQL),
            ("mysql+pymysql", Dialect.MYSQL),
        ],
    )
    def test_known_schemes(self, scheme: str, expected: Dialect) -> None:
        """大文字小文字とドライバ指定を無視して判定する."""
        assert Dialect.from_scheme(scheme) is expected

    def test_unknown_scheme(self) -> None:
        """未対応のスキームは ValueError."""
        with pytest.raises(ValueError, match="oracle"):
            Dialect.from_scheme("oracle")


class TestDriver:
    """ドライバの読み込みとバージョン."""

    def test_load_sqlite_driver(self) -> None:
        """SQLITE は標準ライブラリの sqlite3 を読み込む."""
        assert Dialect.SQLITE.load_driver() is sqlite3

    def test_sqlite_driver_version_is_python_version(self) -> None:
        """sqlite3 のバージョンは Python のバージョン."""
        assert Dialect.SQLITE.driver_version() == platform.python_version()


class TestAdapt:
    """バインド値の変換."""

    def test_sqlite_datetime_to_iso(self) -> None:
        """SQLite では datetime を空白区切りの ISO 8601 にする."""
        value = datetime(2024, 1, 15, 9, 30, 0)
        assert Dialect.SQLITE.adapt(value) == "2024-01-15 09:30:00"

    def test_postgresql_datetime_unchanged(self) -> None:
        """PostgreSQL では datetime をそのまま渡す."""
        value = datetime(2024, 1, 15, 9, 30, 0)
        assert Dialect.POSTGRESQL.adapt(value) is value

    def test_other_values_unchanged(self) -> None:
        """datetime 以外は変換しない."""
        assert Dialect.SQLITE.adapt("Sales") == "Sales"
        assert Dialect.SQLITE.adapt(True) is True


class TestUniqueViolation:
    """一意制約違反の判定."""

    def test_sqlite_unique_violation(self) -> None:
        """UNIQUE 制約違反は拡張リザルトコードで判定する."""
        conn = sqlite3.connect(":memory:")
        try:
            conn.execute("CREATE TABLE t (email TEXT UNIQUE)")
            conn.execute("INSERT INTO t VALUES ('a@example.com')")
            with pytest.raises(sqlite3.IntegrityError) as exc_info:
                conn.execute("INSERT INTO t VALUES ('a@example.com')")
        finally:
            conn.close()
        assert Dialect.SQLITE.is_unique_violation(exc_info.value)

    def test_sqlite_not_null_is_not_unique_violation(self) -> None:
        """NOT NULL 違反は一意制約違反ではない."""
        conn = sqlite3.connect(":memory:")
        try:
            conn.execute("CREATE TABLE t (email TEXT NOT NULL)")
            with pytest.raises(sqlite3.IntegrityError) as exc_info:
                conn.execute("INSERT INTO t VALUES (NULL)")
        finally:
            conn.close()
        assert not Dialect.SQLITE.is_unique_violation(exc_info.value)

    def test_postgresql_sqlstate(self) -> None:
        """PostgreSQL は SQLSTATE 23505 だけを一意制約違反とする."""
        exc = Exception("duplicate key")
        exc.sqlstate = "23505"  # type: ignore[attr-defined]
        assert Dialect.POSTGRESQL.is_unique_violation(exc)
        exc.sqlstate = "23502"  # type: ignore[attr-defined]
        assert not Dialect.POSTGRESQL.is_unique_violation(exc)

    def test_mysql_error_number(self) -> None:
        """MySQL はエラー番号 1062 だけを一意制約違反とする."""
        assert Dialect.MYSQL.is_unique_violation(Exception(1062, "Duplicate entry"))
        assert not Dialect.MYSQL.is_unique_violation(Exception(1048, "Column cannot be null"))
        assert not Dialect.MYSQL.is_unique_violation(Exception())


class TestSetAutocommit:
    """自動コミットの切り替え."""

    def test_sqlite_begin_on_manual(self) -> None:
        """SQLite の手動モードは BEGIN で開始する."""
        conn = MagicMock()
        Dialect.SQLITE.set_autocommit(conn, False)
        conn.execute.assert_called_once_with("BEGIN")

    def test_sqlite_restore_is_noop(self) -> None:
        """SQLite の復元では何も実行しない."""
        conn = MagicMock()
        Dialect.SQLITE.set_autocommit(conn, True)
        conn.execute.assert_not_called()

    def test_postgresql_attribute(self) -> None:
        """psycopg は autocommit 属性で切り替える."""
        conn = MagicMock()
        Dialect.POSTGRESQL.set_autocommit(conn, False)
        assert conn.autocommit is False

    def test_mysql_method(self) -> None:
        """pymysql は autocommit() メソッドで切り替える."""
        conn = MagicMock()
        Dialect.MYSQL.set_autocommit(conn, True)
        conn.autocommit.assert_called_once_with(True)
