"""Dialect enum: ドライバごとの差異定義."""

from __future__ import annotations

import importlib
import platform
from datetime import datetime
from enum import Enum
from types import ModuleType
from typing import Any


class Dialect(Enum):
    """RDBMS ごとの SQL 方言とドライバ.

    POSTGRESQL と MYSQL は同じプレースホルダ ``%s`` を使用するが、
    ドライバ・エラーコード・自動コミットの切り替え方が異なるため別メンバーとして定義する。
    """

    SQLITE = ("sqlite", "?", "sqlite3", "SQLite")
    POSTGRESQL = ("postgresql", "%s", "psycopg", "PostgreSQL")
    MYSQL = ("mysql", "%s", "pymysql", "MySQL")

    def __init__(self, dialect_id: str, placeholder_fmt: str, driver: str, product: str) -> None:
        self._dialect_id = dialect_id
        self._placeholder_fmt = placeholder_fmt
        self._driver = driver
        self._product = product

    @property
    def dialect_id(self) -> str:
        """SQL ファイルの方言サフィックス（例: ``find.sql-postgresql``）."""
        return self._dialect_id

    @property
    def placeholder(self) -> str:
        """プレースホルダ文字列を返す."""
        return self._placeholder_fmt

    @property
    def driver_name(self) -> str:
        """DB-API ドライバのモジュール名."""
        return self._driver

    @property
    def product_name(self) -> str:
        """データベース製品名."""
        return self._product

    @classmethod
    def from_scheme(cls, scheme: str) -> Dialect:
        """接続 URL のスキームから Dialect を決定する.

        Raises:
            ValueError: 未対応のスキームの場合

        """
        normalized = scheme.lower().split("+", 1)[0]
        match normalized:
            case "sqlite":
                return cls.SQLITE
            case "postgresql" | "postgres":
                return cls.POSTGRESQL
            case "mysql":
                return cls.MYSQL
            case _:
                msg = f"Unsupported database scheme: {scheme!r}"
                raise ValueError(msg)

    def load_driver(self) -> ModuleType:
        """ドライバモジュールを import する（未インストールなら ModuleNotFoundError）."""
        return importlib.import_module(self._driver)

    def driver_version(self) -> str:
        """ドライバのバージョン文字列を返す.

        sqlite3 は標準ライブラリのため Python のバージョンを返す。
        """
        if self is Dialect.SQLITE:
            return platform.python_version()
        try:
            module = self.load_driver()
        except ModuleNotFoundError:
            return "unknown"
        return str(getattr(module, "__version__", "unknown"))

    def adapt(self, value: Any) -> Any:
        """バインド値をドライバが扱える形に変換する.

        SQLite は datetime の既定アダプタが非推奨のため ISO 8601 文字列に変換する。
        """
        if self is Dialect.SQLITE and isinstance(value, datetime):
            return value.isoformat(sep=" ")
        return value

    def is_unique_violation(self, exc: BaseException) -> bool:
        """例外が一意制約違反かをドライバの構造化エラーコードで判定する.

        - SQLite: 拡張リザルトコード ``SQLITE_CONSTRAINT_UNIQUE``
        - PostgreSQL: SQLSTATE ``23505``
        - MySQL: エラー番号 ``1062`` (ER_DUP_ENTRY)
        """
        match self:
            case Dialect.SQLITE:
                import sqlite3

                return getattr(exc, "sqlite_errorcode", None) == sqlite3.SQLITE_CONSTRAINT_UNIQUE
            case Dialect.POSTGRESQL:
                return getattr(exc, "sqlstate", None) == "23505"
            case Dialect.MYSQL:
                args = getattr(exc, "args", ())
                return bool(args) and args[0] == 1062

    def set_autocommit(self, connection: Any, enabled: bool) -> None:
        """接続の自動コミットを切り替える.

        SQLite の接続は ``isolation_level=None`` で開かれている前提で、
        手動モードへの切り替えは明示的な ``BEGIN`` で行う。
        COMMIT / ROLLBACK 後は自動的に自動コミットへ戻るため、復元時は何もしない。
        """
        match self:
            case Dialect.SQLITE:
                if not enabled:
                    connection.execute("BEGIN")
            case Dialect.POSTGRESQL:
                connection.autocommit = enabled
            case Dialect.MYSQL:
                connection.autocommit(enabled)
