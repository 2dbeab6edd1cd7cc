"""QueryExecutor: パラメータ化 SQL の実行."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlusers.exceptions import DuplicateEmailError, InsertError, QueryError
from sqlusers.loader import SqlLoader
from sqlusers.models import EXECUTE_FAILED
from sqlusers.parser import ParsedSQL, parse_sql

if TYPE_CHECKING:
    from sqlusers.dialect import Dialect

logger = logging.getLogger(__name__)

_BATCH_SAVEPOINT = "sqlusers_batch"
_ROW_SAVEPOINT = "sqlusers_batch_row"


class QueryExecutor:
    """1つの接続上で SQL を実行する.

    ドライバ例外はすべて分類済みの例外に変換する。
    一意制約違反は ``DuplicateEmailError``、それ以外は ``QueryError``。
    失敗時のログには SQL の出所（ファイル名）のみを出し、バインド値は出さない。
    """

    def __init__(self, connection: Any, dialect: Dialect, loader: SqlLoader | None = None) -> None:
        self._connection = connection
        self._dialect = dialect
        self._loader = loader if loader is not None else SqlLoader()

    @property
    def connection(self) -> Any:
        return self._connection

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def prepare(self, sql_path: str, params: dict[str, Any] | None = None) -> ParsedSQL:
        """SQL ファイルを読み込み、パラメータをバインドする."""
        template = self._loader.load(sql_path, dialect=self._dialect)
        return parse_sql(template, params or {}, dialect=self._dialect, source=sql_path)

    def execute(self, statement: ParsedSQL) -> int:
        """INSERT/UPDATE/DELETE を実行し、影響行数を返す."""
        with self._cursor(statement) as cursor:
            cursor.execute(statement.sql, statement.params)
            return cursor.rowcount

    def query(self, statement: ParsedSQL) -> list[dict[str, Any]]:
        """SELECT を実行し、結果を辞書のリストで返す.

        カーソルは全行を読み切ってから閉じる。
        """
        with self._cursor(statement) as cursor:
            cursor.execute(statement.sql, statement.params)
            return self._fetch_all(cursor)

    def query_one(self, statement: ParsedSQL) -> dict[str, Any] | None:
        """SELECT を実行し、最初の1行を返す."""
        rows = self.query(statement)
        return rows[0] if rows else None

    def insert_returning_id(self, statement: ParsedSQL) -> int:
        """INSERT を実行し、自動生成された ID を返す.

        ``RETURNING`` 付きの SQL（PostgreSQL 用ファイル）なら結果行から、
        それ以外は ``lastrowid`` から ID を取得する。

        Raises:
            InsertError: 影響行数が 0、または ID が生成されなかった場合

        """
        with self._cursor(statement) as cursor:
            cursor.execute(statement.sql, statement.params)
            if cursor.rowcount == 0:
                logger.error("Insert affected no rows: %s", statement.source)
                msg = f"Insert affected no rows ({statement.source})"
                raise InsertError(msg)
            if cursor.description is not None:
                row = cursor.fetchone()
                generated = row[0] if row else None
            else:
                generated = cursor.lastrowid
        if generated is None:
            logger.error("Insert generated no id: %s", statement.source)
            msg = f"Insert succeeded but generated no id ({statement.source})"
            raise InsertError(msg)
        return int(generated)

    def execute_batch(self, sql_path: str, rows: Sequence[dict[str, Any]]) -> list[int]:
        """同一 SQL をレコードごとにバインドし、まとめて実行する.

        まず ``executemany`` で一括実行する。失敗した場合はセーブポイントまで戻し、
        レコードごとに個別のセーブポイントで再実行して結果を得る。
        呼び出し側で手動トランザクションを開始しておくこと。

        Returns:
            レコードごとの影響行数。失敗したレコードは ``EXECUTE_FAILED``

        """
        if not rows:
            return []
        statements = [self.prepare(sql_path, row) for row in rows]
        sql = statements[0].sql
        param_rows = [s.params for s in statements]

        self._savepoint(_BATCH_SAVEPOINT)
        cursor = self._connection.cursor()
        try:
            cursor.executemany(sql, param_rows)
        except self._driver_error() as exc:
            logger.warning(
                "Batch flush failed for %s, replaying %d rows individually: %s",
                sql_path,
                len(param_rows),
                type(exc).__name__,
            )
            self._rollback_to(_BATCH_SAVEPOINT)
            return self._replay(sql, param_rows, sql_path)
        else:
            self._release(_BATCH_SAVEPOINT)
            # executemany の rowcount は合計値なので、全件成功時は各1行とみなす
            return [1] * len(param_rows)
        finally:
            cursor.close()

    def _replay(self, sql: str, param_rows: list[list[Any]], source: str) -> list[int]:
        counts: list[int] = []
        for index, params in enumerate(param_rows):
            self._savepoint(_ROW_SAVEPOINT)
            cursor = self._connection.cursor()
            try:
                cursor.execute(sql, params)
            except self._driver_error() as exc:
                logger.error("Batch row %d failed for %s: %s", index, source, type(exc).__name__)
                self._rollback_to(_ROW_SAVEPOINT)
                counts.append(EXECUTE_FAILED)
            else:
                self._release(_ROW_SAVEPOINT)
                counts.append(cursor.rowcount)
            finally:
                cursor.close()
        return counts

    def _savepoint(self, name: str) -> None:
        self._run_plain(f"SAVEPOINT {name}")

    def _rollback_to(self, name: str) -> None:
        self._run_plain(f"ROLLBACK TO SAVEPOINT {name}")
        self._release(name)

    def _release(self, name: str) -> None:
        self._run_plain(f"RELEASE SAVEPOINT {name}")

    def _run_plain(self, sql: str) -> None:
        self.execute(ParsedSQL(sql=sql, source=sql))

    def _driver_error(self) -> type[Exception]:
        return self._dialect.load_driver().Error

    @contextmanager
    def _cursor(self, statement: ParsedSQL) -> Iterator[Any]:
        """カーソルを開き、ドライバ例外を分類して必ず閉じる."""
        driver_error = self._driver_error()
        cursor = None
        try:
            cursor = self._connection.cursor()
            yield cursor
        except driver_error as exc:
            raise self._classify(exc, statement) from exc
        finally:
            if cursor is not None:
                cursor.close()

    def _classify(self, exc: Exception, statement: ParsedSQL) -> Exception:
        if self._dialect.is_unique_violation(exc):
            logger.error("Unique constraint violated: %s", statement.source)
            return DuplicateEmailError("A user with that email already exists")
        logger.error("Statement failed: %s (%s)", statement.source, type(exc).__name__)
        msg = f"Statement failed ({statement.source}): {exc}"
        return QueryError(msg)

    @staticmethod
    def _fetch_all(cursor: Any) -> list[dict[str, Any]]:
        if cursor.description is None:
            return []
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]
