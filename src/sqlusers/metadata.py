"""MetadataInspector: データベースとスキーマのメタデータ取得."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlusers.exceptions import NotFoundError
from sqlusers.mapper import PydanticMapper
from sqlusers.models import ColumnDescriptor, DatabaseInfo

if TYPE_CHECKING:
    from sqlusers.config import DatabaseSettings
    from sqlusers.executor import QueryExecutor

logger = logging.getLogger(__name__)


class MetadataInspector:
    """カタログを問い合わせる読み取り専用の検査器. 結果はキャッシュしない."""

    def __init__(self, executor: QueryExecutor, settings: DatabaseSettings) -> None:
        self._executor = executor
        self._settings = settings

    def ping(self) -> int:
        """``SELECT 1`` を実行し、その値を返す."""
        row = self._executor.query_one(self._executor.prepare("meta/ping.sql"))
        return int(row["test"]) if row else 0

    def describe(self) -> DatabaseInfo:
        """データベースの識別情報と機能を取得する.

        機能フラグは方言ごとの ``meta/server.sql`` が返す値に従う
        （MySQL のトランザクション対応は既定のストレージエンジンで決まる）。
        """
        dialect = self._executor.dialect
        row = self._executor.query_one(self._executor.prepare("meta/server.sql")) or {}
        return DatabaseInfo(
            product_name=dialect.product_name,
            product_version=str(row.get("product_version") or ""),
            driver_name=dialect.driver_name,
            driver_version=dialect.driver_version(),
            url=self._settings.masked_url,
            user=row.get("connected_user") or self._settings.username,
            database=str(row.get("database_name") or self._settings.database),
            max_connections=int(row.get("max_connections") or 0),
            read_only=bool(row.get("read_only")),
            supports_batch_updates=bool(row.get("supports_batch_updates", True)),
            supports_transactions=bool(row.get("supports_transactions", True)),
        )

    def table_columns(self, table_name: str) -> list[ColumnDescriptor]:
        """テーブルのカラム情報をカタログの順序で返す.

        物理テーブルは必ず1つ以上のカラムを持つため、結果が空なら存在しないとみなす。

        Raises:
            NotFoundError: テーブルが存在しない場合

        """
        statement = self._executor.prepare("meta/columns.sql", {"table_name": table_name})
        rows = self._executor.query(statement)
        if not rows:
            logger.info("Table not found in catalog: %s", table_name)
            msg = f"Table {table_name!r} does not exist"
            raise NotFoundError(msg)
        return PydanticMapper(ColumnDescriptor).map_rows(rows)
