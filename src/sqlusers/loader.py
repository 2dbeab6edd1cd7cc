"""SqlLoader: 名前付き SQL テンプレートの解決."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from sqlusers.exceptions import SqlFileNotFoundError

if TYPE_CHECKING:
    from sqlusers.dialect import Dialect

logger = logging.getLogger(__name__)

BUNDLED_SQL_DIR = Path(__file__).resolve().parent / "sql"


class SqlLoader:
    """``users/insert.sql`` のような名前を SQL テンプレートに解決する.

    既定ではパッケージに同梱された ``sqlusers/sql`` を参照する。
    方言ごとの差分は ``insert.sql-postgresql`` のような兄弟ファイルで表し、
    存在すれば汎用ファイルより優先する。
    読み込んだテンプレートは (名前, 方言) ごとにキャッシュする。
    """

    def __init__(self, base_path: str | Path = BUNDLED_SQL_DIR) -> None:
        self.base_path = Path(base_path).resolve()
        self._cache: dict[tuple[str, str | None], str] = {}

    def load(self, path: str, *, dialect: Dialect | None = None) -> str:
        """SQL テンプレートを返す.

        Args:
            path: base_path からの相対パス
            dialect: RDBMS 方言。指定時は方言固有ファイルを優先

        Returns:
            SQL テンプレート文字列

        Raises:
            SqlFileNotFoundError: どの候補ファイルも base_path 配下に存在しない場合

        """
        key = (path, dialect.dialect_id if dialect is not None else None)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        tried: list[str] = []
        for candidate in self._candidates(path, dialect):
            tried.append(candidate)
            file_path = (self.base_path / candidate).resolve()
            if self._is_valid_path(self.base_path, file_path):
                logger.debug("Loaded SQL template %s", candidate)
                template = file_path.read_text(encoding="utf-8")
                self._cache[key] = template
                return template

        msg = f"SQL file not found under {self.base_path}: tried {', '.join(tried)}"
        raise SqlFileNotFoundError(msg)

    @staticmethod
    def _candidates(path: str, dialect: Dialect | None) -> Iterator[str]:
        if dialect is not None:
            yield f"{path}-{dialect.dialect_id}"
        yield path

    @staticmethod
    def _is_valid_path(base_path: Path, file_path: Path) -> bool:
        """base_path 配下に存在する通常ファイルか."""
        if base_path not in file_path.parents:
            return False
        return file_path.is_file()
