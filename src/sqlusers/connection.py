"""ConnectionProvider: 接続の取得と解放."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlusers.config import DatabaseSettings
from sqlusers.dialect import Dialect
from sqlusers.exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)


class ConnectionProvider:
    """DB-API 2.0 接続を開き、必ず閉じる.

    プールは持たない。``acquire()`` のたびに新しい接続を開き、
    ブロックを抜けるときに成功・失敗を問わず閉じる。

    Examples:
        >>> provider = ConnectionProvider(DatabaseSettings("sqlite:///app.db"))
        >>> with provider.acquire() as conn:
        ...     conn.execute("SELECT 1")

    """

    def __init__(self, settings: DatabaseSettings | None = None) -> None:
        self.settings = settings if settings is not None else DatabaseSettings.from_env()
        self.dialect = self.settings.dialect

    def connect(self) -> Any:
        """自動コミットモードの接続を開く.

        Raises:
            DatabaseConnectionError: ドライバ未インストール、到達不能、認証失敗の場合

        """
        try:
            driver = self.dialect.load_driver()
        except ModuleNotFoundError as exc:
            msg = f"Driver {self.dialect.driver_name!r} is not installed"
            raise DatabaseConnectionError(msg) from exc

        try:
            conn = self._open(driver)
        except driver.Error as exc:
            logger.error("Cannot connect to %s", self.settings.masked_url)
            msg = f"Cannot connect to {self.settings.masked_url}: {exc}"
            raise DatabaseConnectionError(msg) from exc
        logger.debug("Opened connection to %s", self.settings.masked_url)
        return conn

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """接続を貸し出し、全ての終了経路で閉じるコンテキストマネージャ.

        close() 自体の失敗はログに残し、元の例外を隠さない。
        """
        conn = self.connect()
        try:
            yield conn
        finally:
            try:
                conn.close()
            except Exception:
                logger.warning("Failed to close connection to %s", self.settings.masked_url, exc_info=True)
            else:
                logger.debug("Closed connection to %s", self.settings.masked_url)

    def _open(self, driver: Any) -> Any:
        settings = self.settings
        match self.dialect:
            case Dialect.SQLITE:
                # isolation_level=None: 自動コミット。手動トランザクションは BEGIN で開始する
                return driver.connect(
                    settings.database,
                    timeout=settings.connect_timeout,
                    isolation_level=None,
                )
            case Dialect.POSTGRESQL:
                return driver.connect(
                    host=settings.host,
                    port=settings.port,
                    dbname=settings.database,
                    user=settings.username,
                    password=settings.secret,
                    connect_timeout=settings.connect_timeout,
                    autocommit=True,
                )
            case Dialect.MYSQL:
                return driver.connect(
                    host=settings.host or "localhost",
                    port=settings.port or 3306,
                    database=settings.database,
                    user=settings.username,
                    password=settings.secret or "",
                    connect_timeout=settings.connect_timeout,
                    autocommit=True,
                )
