"""TransactionCoordinator: 手動トランザクション制御."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlusers.exceptions import TransactionError

if TYPE_CHECKING:
    from sqlusers.connection import ConnectionProvider
    from sqlusers.dialect import Dialect

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    """トランザクションの状態."""

    AUTO_COMMIT = "auto_commit"
    MANUAL = "manual"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Transaction:
    """1回のトランザクションの状態を持つ.

    状態遷移: ``AUTO_COMMIT -> MANUAL -> (COMMITTED | ROLLED_BACK) -> AUTO_COMMIT``
    """

    def __init__(self, connection: Any, dialect: Dialect) -> None:
        self.connection = connection
        self._dialect = dialect
        self.state = TransactionState.AUTO_COMMIT

    def begin(self) -> None:
        self._dialect.set_autocommit(self.connection, False)
        self.state = TransactionState.MANUAL

    def commit(self) -> None:
        self.connection.commit()
        self.state = TransactionState.COMMITTED

    def rollback(self) -> Exception | None:
        """ロールバックする. 失敗した場合はその例外を返す."""
        if self.state is not TransactionState.MANUAL:
            # 手動モードに入る前の失敗: 取り消す書き込みはない
            return None
        try:
            self.connection.rollback()
        except Exception as exc:
            logger.critical("Rollback failed, connection state is unknown", exc_info=True)
            return exc
        self.state = TransactionState.ROLLED_BACK
        logger.warning("Transaction rolled back")
        return None

    def restore(self) -> None:
        """自動コミットに戻す. 失敗はログで報告し、元の例外を隠さない."""
        try:
            self._dialect.set_autocommit(self.connection, True)
        except Exception:
            logger.warning("Failed to restore autocommit", exc_info=True)
        finally:
            self.state = TransactionState.AUTO_COMMIT


class TransactionCoordinator:
    """複数の書き込みを1つの接続上で原子的に実行する.

    Examples:
        >>> coordinator = TransactionCoordinator(provider)
        >>> with coordinator.atomic() as conn:
        ...     executor = QueryExecutor(conn, provider.dialect)
        ...     executor.execute(statement)
        # 正常終了 → commit
        # 例外発生 → rollback して TransactionError

    """

    def __init__(self, provider: ConnectionProvider) -> None:
        self._provider = provider

    @contextmanager
    def atomic(self) -> Iterator[Any]:
        """接続を専有してトランザクションを実行するコンテキストマネージャ.

        - 正常終了: commit
        - 例外発生: rollback し、元の例外を包んだ TransactionError を送出する。
          rollback 自体が失敗した場合は ``rollback_error`` に保持する。
        - 終了時: 自動コミットの復元と接続の解放を、どの経路でも1回だけ行う。

        Raises:
            TransactionError: 本体、commit、手動モードへの切り替えのいずれかが失敗した場合

        """
        with self._provider.acquire() as conn:
            tx = Transaction(conn, self._provider.dialect)
            try:
                tx.begin()
                yield conn
                tx.commit()
            except Exception as exc:
                rollback_error = tx.rollback()
                msg = f"Transaction rolled back: {exc}"
                if rollback_error is not None:
                    msg = f"Transaction failed and rollback also failed: {exc} / {rollback_error}"
                raise TransactionError(msg, cause=exc, rollback_error=rollback_error) from exc
            finally:
                tx.restore()
