"""sqlusers 例外クラス."""

from __future__ import annotations


class SqlUsersError(Exception):
    """sqlusers の基底例外."""


class DatabaseConnectionError(SqlUsersError):
    """接続できない（到達不能・認証失敗・ドライバ未インストール）."""


class ValidationError(SqlUsersError):
    """DB に到達する前の制約違反."""


class DuplicateEmailError(SqlUsersError):
    """email の一意制約違反."""


class NotFoundError(SqlUsersError):
    """対象のエンティティまたはテーブルが存在しない."""


class InsertError(SqlUsersError):
    """INSERT が行を追加しなかった、または ID が生成されなかった."""


class QueryError(SqlUsersError):
    """分類済みのその他の DB エラー."""


class SqlParseError(SqlUsersError):
    """SQL のバインドパラメータ解決エラー."""


class SqlFileNotFoundError(SqlUsersError):
    """SQL ファイルが見つからない."""


class MappingError(SqlUsersError):
    """マッピングエラー."""


class TransactionError(SqlUsersError):
    """トランザクション内の失敗.

    元の例外を ``cause`` に、ロールバック自体が失敗した場合はその例外を
    ``rollback_error`` に保持する。

    Attributes:
        cause: トランザクションを中断させた元の例外
        rollback_error: ロールバック失敗時の例外（成功時は None）

    """

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        rollback_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.rollback_error = rollback_error
