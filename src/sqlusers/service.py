"""DatabaseUserService: users テーブルに対する公開操作."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any, TypeVar

import pydantic

from sqlusers.builder import build_search
from sqlusers.config import DatabaseSettings
from sqlusers.connection import ConnectionProvider
from sqlusers.exceptions import DatabaseConnectionError, NotFoundError, QueryError, ValidationError
from sqlusers.executor import QueryExecutor
from sqlusers.loader import SqlLoader
from sqlusers.mapper import UserMapper
from sqlusers.mapper.protocol import lower_keys
from sqlusers.metadata import MetadataInspector
from sqlusers.models import (
    EXECUTE_FAILED,
    BatchResult,
    ColumnDescriptor,
    User,
    UserCreate,
    UserQuery,
    UserUpdate,
)
from sqlusers.transaction import TransactionCoordinator

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=pydantic.BaseModel)


def _validate(model: type[M], data: M | Mapping[str, Any]) -> M:
    """入力ドキュメントを検証する. pydantic の例外は ValidationError に変換する."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'value'}: {error['msg']}"
            for error in exc.errors()
        )
        msg = f"Invalid {model.__name__}: {details}"
        raise ValidationError(msg) from exc


def _check_record(user: User) -> UserCreate:
    """一括登録用の User を作成ドキュメントと同じ規則で検証する."""
    return _validate(
        UserCreate,
        {"name": user.name, "email": user.email, "department": user.department, "role": user.role},
    )


class DatabaseUserService:
    """ユーザーのデータアクセス操作.

    各操作は接続を取得し、SQL を組み立てて実行し、行を User に変換して、
    どの終了経路でも接続を解放する。複数の書き込みを原子的に行う操作は
    TransactionCoordinator が接続を専有する。

    Examples:
        >>> service = DatabaseUserService(DatabaseSettings("sqlite:///app.db"))
        >>> user = service.create_user({"name": "Ana", "email": "ana@example.com",
        ...                             "department": "Engineering", "role": "Developer"})
        >>> service.find_by_id(user.id) == user
        True

    """

    def __init__(
        self,
        settings: DatabaseSettings | None = None,
        *,
        provider: ConnectionProvider | None = None,
        loader: SqlLoader | None = None,
    ) -> None:
        self._provider = provider if provider is not None else ConnectionProvider(settings)
        self._settings = self._provider.settings
        self._loader = loader if loader is not None else SqlLoader()
        self._transactions = TransactionCoordinator(self._provider)
        self._users = UserMapper()

    @contextmanager
    def _session(self) -> Iterator[QueryExecutor]:
        with self._provider.acquire() as conn:
            yield QueryExecutor(conn, self._provider.dialect, self._loader)

    # --- 接続 ---

    def test_connection(self) -> str:
        """``SELECT 1`` で接続を確認し、状態文字列を返す.

        Raises:
            DatabaseConnectionError: 接続または確認クエリが失敗した場合

        """
        try:
            with self._session() as executor:
                inspector = MetadataInspector(executor, self._settings)
                test = inspector.ping()
                info = inspector.describe()
        except QueryError as exc:
            msg = f"Connection check failed: {exc}"
            raise DatabaseConnectionError(msg) from exc
        return (
            f"Connection OK: {info.product_name} {info.product_version}"
            f" | database: {info.database} | test: {test}"
        )

    def connection_info(self) -> dict[str, str]:
        """接続に関する情報を文字列のマップで返す."""
        try:
            with self._session() as executor:
                info = MetadataInspector(executor, self._settings).describe()
        except QueryError as exc:
            msg = f"Cannot read connection metadata: {exc}"
            raise DatabaseConnectionError(msg) from exc
        return info.as_dict()

    # --- CRUD ---

    def create_user(self, data: UserCreate | Mapping[str, Any]) -> User:
        """ユーザーを登録し、採番された ID を持つ User を返す.

        Raises:
            ValidationError: 入力が制約を満たさない場合
            DuplicateEmailError: email が登録済みの場合
            InsertError: 行が追加されなかった、または ID が生成されなかった場合

        """
        document = _validate(UserCreate, data)
        now = datetime.now()
        user = User(
            name=document.name,
            email=document.email,
            department=document.department,
            role=document.role,
            active=True,
            created_at=now,
            updated_at=now,
        )
        with self._session() as executor:
            statement = executor.prepare("users/insert.sql", UserMapper.to_params(user, now=now))
            user.id = executor.insert_returning_id(statement)
        logger.info("Created user %s", user.id)
        return user

    def find_by_id(self, user_id: int) -> User | None:
        with self._session() as executor:
            row = executor.query_one(executor.prepare("users/find_by_id.sql", {"id": user_id}))
        return self._users.map_row(row) if row is not None else None

    def update_user(self, user_id: int, data: UserUpdate | Mapping[str, Any]) -> User:
        """既存ユーザーに部分更新をマージし、updated_at を書き換える.

        指定されなかったフィールドは元の値を保つ。

        Raises:
            NotFoundError: ユーザーが存在しない場合
            ValidationError: 入力が制約を満たさない場合
            DuplicateEmailError: 変更後の email が他のユーザーと重複する場合

        """
        changes = _validate(UserUpdate, data)
        with self._session() as executor:
            find = executor.prepare("users/find_by_id.sql", {"id": user_id})
            row = executor.query_one(find)
            if row is None:
                msg = f"User {user_id} does not exist"
                raise NotFoundError(msg)
            user = changes.apply_to(self._users.map_row(row))
            user.updated_at = datetime.now()
            affected = executor.execute(
                executor.prepare(
                    "users/update.sql",
                    {
                        "id": user_id,
                        "name": user.name,
                        "email": user.email,
                        "department": user.department,
                        "role": user.role,
                        "active": user.active,
                        "updated_at": user.updated_at,
                    },
                )
            )
            if affected == 0:
                msg = f"User {user_id} was deleted during update"
                raise NotFoundError(msg)
            updated = executor.query_one(find)
        if updated is None:
            msg = f"User {user_id} was deleted during update"
            raise NotFoundError(msg)
        logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(changes.changes())) or "no fields")
        return self._users.map_row(updated)

    def delete_user(self, user_id: int) -> bool:
        """ユーザーを削除し、行が存在したかを返す."""
        with self._session() as executor:
            affected = executor.execute(executor.prepare("users/delete.sql", {"id": user_id}))
        if affected > 1:
            logger.error("Deleting user %s removed %d rows", user_id, affected)
        return affected > 0

    def find_all(self) -> list[User]:
        """全ユーザーを新しい順に返す."""
        with self._session() as executor:
            rows = executor.query(executor.prepare("users/find_all.sql"))
        return self._users.map_rows(rows)

    # --- 検索 ---

    def find_by_department(self, department: str) -> list[User]:
        """部署の有効なユーザーを名前順に返す."""
        with self._session() as executor:
            statement = executor.prepare(
                "users/find_by_department.sql",
                {"department": department, "active": True},
            )
            rows = executor.query(statement)
        return self._users.map_rows(rows)

    def search(self, query: UserQuery | Mapping[str, Any] | None = None) -> list[User]:
        """任意の条件（department, role, active）とページングで検索する.

        Raises:
            ValidationError: limit / offset が範囲外の場合

        """
        criteria = _validate(UserQuery, query if query is not None else {})
        with self._session() as executor:
            base = executor.prepare("users/search.sql")
            statement = build_search(base.sql, criteria, executor.dialect, source=base.source)
            rows = executor.query(statement)
        return self._users.map_rows(rows)

    def paginate(self, offset: int, limit: int) -> list[User]:
        """新しい順に offset 件読み飛ばし、limit 件返す."""
        return self.search({"offset": offset, "limit": limit})

    # --- トランザクション ---

    def transfer_atomic(self, users: Sequence[User]) -> bool:
        """全ユーザーを1つのトランザクションで登録する.

        1件でも失敗すれば残りは実行せず、全件をロールバックする。
        成功した場合は渡された User に採番された ID を設定する。

        Raises:
            TransactionError: いずれかの登録、または commit が失敗した場合

        """
        now = datetime.now()
        generated: list[int] = []
        with self._transactions.atomic() as conn:
            executor = QueryExecutor(conn, self._provider.dialect, self._loader)
            for user in users:
                _check_record(user)
                statement = executor.prepare("users/insert.sql", UserMapper.to_params(user, now=now))
                generated.append(executor.insert_returning_id(statement))
        for user, user_id in zip(users, generated):
            user.id = user_id
        logger.info("Transferred %d users atomically", len(generated))
        return True

    def batch_insert_results(self, users: Sequence[User]) -> BatchResult:
        """ユーザーを一括登録し、レコードごとの結果を返す.

        検証に失敗したレコードは送信せず失敗扱いにする。一部の失敗は例外にしない。
        """
        counts = [EXECUTE_FAILED] * len(users)
        now = datetime.now()
        rows: list[dict[str, Any]] = []
        positions: list[int] = []
        for index, user in enumerate(users):
            try:
                _check_record(user)
            except ValidationError as exc:
                logger.warning("Skipping invalid batch record %d: %s", index, exc)
                continue
            rows.append(UserMapper.to_params(user, now=now))
            positions.append(index)

        if rows:
            with self._transactions.atomic() as conn:
                executor = QueryExecutor(conn, self._provider.dialect, self._loader)
                flushed = executor.execute_batch("users/batch_insert.sql", rows)
            for position, count in zip(positions, flushed):
                counts[position] = count

        result = BatchResult(counts)
        logger.info("Batch inserted %d of %d users", result.succeeded, len(users))
        return result

    def batch_insert(self, users: Sequence[User]) -> int:
        """ユーザーを一括登録し、成功した件数を返す."""
        return self.batch_insert_results(users).succeeded

    # --- メタデータ ---

    def database_info(self) -> str:
        """データベースの製品・ドライバ・機能のレポートを返す."""
        with self._session() as executor:
            info = MetadataInspector(executor, self._settings).describe()
        return info.report()

    def table_columns(self, table_name: str) -> list[ColumnDescriptor]:
        """テーブルのカラム情報を返す.

        Raises:
            NotFoundError: テーブルが存在しない場合

        """
        with self._session() as executor:
            return MetadataInspector(executor, self._settings).table_columns(table_name)

    def count_by_department(self, department: str) -> int:
        """部署の有効なユーザー数を返す."""
        with self._session() as executor:
            statement = executor.prepare(
                "users/count_by_department.sql",
                {"department": department, "active": True},
            )
            row = executor.query_one(statement)
        return int(lower_keys(row)["total"]) if row is not None else 0
