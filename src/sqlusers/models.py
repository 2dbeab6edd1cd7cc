"""ドメインモデルと入力ドキュメント."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

_TOUCHING_FIELDS = frozenset({"name", "email", "department", "role", "active"})

EXECUTE_FAILED = -3
"""バッチ内で失敗したレコードの結果値."""


def _now() -> datetime:
    return datetime.now()


@dataclass(eq=False)
class User:
    """ユーザー（永続化される唯一のエンティティ）.

    - 同一性は ``id`` と ``email`` の組で判定する。
    - 生成後に ``name`` / ``email`` / ``department`` / ``role`` / ``active`` を
      代入すると ``updated_at`` が現在時刻に更新される。
    """

    id: int | None = None
    name: str = ""
    email: str = ""
    department: str = ""
    role: str = ""
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        # __init__ 中は updated_at がまだ設定されていないので更新しない
        if name in _TOUCHING_FIELDS and "updated_at" in self.__dict__:
            super().__setattr__("updated_at", _now())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self.id == other.id and self.email == other.email

    def __hash__(self) -> int:
        return hash((self.id, self.email))


class UserCreate(BaseModel):
    """ユーザー作成ドキュメント."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    department: str = Field(min_length=1)
    role: str = Field(min_length=1)


class UserUpdate(BaseModel):
    """部分更新ドキュメント. 明示的に指定されたフィールドだけがマージされる."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: EmailStr | None = None
    department: str | None = Field(default=None, min_length=1)
    role: str | None = Field(default=None, min_length=1)
    active: bool | None = None

    def changes(self) -> dict[str, Any]:
        """指定されたフィールドのうち None でないものを返す."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}

    def apply_to(self, user: User) -> User:
        """既存ユーザーに変更をマージする."""
        for key, value in self.changes().items():
            setattr(user, key, value)
        return user


class UserQuery(BaseModel):
    """検索条件とページング."""

    department: str | None = None
    role: str | None = None
    active: bool | None = None
    limit: int = Field(default=10, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)


class ColumnDescriptor(BaseModel):
    """カタログから取得したカラム情報."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(alias="column_name")
    type: str = Field(alias="type_name")
    size: int | None = Field(default=None, alias="column_size")
    nullable: bool = Field(alias="is_nullable")
    default: str | None = Field(default=None, alias="column_def")


@dataclass(frozen=True)
class DatabaseInfo:
    """データベースの識別情報と機能.

    機能フラグはカタログから問い合わせた値で、既定値は行に列がない場合にだけ使う。
    """

    product_name: str
    product_version: str
    driver_name: str
    driver_version: str
    url: str
    user: str | None
    database: str
    max_connections: int = 0
    read_only: bool = False
    supports_batch_updates: bool = True
    supports_transactions: bool = True

    def as_dict(self) -> dict[str, str]:
        """接続情報を文字列のマップで返す."""
        return {
            "url": self.url,
            "user": self.user or "",
            "database": self.database,
            "product_name": self.product_name,
            "product_version": self.product_version,
            "driver_name": self.driver_name,
            "driver_version": self.driver_version,
            "max_connections": str(self.max_connections),
            "read_only": str(self.read_only).lower(),
            "supports_batch_updates": str(self.supports_batch_updates).lower(),
            "supports_transactions": str(self.supports_transactions).lower(),
        }

    def report(self) -> str:
        """人が読むための複数行レポート."""
        return "\n".join(
            [
                f"Database: {self.product_name} {self.product_version}",
                f"Driver: {self.driver_name} {self.driver_version}",
                f"URL: {self.url}",
                f"User: {self.user or '-'}",
                f"Max connections: {self.max_connections or 'unlimited'}",
                f"Supports batch updates: {self.supports_batch_updates}",
                f"Supports transactions: {self.supports_transactions}",
            ]
        )


@dataclass
class BatchResult:
    """バッチ実行結果. レコードごとの影響行数、失敗時は ``EXECUTE_FAILED``."""

    counts: list[int] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for c in self.counts if c > 0)
