"""UserMapper: users テーブルの行と User の相互変換."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlusers.exceptions import MappingError
from sqlusers.mapper.dataclass import DataclassMapper
from sqlusers.mapper.protocol import lower_keys
from sqlusers.models import User

_TIMESTAMP_COLUMNS = ("created_at", "updated_at")


def to_datetime(value: Any) -> datetime | None:
    """タイムスタンプ値を datetime に正規化する. NULL は None のまま."""
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError as exc:
            msg = f"Invalid timestamp value: {value!r}"
            raise MappingError(msg) from exc
    msg = f"Unsupported timestamp type: {type(value).__name__}"
    raise MappingError(msg)


class UserMapper:
    """users テーブルの行 ⇔ User.

    SQLite はタイムスタンプを文字列、真偽値を整数で返すため、
    DataclassMapper に渡す前に正規化する。
    """

    def __init__(self) -> None:
        self._mapper = DataclassMapper(User)

    def map_row(self, row: dict[str, Any]) -> User:
        """1行を User に変換."""
        normalized = lower_keys(row)
        for column in _TIMESTAMP_COLUMNS:
            if column in normalized:
                normalized[column] = to_datetime(normalized[column])
        if normalized.get("active") is not None:
            normalized["active"] = bool(normalized["active"])
        return self._mapper.map_row(normalized)

    def map_rows(self, rows: list[dict[str, Any]]) -> list[User]:
        """複数行を User のリストに変換."""
        return [self.map_row(row) for row in rows]

    @staticmethod
    def to_params(user: User, *, now: datetime) -> dict[str, Any]:
        """User を INSERT 用のバインドパラメータに変換する.

        created_at が未設定なら now を使う。updated_at は常に now。
        """
        return {
            "name": user.name,
            "email": user.email,
            "department": user.department,
            "role": user.role,
            "active": True if user.active is None else bool(user.active),
            "created_at": user.created_at or now,
            "updated_at": now,
        }
