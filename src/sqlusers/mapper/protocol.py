"""行マッパーの共通インターフェース."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class RowMapper(Protocol[T_co]):
    """カーソルの行辞書をモデルに変換するマッパー.

    ドライバによってカラム名の大文字小文字が異なるため、
    実装はキーを ``lower_keys`` で正規化してから読むこと。
    """

    def map_row(self, row: dict[str, Any]) -> T_co: ...

    def map_rows(self, rows: list[dict[str, Any]]) -> list[T_co]: ...


def lower_keys(row: dict[str, Any]) -> dict[str, Any]:
    """カラム名を小文字にそろえた行を返す."""
    return {key.lower(): value for key, value in row.items()}
