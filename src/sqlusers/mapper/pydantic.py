"""PydanticMapper: カタログ行を pydantic モデルへ変換する."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

import pydantic

from sqlusers.exceptions import MappingError
from sqlusers.mapper.protocol import lower_keys

M = TypeVar("M", bound=pydantic.BaseModel)


class PydanticMapper(Generic[M]):
    """行辞書を pydantic モデルで検証して変換する.

    カタログのカラム名はドライバによって大文字で返るため小文字にそろえ、
    モデル側のエイリアス（例: ``column_name``）で受け取る。

    Examples:
        >>> PydanticMapper(ColumnDescriptor).map_row(
        ...     {"COLUMN_NAME": "id", "TYPE_NAME": "INTEGER", "IS_NULLABLE": "NO"}
        ... ).name
        'id'

    """

    def __init__(self, model: type[M]) -> None:
        self.model = model

    def map_row(self, row: dict[str, Any]) -> M:
        """1行をモデルに変換する.

        Raises:
            MappingError: 行がモデルの制約を満たさない場合

        """
        try:
            return self.model.model_validate(lower_keys(row))
        except pydantic.ValidationError as exc:
            fields = ", ".join(sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]}))
            msg = f"Cannot map row to {self.model.__name__}: invalid {fields or 'row'}"
            raise MappingError(msg) from exc

    def map_rows(self, rows: list[dict[str, Any]]) -> list[M]:
        return [self.map_row(row) for row in rows]
