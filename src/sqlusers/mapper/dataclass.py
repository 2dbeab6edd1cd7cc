"""DataclassMapper: dataclass へのマッピング."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, ClassVar

from sqlusers.exceptions import MappingError
from sqlusers.mapper.protocol import lower_keys


class DataclassMapper:
    """行辞書を dataclass に変換する.

    カラム名は小文字に正規化してフィールド名と照合する。
    行に存在しないフィールドは dataclass のデフォルト値に任せる。
    """

    _fields_cache: ClassVar[dict[type, tuple[str, ...]]] = {}

    def __init__(self, entity_cls: type) -> None:
        if not is_dataclass(entity_cls):
            msg = f"{entity_cls} is not a dataclass"
            raise TypeError(msg)
        self.entity_cls = entity_cls
        self._fields = self._init_fields(entity_cls)

    @classmethod
    def _init_fields(cls, entity_cls: type) -> tuple[str, ...]:
        if entity_cls not in cls._fields_cache:
            cls._fields_cache[entity_cls] = tuple(f.name for f in fields(entity_cls) if f.init)
        return cls._fields_cache[entity_cls]

    def map_row(self, row: dict[str, Any]) -> Any:
        normalized = lower_keys(row)
        kwargs = {name: normalized[name.lower()] for name in self._fields if name.lower() in normalized}
        try:
            return self.entity_cls(**kwargs)
        except TypeError as exc:
            msg = f"Cannot map row to {self.entity_cls.__name__}: {exc}"
            raise MappingError(msg) from exc

    def map_rows(self, rows: list[dict[str, Any]]) -> list[Any]:
        return [self.map_row(row) for row in rows]
