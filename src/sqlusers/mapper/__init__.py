"""sqlusers マッパーパッケージ."""

from sqlusers.mapper.protocol import RowMapper
from sqlusers.mapper.pydantic import PydanticMapper
from sqlusers.mapper.user import UserMapper

__all__ = ["PydanticMapper", "RowMapper", "UserMapper"]
