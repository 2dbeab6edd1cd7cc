"""sqlusers: SQL-first user data access layer for Python."""

from sqlusers.config import DatabaseSettings
from sqlusers.connection import ConnectionProvider
from sqlusers.dialect import Dialect
from sqlusers.exceptions import (
    DatabaseConnectionError,
    DuplicateEmailError,
    InsertError,
    MappingError,
    NotFoundError,
    QueryError,
    SqlFileNotFoundError,
    SqlParseError,
    SqlUsersError,
    TransactionError,
    ValidationError,
)
from sqlusers.loader import SqlLoader
from sqlusers.mapper import PydanticMapper, RowMapper, UserMapper
from sqlusers.models import (
    EXECUTE_FAILED,
    BatchResult,
    ColumnDescriptor,
    DatabaseInfo,
    User,
    UserCreate,
    UserQuery,
    UserUpdate,
)
from sqlusers.parser import ParsedSQL, parse_sql
from sqlusers.service import DatabaseUserService

__all__ = [
    "EXECUTE_FAILED",
    "BatchResult",
    "ColumnDescriptor",
    "ConnectionProvider",
    "DatabaseConnectionError",
    "DatabaseInfo",
    "DatabaseSettings",
    "DatabaseUserService",
    "Dialect",
    "DuplicateEmailError",
    "InsertError",
    "MappingError",
    "NotFoundError",
    "ParsedSQL",
    "PydanticMapper",
    "QueryError",
    "RowMapper",
    "SqlFileNotFoundError",
    "SqlLoader",
    "SqlParseError",
    "SqlUsersError",
    "TransactionError",
    "User",
    "UserCreate",
    "UserMapper",
    "UserQuery",
    "UserUpdate",
    "ValidationError",
    "parse_sql",
]
