"""QueryBuilder: 動的な WHERE / ORDER BY / LIMIT の組み立て."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlusers.parser import ParsedSQL

if TYPE_CHECKING:
    from sqlusers.dialect import Dialect
    from sqlusers.models import UserQuery

# 検索で使えるカラム. 呼び出し側の文字列を SQL に埋め込まないための許可リスト
FILTER_COLUMNS = ("department", "role", "active")
NEWEST_FIRST = ("created_at DESC", "id DESC")


class QueryBuilder:
    """SQL 断片とバインド値を同じ順序で積み上げるビルダー.

    プレースホルダを追加するメソッドは必ず同時に値も追加するため、
    SQL 中のプレースホルダの順番とパラメータリストの順番が常に一致する。

    Examples:
        >>> builder = QueryBuilder("SELECT * FROM users WHERE 1 = 1", Dialect.SQLITE)
        >>> _ = builder.where_equals("department", "Sales").order_by("id").paginate(10, 0)
        >>> builder.build().sql
        'SELECT * FROM users WHERE 1 = 1 AND department = ? ORDER BY id LIMIT ? OFFSET ?'

    """

    def __init__(self, base_sql: str, dialect: Dialect, *, source: str = "") -> None:
        self._fragments: list[str] = [base_sql.strip()]
        self._params: list[Any] = []
        self._dialect = dialect
        self._source = source
        self._ordered = False
        self._paginated = False

    def where_equals(self, column: str, value: Any) -> QueryBuilder:
        """``AND column = ?`` を追加する. value が None の場合は何もしない."""
        if column not in FILTER_COLUMNS:
            msg = f"Column {column!r} cannot be used as a filter"
            raise ValueError(msg)
        if value is None:
            return self
        self._fragments.append(f"AND {column} = {self._dialect.placeholder}")
        self._params.append(self._dialect.adapt(value))
        return self

    def order_by(self, *terms: str) -> QueryBuilder:
        """ORDER BY 句を追加する. terms はコード内の定数のみを渡すこと."""
        if self._ordered:
            msg = "ORDER BY has already been added"
            raise ValueError(msg)
        if self._paginated:
            msg = "ORDER BY must come before LIMIT/OFFSET"
            raise ValueError(msg)
        self._fragments.append("ORDER BY " + ", ".join(terms))
        self._ordered = True
        return self

    def paginate(self, limit: int, offset: int) -> QueryBuilder:
        """``LIMIT ? OFFSET ?`` を追加する（limit, offset の順でバインド）."""
        if self._paginated:
            msg = "LIMIT/OFFSET has already been added"
            raise ValueError(msg)
        placeholder = self._dialect.placeholder
        self._fragments.append(f"LIMIT {placeholder} OFFSET {placeholder}")
        self._params.extend([limit, offset])
        self._paginated = True
        return self

    def build(self) -> ParsedSQL:
        """組み立てた SQL とパラメータを返す."""
        return ParsedSQL(sql=" ".join(self._fragments), params=list(self._params), source=self._source)


def build_search(base_sql: str, query: UserQuery, dialect: Dialect, *, source: str = "") -> ParsedSQL:
    """検索条件から SELECT を組み立てる.

    department, role, active の固定順で存在する条件だけを追加し、
    条件がなくても並び順とページングは必ず付ける。
    """
    builder = QueryBuilder(base_sql, dialect, source=source)
    builder.where_equals("department", query.department)
    builder.where_equals("role", query.role)
    builder.where_equals("active", query.active)
    return builder.order_by(*NEWEST_FIRST).paginate(query.limit, query.offset).build()
