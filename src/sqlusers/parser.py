"""バインドコメント形式 SQL のパーサー.

SQL ファイル内のパラメータは ``/* name */ダミー値`` の形式で記述する。
ダミー値があるためファイル単体でもそのまま実行でき、
パース時にダミー値ごとドライバのプレースホルダへ置換される。

    SELECT * FROM users WHERE id = /* id */1
    -> SELECT * FROM users WHERE id = ?   params=[1]
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlusers.exceptions import SqlParseError

if TYPE_CHECKING:
    from sqlusers.dialect import Dialect

# /* name */'default' / /* name */123 / /* name */TRUE
PARAM_PATTERN = re.compile(
    r"/\*\s*(\w+)\s*\*/"
    r"("
    r"'[^']*'"  # 'string'
    r"|\d+(?:\.\d+)?"  # number
    r"|\w+"  # identifier / TRUE / NULL
    r")?"
)


@dataclass
class ParsedSQL:
    """パース結果."""

    sql: str
    params: list[Any] = field(default_factory=list)
    """プレースホルダの出現順に並んだバインド値."""

    source: str = ""
    """SQL の出所（ログ用。値は含めない）."""


def parse_sql(
    sql: str,
    params: dict[str, Any],
    *,
    dialect: Dialect,
    source: str = "",
) -> ParsedSQL:
    """バインドコメントをプレースホルダに置換し、値を出現順に並べる.

    Args:
        sql: SQL テンプレート
        params: パラメータ辞書
        dialect: RDBMS 方言（プレースホルダと値の変換を決める）
        source: ログ用の SQL 名

    Returns:
        パース結果

    Raises:
        SqlParseError: テンプレート中のパラメータが params に存在しない場合

    """
    bind_params: list[Any] = []

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in params:
            msg = f"Missing bind parameter {name!r} in {source or 'SQL'}"
            raise SqlParseError(msg)
        bind_params.append(dialect.adapt(params[name]))
        return dialect.placeholder

    rendered = PARAM_PATTERN.sub(_replace, sql)
    return ParsedSQL(sql=rendered.strip(), params=bind_params, source=source)
