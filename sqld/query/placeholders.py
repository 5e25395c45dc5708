# sqld/query/placeholders.py
from __future__ import annotations

from enum import Enum


class Placeholder(str, Enum):
    """
    Positional placeholder styles.

    The compiler always writes `?` markers; a Placeholder renders them for
    the active driver:
      QUESTION -> ?      (sqlite3, qmark drivers)
      DOLLAR   -> $1, $2 (numeric_dollar drivers)
      FORMAT   -> %s     (pymysql, psycopg)
      COLON    -> :1, :2 (numeric drivers)
    A literal question mark is written as `??`.
    """

    QUESTION = "question"
    DOLLAR = "dollar"
    FORMAT = "format"
    COLON = "colon"

    def replace(self, sql: str) -> str:
        if self is Placeholder.QUESTION:
            return sql.replace("??", "?")

        out: list[str] = []
        n = 0
        i = 0
        while i < len(sql):
            ch = sql[i]
            if ch != "?":
                out.append(ch)
                i += 1
                continue
            if sql.startswith("??", i):
                out.append("?")
                i += 2
                continue
            n += 1
            out.append(self._marker(n))
            i += 1
        return "".join(out)

    def _marker(self, n: int) -> str:
        if self is Placeholder.DOLLAR:
            return f"${n}"
        if self is Placeholder.COLON:
            return f":{n}"
        return "%s"

    @classmethod
    def for_paramstyle(cls, paramstyle: str | None) -> "Placeholder":
        """Map a DB-API 2.0 `paramstyle` onto a positional style."""
        style = (paramstyle or "qmark").strip().lower()
        if style == "qmark":
            return cls.QUESTION
        if style in ("format", "pyformat"):
            return cls.FORMAT
        if style == "numeric_dollar":
            return cls.DOLLAR
        if style == "numeric":
            return cls.COLON
        raise ValueError(f"unsupported paramstyle '{paramstyle}'")
