# sqld/query/clauses.py
"""
Value types for the pieces of a compiled statement.

Each clause renders itself to SQL text with `?` markers plus the matching
positional arguments. Nothing here touches a database or a placeholder
dialect.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

LIMIT_KEY = "__limit__"
OFFSET_KEY = "__offset__"
ORDER_BY_KEY = "__order_by__"
RESERVED_KEYS = frozenset({LIMIT_KEY, OFFSET_KEY, ORDER_BY_KEY})

_COUNT_RE = re.compile(r"^\d+$")
# Largest LIMIT/OFFSET the backends accept (signed 64-bit).
MAX_COUNT = 2**63 - 1
_ORDER_TOKEN_RE = re.compile(
    r"^(?P<col>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)"
    r"(?:\s+(?P<dir>asc|desc))?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Eq:
    column: str
    value: Any

    def to_sql(self) -> Tuple[str, List[Any]]:
        return f"{self.column} = ?", [self.value]


@dataclass(frozen=True)
class In:
    """Equality filter over one or more values; always rendered as an IN-list."""

    column: str
    values: Tuple[Any, ...]

    def to_sql(self) -> Tuple[str, List[Any]]:
        marks = ", ".join("?" for _ in self.values)
        return f"{self.column} IN ({marks})", list(self.values)


@dataclass(frozen=True)
class Limit:
    count: int

    def to_sql(self) -> str:
        return f"LIMIT {self.count}"


@dataclass(frozen=True)
class Offset:
    count: int

    def to_sql(self) -> str:
        return f"OFFSET {self.count}"


@dataclass(frozen=True)
class OrderBy:
    tokens: Tuple[str, ...]

    def to_sql(self) -> str:
        return "ORDER BY " + ", ".join(self.tokens)


@dataclass(frozen=True)
class QuerySpec:
    """Everything a request says about which rows it targets."""

    table: str
    key: Optional[str] = None
    filters: Tuple[In, ...] = field(default_factory=tuple)
    limit: Optional[Limit] = None
    offset: Optional[Offset] = None
    order_by: Optional[OrderBy] = None

    def predicates(self) -> List[Any]:
        preds: List[Any] = []
        if self.key:
            preds.append(Eq("id", self.key))
        preds.extend(self.filters)
        return preds


def parse_count(text: Optional[str]) -> Optional[int]:
    """Return a non-negative 64-bit integer, or None when the text isn't one."""
    if text is None:
        return None
    text = text.strip()
    if not _COUNT_RE.match(text):
        return None
    count = int(text)
    if count > MAX_COUNT:
        return None
    return count


def parse_order_tokens(values: Sequence[str]) -> Tuple[str, ...]:
    """
    Split and check `__order_by__` values.

    Each value may hold several comma-separated tokens; each token is a column
    name optionally followed by ASC or DESC.
    """
    tokens: List[str] = []
    for raw in values:
        for part in raw.split(","):
            part = " ".join(part.split())
            if not part:
                continue
            m = _ORDER_TOKEN_RE.match(part)
            if not m:
                raise ValueError(f"invalid order by token '{part}'")
            col, direction = m.group("col"), m.group("dir")
            tokens.append(f"{col} {direction.upper()}" if direction else col)
    return tuple(tokens)
