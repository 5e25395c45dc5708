# sqld/query/compiler.py
"""
Turn a request's path and query string into parameterized SQL.

Every builder returns `(sql, args)` where `args` lines up positionally with
the placeholders in `sql`. Placeholders are written as `?` and rendered by
the context's placeholder style just before returning, so the same compiled
statement works against sqlite (`?`), pymysql/psycopg (`%s`) or `$n` drivers.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qsl

from sqld.errors import bad_request
from sqld.query.clauses import (
    LIMIT_KEY,
    OFFSET_KEY,
    ORDER_BY_KEY,
    RESERVED_KEYS,
    In,
    Limit,
    Offset,
    OrderBy,
    QuerySpec,
    parse_count,
    parse_order_tokens,
)
from sqld.query.placeholders import Placeholder

logger = logging.getLogger(__name__)

QueryInput = Union[str, Iterable[Tuple[str, str]], None]


def split_resource(resource: str) -> Tuple[str, Optional[str]]:
    """`user/10` -> ("user", "10"); `user` or `user/` -> ("user", None)."""
    parts = (resource or "").lstrip("/").split("/")
    table = parts[0]
    key = parts[1] if len(parts) > 1 and parts[1] else None
    return table, key


def group_query(query: QueryInput) -> Dict[str, List[str]]:
    """Collect query parameters into key -> values, keeping first-seen key order."""
    if query is None:
        items: Iterable[Tuple[str, str]] = []
    elif isinstance(query, str):
        items = parse_qsl(query.lstrip("?"), keep_blank_values=True)
    else:
        items = query

    grouped: Dict[str, List[str]] = {}
    for key, val in items:
        grouped.setdefault(key, []).append(val)
    return grouped


def parse_request(
    resource: str, query: QueryInput = None, *, select: bool = True
) -> QuerySpec:
    """
    Build the QuerySpec for one request.

    `select=False` is used for UPDATE/DELETE, where only `__limit__` applies
    and `__offset__` / `__order_by__` are dropped rather than compiled.
    """
    table, key = split_resource(resource)
    if not table:
        raise bad_request("missing table name in path")

    params = group_query(query)
    filters = tuple(
        In(col, tuple(vals)) for col, vals in params.items() if col not in RESERVED_KEYS
    )

    limit = offset = order_by = None
    count = parse_count(params[LIMIT_KEY][0]) if LIMIT_KEY in params else None
    if count is not None:
        limit = Limit(count)

    if select:
        count = parse_count(params[OFFSET_KEY][0]) if OFFSET_KEY in params else None
        if count is not None:
            offset = Offset(count)
        if ORDER_BY_KEY in params:
            try:
                tokens = parse_order_tokens(params[ORDER_BY_KEY])
            except ValueError as e:
                raise bad_request(e) from e
            if tokens:
                order_by = OrderBy(tokens)

    return QuerySpec(
        table=table,
        key=key,
        filters=filters,
        limit=limit,
        offset=offset,
        order_by=order_by,
    )


def _placeholder(ctx: Any) -> Placeholder:
    return getattr(ctx, "placeholder", None) or Placeholder.QUESTION


def _where(spec: QuerySpec, parts: List[str], args: List[Any]) -> None:
    preds = spec.predicates()
    if not preds:
        return
    sqls = []
    for pred in preds:
        sql, vals = pred.to_sql()
        sqls.append(sql)
        args.extend(vals)
    parts.append("WHERE " + " AND ".join(sqls))


def _finish(ctx: Any, parts: Sequence[str], args: List[Any]) -> Tuple[str, List[Any]]:
    sql = _placeholder(ctx).replace(" ".join(parts))
    logger.debug("compiled %s args=%r", sql, args)
    return sql, args


def build_select_query(ctx: Any, spec: QuerySpec) -> Tuple[str, List[Any]]:
    parts = [f"SELECT * FROM {spec.table}"]
    args: List[Any] = []
    _where(spec, parts, args)
    if spec.order_by:
        parts.append(spec.order_by.to_sql())
    if spec.limit:
        parts.append(spec.limit.to_sql())
    if spec.offset:
        parts.append(spec.offset.to_sql())
    return _finish(ctx, parts, args)


def build_update_query(
    ctx: Any, spec: QuerySpec, values: Mapping[str, Any]
) -> Tuple[str, List[Any]]:
    if not values:
        raise bad_request("update statements must have at least one Set clause")

    args: List[Any] = list(values.values())
    sets = ", ".join(f"{col} = ?" for col in values)
    parts = [f"UPDATE {spec.table} SET {sets}"]
    _where(spec, parts, args)
    if spec.limit:
        parts.append(spec.limit.to_sql())
    return _finish(ctx, parts, args)


def build_delete_query(ctx: Any, spec: QuerySpec) -> Tuple[str, List[Any]]:
    parts = [f"DELETE FROM {spec.table}"]
    args: List[Any] = []
    _where(spec, parts, args)
    if spec.limit:
        parts.append(spec.limit.to_sql())
    return _finish(ctx, parts, args)


def build_insert_query(
    ctx: Any, table: str, item: Mapping[str, Any]
) -> Tuple[str, List[Any]]:
    if not table:
        raise bad_request("missing table name in path")
    if not item:
        raise bad_request("insert statements must have at least one set of values")

    columns = list(item.keys())
    args: List[Any] = [item[c] for c in columns]
    marks = ", ".join("?" for _ in columns)
    parts = [f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({marks})"]
    return _finish(ctx, parts, args)
