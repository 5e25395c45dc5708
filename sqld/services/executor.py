# sqld/services/executor.py
"""
Run compiled statements and turn driver rows into JSON-ready dicts.

Reads go through `Engine.connect()`; writes through `Engine.begin()` so they
commit on success and roll back on error. Statements are passed with
`exec_driver_sql`, i.e. already rendered in the driver's own placeholder
style.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from sqld.errors import bad_request, not_found
from sqld.query.compiler import build_insert_query

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

# Binding errors some drivers raise without SQLAlchemy wrapping them, e.g.
# sqlite3 refusing an int wider than 64 bits.
EXECUTION_ERRORS = (SQLAlchemyError, OverflowError, TypeError, ValueError)


def _params(args: Optional[Sequence[Any]]) -> Optional[Tuple[Any, ...]]:
    return tuple(args) if args else None


def coerce_value(value: Any) -> Any:
    """Byte strings become text; everything else is returned as scanned."""
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def marshal_rows(columns: Sequence[str], records: Iterable[Sequence[Any]]) -> List[Row]:
    table_data: List[Row] = []
    for record in records:
        table_data.append(
            {col: coerce_value(val) for col, val in zip(columns, record)}
        )
    return table_data


def read_query(ctx: Any, sql: str, args: Optional[Sequence[Any]] = None) -> List[Row]:
    """Run a SELECT and return its rows in database order."""
    logger.debug("read %s args=%r", sql, args)
    with ctx.db.connect() as conn:
        result = conn.exec_driver_sql(sql, _params(args))
        if not result.returns_rows:
            return []
        columns = list(result.keys())
        return marshal_rows(columns, result)


def exec_write(
    ctx: Any, sql: str, args: Optional[Sequence[Any]] = None
) -> Tuple[int, Optional[int]]:
    """Run one write statement and return (rows_affected, last_insert_id)."""
    logger.debug("write %s args=%r", sql, args)
    with ctx.db.begin() as conn:
        result = conn.exec_driver_sql(sql, _params(args))
        return result.rowcount, result.lastrowid


def exec_query(ctx: Any, sql: str, args: Optional[Sequence[Any]] = None) -> None:
    """
    Run an UPDATE/DELETE.

    Any execution failure is a 400; a statement that touched no rows is a 404
    so callers can tell "nothing matched" apart from success.
    """
    logger.debug("exec %s args=%r", sql, args)
    try:
        with ctx.db.begin() as conn:
            result = conn.exec_driver_sql(sql, _params(args))
            try:
                rows = result.rowcount
            except SQLAlchemyError as e:
                raise bad_request(e) from e
    except EXECUTION_ERRORS as e:
        raise bad_request(e) from e

    if rows == 0:
        raise not_found("no rows matched")


def create_single(ctx: Any, table: str, item: Mapping[str, Any]) -> Row:
    """Insert one row and return it with the generated `id` merged in."""
    sql, args = build_insert_query(ctx, table, item)
    _rows, new_id = exec_write(ctx, sql, args)
    saved = dict(item)
    saved["id"] = new_id
    return saved
