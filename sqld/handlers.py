# sqld/handlers.py
"""
Method handlers and the dispatcher that picks between them.

Handlers take the shared Context plus the request pieces (table-relative
path, query items, raw body) and either return a payload or raise SqldError.
They never see the web framework, so they can run inside a worker thread.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from sqld.errors import SqldError, bad_request, internal_error, method_not_allowed
from sqld.models.payloads import as_item, decode_body
from sqld.query.compiler import (
    QueryInput,
    build_delete_query,
    build_select_query,
    build_update_query,
    parse_request,
)
from sqld.services.batch import create_many
from sqld.services.executor import (
    EXECUTION_ERRORS,
    create_single,
    exec_query,
    read_query,
)
from sqld.services.raw import raw

logger = logging.getLogger(__name__)

Body = Optional[bytes]


def read(ctx: Any, resource: str, query: QueryInput, body: Body = None) -> Any:
    """GET: rows matching the path and filters."""
    sql, args = build_select_query(ctx, parse_request(resource, query))
    try:
        return read_query(ctx, sql, args)
    except EXECUTION_ERRORS as e:
        raise internal_error(e) from e


def create(ctx: Any, resource: str, query: QueryInput, body: Body = None) -> Any:
    """
    POST: a JSON object inserts one row, a JSON array inserts each element
    concurrently. A batch with failures returns {"errors", "objects"}.
    """
    data = decode_body(body)
    table = parse_request(resource, None).table

    if isinstance(data, list):
        saved, errors = create_many(ctx, table, data)
        if not errors:
            return saved
        return {"errors": errors, "objects": saved}

    if isinstance(data, dict):
        item = as_item(data)
        try:
            return create_single(ctx, table, item)
        except SqldError:
            raise
        except EXECUTION_ERRORS as e:
            raise internal_error(e) from e

    raise bad_request("body must be a JSON object or array")


def update(ctx: Any, resource: str, query: QueryInput, body: Body = None) -> Any:
    """PUT: apply the body's columns to matching rows; 404 when none match."""
    values = as_item(decode_body(body))
    sql, args = build_update_query(
        ctx, parse_request(resource, query, select=False), values
    )
    return exec_query(ctx, sql, args)


def delete(ctx: Any, resource: str, query: QueryInput, body: Body = None) -> Any:
    """DELETE: remove matching rows; 404 when none match."""
    sql, args = build_delete_query(ctx, parse_request(resource, query, select=False))
    return exec_query(ctx, sql, args)


Handler = Callable[[Any, str, QueryInput, Body], Any]

HANDLERS: Dict[str, Tuple[Handler, int]] = {
    "GET": (read, 200),
    "POST": (create, 201),
    "PUT": (update, 204),
    "DELETE": (delete, 204),
}


def dispatch(
    ctx: Any, method: str, resource: str, query: QueryInput = None, body: Body = None
) -> Tuple[int, Any]:
    """
    Route one request. `resource` is the path below the root, e.g. `user/10`.

    Returns (status, payload) for success; the status is only a hint, a
    `None` payload is always rendered as 204.
    """
    method = method.upper()

    if not resource.strip("/"):
        if ctx.allow_raw and method == "POST":
            return 200, raw(ctx, body)
        if not ctx.allow_raw:
            raise bad_request("raw queries are disabled")
        raise bad_request("missing table name in path")

    entry = HANDLERS.get(method)
    if entry is None:
        raise method_not_allowed(f"method {method} not allowed")

    handler, status = entry
    return status, handler(ctx, resource, query, body)
