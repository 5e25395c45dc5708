# sqld/services/raw.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

from sqld.errors import bad_request
from sqld.models.payloads import WriteSummary, parse_raw_query
from sqld.services.executor import EXECUTION_ERRORS, Row, exec_write, read_query

logger = logging.getLogger(__name__)


def raw(ctx: Any, body: Union[bytes, str, None]) -> Union[List[Row], Dict[str, Any]]:
    """
    Run caller-supplied SQL verbatim.

    `{"read": sql}` returns rows, `{"write": sql}` returns
    `{"last_insert_id", "rows_affected"}`. Setting neither or both is a 400,
    as is any failure while running the statement.
    """
    query = parse_raw_query(body)

    if query.read and query.write:
        raise bad_request("raw query must set only one of 'read' or 'write'")

    if query.read:
        logger.info("raw read: %s", query.read)
        try:
            return read_query(ctx, query.read)
        except EXECUTION_ERRORS as e:
            raise bad_request(e) from e

    if query.write:
        logger.info("raw write: %s", query.write)
        try:
            rows_affected, last_id = exec_write(ctx, query.write)
        except EXECUTION_ERRORS as e:
            raise bad_request(e) from e
        return WriteSummary(last_insert_id=last_id, rows_affected=rows_affected).model_dump()

    raise bad_request("raw query requires one of 'read' or 'write'")
