# sqld/services/batch.py
from __future__ import annotations

import logging
import threading
from typing import Any, List, Sequence, Tuple

from sqld.errors import error_message
from sqld.models.payloads import as_item
from sqld.services.executor import Row, create_single

logger = logging.getLogger(__name__)


def create_many(ctx: Any, table: str, items: Sequence[Any]) -> Tuple[List[Row], List[str]]:
    """
    Insert every item on its own thread and wait for all of them.

    Returns (created rows, error messages). Both lists are in completion
    order, not input order. A failing item never stops the others, and
    nothing is retried.
    """
    created: List[Row] = []
    errors: List[str] = []
    created_lock = threading.Lock()
    errors_lock = threading.Lock()

    def run(i: int, data: Any) -> None:
        try:
            item = as_item(data, what=f"item {i}")
            row = create_single(ctx, table, item)
        except Exception as e:
            # threads can't propagate; the failure is reported in `errors`
            logger.warning("batch insert into %s: item %d failed: %s", table, i, e)
            with errors_lock:
                errors.append(error_message(e))
            return
        with created_lock:
            created.append(row)

    threads = [
        threading.Thread(target=run, args=(i, data), name=f"sqld-batch-{i}", daemon=True)
        for i, data in enumerate(items)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    logger.info(
        "batch insert into %s: %d created, %d failed", table, len(created), len(errors)
    )
    return created, errors
