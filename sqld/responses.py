# sqld/responses.py
from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.responses import Response

from sqld.errors import SqldError


def error_response(err: SqldError) -> Response:
    return PlainTextResponse(err.message, status_code=err.code)


def render(status: int, payload: Any) -> Response:
    """No payload -> 204 with an empty body; otherwise JSON with `status`."""
    if payload is None:
        return Response(status_code=204)
    return JSONResponse(jsonable_encoder(payload), status_code=status)
