# sqld/models/payloads.py
from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from sqld.errors import bad_request

Scalar = Union[str, int, float, bool, None]
Item = Dict[str, Scalar]


class RawQuery(BaseModel):
    """Body of a raw passthrough request; exactly one field should be set."""

    model_config = ConfigDict(extra="ignore")

    read: Optional[str] = None
    write: Optional[str] = None


class WriteSummary(BaseModel):
    last_insert_id: Optional[int] = None
    rows_affected: int = 0


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON value")


def decode_body(body: bytes | str | None) -> Any:
    """Parse a JSON request body; any decode failure is a 400."""
    if body is None:
        body = b""
    try:
        return json.loads(body, parse_constant=_reject_constant)
    except (ValueError, UnicodeDecodeError) as e:
        raise bad_request(f"invalid JSON body: {e}") from e


def is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def as_item(data: Any, *, what: str = "body") -> Item:
    """Check that decoded JSON is a flat object of column -> scalar."""
    if not isinstance(data, dict):
        raise bad_request(f"{what} must be a JSON object")
    nested = [k for k, v in data.items() if not is_scalar(v)]
    if nested:
        raise bad_request(f"{what} has non-scalar values for columns {nested}")
    return data


def parse_raw_query(body: bytes | str | None) -> RawQuery:
    data = decode_body(body)
    if not isinstance(data, dict):
        raise bad_request("raw query body must be a JSON object")
    try:
        return RawQuery.model_validate(data)
    except ValidationError as e:
        raise bad_request(str(e)) from e
