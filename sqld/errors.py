# sqld/errors.py
from __future__ import annotations

from typing import Any

from sqlalchemy.exc import DBAPIError


class SqldError(Exception):
    """A failure that already knows which HTTP status it maps to."""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"SqldError(code={self.code}, message={self.message!r})"


def error_message(err: Any) -> str:
    """Underlying failure text, without SQLAlchemy's statement echo."""
    if err is None:
        return ""
    if isinstance(err, DBAPIError) and err.orig is not None:
        return str(err.orig)
    return str(err)


def new_error(err: Any, code: int) -> SqldError:
    if isinstance(err, SqldError):
        return err
    return SqldError(code, error_message(err))


def bad_request(err: Any = None) -> SqldError:
    return new_error(err, 400)


def not_found(err: Any = None) -> SqldError:
    return new_error(err, 404)


def method_not_allowed(err: Any = None) -> SqldError:
    return new_error(err, 405)


def internal_error(err: Any = None) -> SqldError:
    return new_error(err, 500)
