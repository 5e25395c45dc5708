from __future__ import annotations
import json
import logging
import os
import time
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Per-request correlation ID
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # provide %(correlation_id)s to all formatters
        record.correlation_id = correlation_id_ctx.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
        }
        return json.dumps(payload, ensure_ascii=True)


_CONFIGURED = False


def _env_truthy(name: str, default: str = "true") -> bool:
    val = os.getenv(name, default)
    return str(val).strip().lower() in {"true", "1", "t", "yes", "y", "on"}


def setup_logging(level: Optional[int] = None) -> None:
    """
    Idempotent logging setup that ensures %(correlation_id)s is available in all log lines.
    Set LOG_JSON=1 for one JSON object per line.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    filt = CorrelationIdFilter()
    root = logging.getLogger()
    root.addFilter(filt)

    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    for h in root.handlers:
        fmt = getattr(h.formatter, "_fmt", "") if h.formatter else ""
        if "%(correlation_id)" not in fmt:
            h.setFormatter(logging.Formatter(LOG_FORMAT))
        h.addFilter(filt)
    root.setLevel(level or logging.INFO)

    if _env_truthy("LOG_JSON", "false"):
        for h in root.handlers:
            h.setFormatter(JsonFormatter())

    # Common FastAPI/Uvicorn loggers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
        logging.getLogger(name).addFilter(filt)

    _CONFIGURED = True


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    - Generates UUID correlation ID per request (also in request.state.correlation_id)
    - Logs "<status> <method> <url> <duration>" per request unless disabled
    - Adds X-Correlation-ID response header
    """

    def __init__(self, app, enabled: bool = True):
        super().__init__(app)
        self._logger = logging.getLogger("request")
        self._log_requests = enabled

    async def dispatch(self, request: Request, call_next):
        cid = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex
        token = correlation_id_ctx.set(cid)
        request.state.correlation_id = cid

        method = request.method
        url = str(request.url.path)
        if request.url.query:
            url = f"{url}?{request.url.query}"
        start = time.perf_counter()

        try:
            response: Response = await call_next(request)
            dur_ms = (time.perf_counter() - start) * 1000
            response.headers["X-Correlation-ID"] = cid
            if self._log_requests:
                self._logger.info(
                    "%d %s %s %.3fms", response.status_code, method, url, dur_ms
                )
            return response
        except Exception as e:
            dur_ms = (time.perf_counter() - start) * 1000
            # Always log exceptions
            self._logger.exception(
                "!! %s %s error after %.3fms: %s", method, url, dur_ms, e
            )
            raise
        finally:
            correlation_id_ctx.reset(token)
