from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from sqld.config.settings import Settings, get_settings
from sqld.errors import SqldError
from sqld.handlers import dispatch
from sqld.logging_utils import RequestLoggingMiddleware, setup_logging
from sqld.responses import error_response, render
from sqld.services.database import Context, close_db, init_db, normalize_root, ping_db

logger = logging.getLogger(__name__)

# Every method is routed to the dispatcher so unknown ones get a 405 from us.
ALL_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def create_app(
    settings: Optional[Settings] = None, ctx: Optional[Context] = None
) -> FastAPI:
    """
    Build the HTTP app.

    With `ctx` given the app uses it as-is (and leaves it open on shutdown);
    otherwise the database is opened from `settings` on startup and closed on
    shutdown.
    """
    settings = settings or get_settings()
    setup_logging()
    root = ctx.root if ctx is not None else normalize_root(settings.url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "ctx", None) is None:
            owned = init_db(settings)
            ping_db(owned)
            app.state.ctx = owned
        try:
            yield
        finally:
            close_db(owned)

    app = FastAPI(title="sqld", version=settings.VERSION, lifespan=lifespan)
    app.state.ctx = ctx
    app.add_middleware(RequestLoggingMiddleware, enabled=not settings.nolog)

    @app.get(f"{root}__health__", response_class=PlainTextResponse)
    async def health() -> str:
        return "ok"

    @app.api_route(root + "{resource:path}", methods=ALL_METHODS)
    async def handle_query(request: Request, resource: str = "") -> Response:
        body = await request.body()
        try:
            status, payload = await run_in_threadpool(
                dispatch,
                request.app.state.ctx,
                request.method,
                resource,
                request.query_params.multi_items(),
                body,
            )
        except SqldError as e:
            return error_response(e)
        return render(status, payload)

    return app
