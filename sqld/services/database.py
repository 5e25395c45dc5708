# sqld/services/database.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from sqld.config.settings import Settings
from sqld.query.placeholders import Placeholder

logger = logging.getLogger(__name__)

MYSQL_DSN_TEMPLATE = "mysql+pymysql://{user}:{password}@{host}/{db}"
POSTGRES_DSN_TEMPLATE = "postgresql+psycopg://{user}:{password}@{host}/{db}?sslmode=disable"

# Fallback paramstyle per backend when the engine doesn't report one.
_PARAMSTYLES: Dict[str, str] = {
    "mysql": "format",
    "postgres": "format",
    "sqlite3": "qmark",
}

Connector = Callable[..., Any]


@dataclass(frozen=True)
class Context:
    """
    Process-wide handles shared by every request.

    Built once at startup and passed explicitly into the compiler, executor
    and batch coordinator. Read-only after construction.
    """

    db: Optional[Engine]
    placeholder: Placeholder = Placeholder.QUESTION
    allow_raw: bool = False
    root: str = "/"


def normalize_root(url: Optional[str]) -> str:
    """`api` / `/api` / `/api/` -> `/api/`; empty -> `/`."""
    url = (url or "").strip().strip("/")
    return f"/{url}/" if url else "/"


def build_dsn(settings: Settings) -> str:
    if settings.dsn:
        return settings.dsn

    dbtype = settings.dbtype
    host = settings.host or ("localhost:5432" if dbtype == "postgres" else "localhost:3306")
    user = settings.user or "root"
    password = settings.password or ""

    if dbtype == "mysql":
        return MYSQL_DSN_TEMPLATE.format(
            user=user, password=password, host=host, db=settings.db
        )
    if dbtype == "postgres":
        return POSTGRES_DSN_TEMPLATE.format(
            user=user, password=password, host=host, db=settings.db
        )
    return settings.dsn


def _sqlite_url(dsn: str) -> Tuple[str, Dict[str, Any]]:
    if "://" in dsn:
        return dsn, {}
    if dsn in ("", ":memory:"):
        # one shared connection, otherwise each pooled connection is a new empty db
        return "sqlite://", {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return f"sqlite:///{dsn}", {}


def init_db(settings: Settings, connect: Connector = create_engine) -> Context:
    """
    Create the engine for `settings.dbtype` and wrap it in a Context.

    `connect` receives the SQLAlchemy URL plus engine keyword arguments; tests
    swap it for a fake.
    """
    dbtype = settings.dbtype
    if dbtype not in _PARAMSTYLES:
        raise ValueError(f"Unsupported database type {dbtype}")

    url, kwargs = build_dsn(settings), {}
    if dbtype == "sqlite3":
        url, kwargs = _sqlite_url(url)

    engine = connect(url, **kwargs)

    paramstyle = getattr(getattr(engine, "dialect", None), "paramstyle", None)
    if not isinstance(paramstyle, str):
        paramstyle = _PARAMSTYLES[dbtype]

    ctx = Context(
        db=engine,
        placeholder=Placeholder.for_paramstyle(paramstyle),
        allow_raw=settings.raw,
        root=normalize_root(settings.url),
    )
    logger.info(
        "database ready type=%s placeholder=%s raw=%s root=%s",
        dbtype,
        ctx.placeholder.value,
        ctx.allow_raw,
        ctx.root,
    )
    return ctx


def ping_db(ctx: Context) -> None:
    """Open one connection so a bad DSN fails at startup, not on first request."""
    if ctx.db is None:
        raise RuntimeError("database is not initialized")
    with ctx.db.connect() as conn:
        conn.execute(text("SELECT 1"))


def close_db(ctx: Optional[Context]) -> None:
    if ctx is None or ctx.db is None:
        return
    ctx.db.dispose()
    logger.info("database connections closed")
