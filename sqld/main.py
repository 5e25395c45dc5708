from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import uvicorn
from dotenv import find_dotenv, load_dotenv

from sqld.config.settings import Settings, get_settings
from sqld.logging_utils import setup_logging
from sqld.services.database import close_db, init_db, ping_db

USAGE = """Usage of 'sqld':
\tsqld -u root -db database_name -h localhost:3306 -type mysql
"""

logger = logging.getLogger("sqld")


def build_parser() -> argparse.ArgumentParser:
    # -h is the database host, so argparse's own help moves to --help
    parser = argparse.ArgumentParser(prog="sqld", usage=USAGE, add_help=False)
    parser.add_argument("--help", action="help", help="show this help and exit")
    parser.add_argument(
        "-raw", dest="raw", action="store_true", default=None, help="allow raw sql queries"
    )
    parser.add_argument("-dsn", dest="dsn", help="database source name")
    parser.add_argument("-u", dest="user", help="database username")
    parser.add_argument("-p", dest="password", help="database password")
    parser.add_argument("-h", dest="host", help="database host")
    parser.add_argument(
        "-type",
        dest="dbtype",
        choices=["mysql", "postgres", "sqlite3"],
        help="database type",
    )
    parser.add_argument("-db", dest="db", help="database name")
    parser.add_argument("-port", dest="port", type=int, help="http port")
    parser.add_argument(
        "-nolog", dest="nolog", action="store_true", default=None, help="disable logging"
    )
    parser.add_argument("-url", dest="url", help="url prefix to serve tables under")
    return parser


def settings_from_args(argv: Optional[List[str]] = None) -> Settings:
    """Env / .env values, overridden by any flag given on the command line."""
    args = build_parser().parse_args(argv)
    overrides: Dict[str, Any] = {k: v for k, v in vars(args).items() if v is not None}
    return get_settings().model_copy(update=overrides)


def main(argv: Optional[List[str]] = None) -> int:
    # Don't override existing env so container/CI secrets still win.
    load_dotenv(find_dotenv(usecwd=True), override=False)
    settings = settings_from_args(argv)
    setup_logging(logging.WARNING if settings.nolog else logging.INFO)

    try:
        ctx = init_db(settings)
        ping_db(ctx)
    except Exception as e:  # noqa: BLE001
        print(f"Unable to connect to database: {e}", file=sys.stderr)
        return 1

    from sqld.api import create_app

    app = create_app(settings, ctx=ctx)
    logger.info("listening on :%d%s", settings.port, ctx.root)
    try:
        uvicorn.run(app, host="0.0.0.0", port=settings.port, access_log=False)
    finally:
        close_db(ctx)
    return 0


if __name__ == "__main__":
    sys.exit(main())
