from __future__ import annotations

import argparse
import logging
from typing import Sequence

import uvicorn

from api.api import create_app
from config import config
from db.db import init_db

logger = logging.getLogger(__name__)


def run_init_db() -> None:
    settings = config()
    logger.info("Initializing DB at %s", settings.database_url)
    init_db(settings.database_url, echo=settings.db_echo)


def run_server(host: str | None, port: int | None) -> None:
    settings = config()
    app = create_app(settings)
    host = host or settings.api_host
    port = port or settings.api_port
    logger.info("Listening on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Fake-coin ledger service.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init-db", help="Create the database schema.")
    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(level=config().log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    if args.command == "init-db":
        run_init_db()
    else:
        run_server(args.host, args.port)


if __name__ == "__main__":
    main()
