#!/usr/bin/env python3
"""Management commands for the rules API.

Usage:
    cd api
    python -m cli <command> [args]

Commands:
    check-db              Verify the configured database is reachable
    create-tables         Create missing tables from the SQLAlchemy models
    migrate [target]      Apply Alembic migrations (default: head)
    downgrade [target]    Revert Alembic migrations (default: -1)
    current               Show the applied revision
    history               List known revisions
"""

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy.ext.asyncio import AsyncEngine

from core.config import get_settings
from core.database import create_engine, create_tables, dispose_engine, init_db
from core.logger import bind_contextvars, clear_contextvars, configure_logging, get_logger

logger = get_logger(__name__)

API_DIR = Path(__file__).resolve().parent


def get_alembic_config() -> Config:
    """Alembic config with absolute paths, usable from any working directory.

    Raises:
        FileNotFoundError: alembic.ini or the migration scripts are not next
            to this module, e.g. in an installed copy outside the api/ directory.
    """
    ini_path = API_DIR / "alembic.ini"
    script_dir = API_DIR / "alembic"
    if not ini_path.is_file() or not (script_dir / "env.py").is_file():
        raise FileNotFoundError(
            f"Alembic files not found under {API_DIR}; run the CLI from the api/ directory"
        )
    cfg = Config(str(ini_path))
    cfg.set_main_option("script_location", str(script_dir))
    return cfg


async def _with_engine(action: Callable[[AsyncEngine], Awaitable[None]]) -> None:
    engine = create_engine()
    try:
        await action(engine)
    finally:
        await dispose_engine(engine)


def cmd_check_db(args: argparse.Namespace) -> int:
    asyncio.run(_with_engine(init_db))
    return 0


def cmd_create_tables(args: argparse.Namespace) -> int:
    asyncio.run(_with_engine(create_tables))
    return 0


def cmd_migrate(args: argparse.Namespace) -> int:
    logger.info("cli.migrate.started", target=args.target)
    command.upgrade(get_alembic_config(), args.target)
    logger.info("cli.migrate.completed", target=args.target)
    return 0


def cmd_downgrade(args: argparse.Namespace) -> int:
    logger.info("cli.downgrade.started", target=args.target)
    command.downgrade(get_alembic_config(), args.target)
    logger.info("cli.downgrade.completed", target=args.target)
    return 0


def cmd_current(args: argparse.Namespace) -> int:
    command.current(get_alembic_config())
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    command.history(get_alembic_config())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rules API management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", help="Available commands")

    sub.add_parser("check-db", help="Verify the database is reachable").set_defaults(
        handler=cmd_check_db
    )
    sub.add_parser(
        "create-tables", help="Create missing tables from models"
    ).set_defaults(handler=cmd_create_tables)

    migrate = sub.add_parser("migrate", help="Apply migrations")
    migrate.add_argument("target", nargs="?", default="head")
    migrate.set_defaults(handler=cmd_migrate)

    downgrade = sub.add_parser("downgrade", help="Revert migrations")
    downgrade.add_argument("target", nargs="?", default="-1")
    downgrade.set_defaults(handler=cmd_downgrade)

    sub.add_parser("current", help="Show applied revision").set_defaults(
        handler=cmd_current
    )
    sub.add_parser("history", help="List revisions").set_defaults(handler=cmd_history)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 1

    configure_logging(db_echo=get_settings().db_echo)
    bind_contextvars(cli_command=args.command)
    try:
        return handler(args)
    finally:
        clear_contextvars()


if __name__ == "__main__":
    sys.exit(main())
