"""Structured logging for the rules API, built on structlog.

structlog events and plain stdlib records (SQLAlchemy, Alembic, aiosqlite)
go through one handler on the root logger, so both come out in the same
shape:
- LOG_FORMAT=json renders one JSON object per line
- anything else renders coloured key=value lines for a terminal
- LOG_LEVEL sets the root level (default INFO)

Usage:
    from core import get_logger
    logger = get_logger(__name__)
    logger.info("rule.created", rule_id=1, user_id=7, kind="event")
"""

import logging
import os
import sys

import structlog
from structlog.types import Processor


def _get_log_level() -> int:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def _is_json_format() -> bool:
    return os.environ.get("LOG_FORMAT", "").strip().lower() == "json"


def _pre_chain() -> list[Processor]:
    """Processors applied to every record before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(json_output: bool) -> Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def _build_handler(pre_chain: list[Processor], json_output: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                _renderer(json_output),
            ],
        )
    )
    return handler


def configure_logging(db_echo: bool = False) -> None:
    """Route structlog and stdlib logging to stdout. Safe to call more than once.

    Args:
        db_echo: Keep SQLAlchemy engine logs at INFO (every statement) instead
            of WARNING. Pass settings.db_echo.
    """
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_build_handler(pre_chain, _is_json_format()))
    root.setLevel(_get_log_level())

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if db_echo else logging.WARNING
    )
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger; pass event names and key-value fields.

    Example:
        logger = get_logger(__name__)
        logger.debug("rule.rejected", operation="update_event_rule", error="NotAllowed")
    """
    return structlog.stdlib.get_logger(name)


bind_contextvars = structlog.contextvars.bind_contextvars
clear_contextvars = structlog.contextvars.clear_contextvars
