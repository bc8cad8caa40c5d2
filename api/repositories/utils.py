"""Timing and failure logging for repository calls."""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def log_slow_query(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Time an async repository method under a stable operation name.

    - over settings.slow_query_threshold_ms: WARNING db.query.slow
    - on any exception: ERROR db.query.failed, then the exception propagates

    Usage:
        @log_slow_query("get_rule_event_by_id")
        async def get_rule_event_by_id(self, rule_id: int) -> RuleEvent | None:
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                logger.error(
                    "db.query.failed",
                    db_operation=operation_name,
                    db_duration_ms=_elapsed_ms(started),
                    db_error=str(exc),
                    db_error_type=type(exc).__name__,
                )
                raise

            elapsed = _elapsed_ms(started)
            if elapsed > get_settings().slow_query_threshold_ms:
                logger.warning(
                    "db.query.slow", db_operation=operation_name, db_duration_ms=elapsed
                )
            return result

        return wrapper

    return decorator
