"""Core utilities for the rules API.

This module exports commonly used utilities for easy importing:
    from core import get_logger
"""

from core.logger import bind_contextvars, clear_contextvars, get_logger
from core.result import Failure, Result, Success, failure, success

__all__ = [
    "get_logger",
    "bind_contextvars",
    "clear_contextvars",
    "Failure",
    "Result",
    "Success",
    "failure",
    "success",
]
