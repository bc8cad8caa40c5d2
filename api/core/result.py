"""Success/failure result values for operations with expected outcomes.

Services return these instead of raising for outcomes the caller is
expected to handle (validation failures, lookup misses, ownership).
Unexpected infrastructure errors still propagate as exceptions.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure(Generic[E]):
    error: E


Result = Success[T] | Failure[E]


def success(value: T) -> Success[T]:
    return Success(value)


def failure(error: E) -> Failure[E]:
    return Failure(error)
