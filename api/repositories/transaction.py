"""Unit of work: one transaction per service call.

A service method hands a block (async callable taking a Transaction) to
TransactionManager.run(). The block sees every repository bound to the
same transaction and returns a value; exceptions roll everything back.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repositories.base import EventRepo, LocationRepo, RuleRepo, UserRepo
from repositories.event_repository import EventRepository
from repositories.location_repository import LocationRepository
from repositories.memory_repository import (
    InMemoryEventRepository,
    InMemoryLocationRepository,
    InMemoryRuleRepository,
    InMemoryStore,
    InMemoryUserRepository,
)
from repositories.rule_repository import RuleRepository
from repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class Transaction:
    """Repositories scoped to one unit of work."""

    users: UserRepo
    events: EventRepo
    locations: LocationRepo
    rules: RuleRepo


class TransactionManager(Protocol):
    async def run(self, block: Callable[[Transaction], Awaitable[R]]) -> R: ...


class SqlTransactionManager:
    """Runs each block in its own AsyncSession.

    Commits when the block returns (a rejected call has made no writes, so
    committing it is a no-op), rolls back and re-raises when it raises.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def run(self, block: Callable[[Transaction], Awaitable[R]]) -> R:
        async with self.session_maker() as session:
            trx = Transaction(
                users=UserRepository(session),
                events=EventRepository(session),
                locations=LocationRepository(session),
                rules=RuleRepository(session),
            )
            try:
                result = await block(trx)
                await session.commit()
            except Exception:
                try:
                    await session.rollback()
                except Exception as rollback_err:
                    logger.warning("db.rollback.failed", extra={"error": str(rollback_err)})
                raise
            return result


class InMemoryTransactionManager:
    """Runs blocks one at a time against a shared InMemoryStore.

    State is snapshotted on entry and restored if the block raises.
    """

    def __init__(self, store: InMemoryStore | None = None):
        self.store = store or InMemoryStore()
        self._lock = asyncio.Lock()
        self._trx = Transaction(
            users=InMemoryUserRepository(self.store),
            events=InMemoryEventRepository(self.store),
            locations=InMemoryLocationRepository(self.store),
            rules=InMemoryRuleRepository(self.store),
        )

    async def run(self, block: Callable[[Transaction], Awaitable[R]]) -> R:
        async with self._lock:
            snapshot = self.store.snapshot()
            try:
                return await block(self._trx)
            except Exception:
                self.store.restore(snapshot)
                raise

    def clear(self) -> None:
        self.store.clear()
