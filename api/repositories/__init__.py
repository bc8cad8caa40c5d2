"""Repository layer for database operations.

Repositories encapsulate all persistence for users, events, locations and
rules, and return immutable domain records (see schemas.py). Services reach
them only through a Transaction handed out by a TransactionManager, so:
- each service call is one unit of work
- the same service runs against SQLAlchemy or in-memory storage
"""

from repositories.event_repository import EventRepository
from repositories.location_repository import LocationRepository
from repositories.rule_repository import RuleRepository
from repositories.transaction import (
    InMemoryTransactionManager,
    SqlTransactionManager,
    Transaction,
    TransactionManager,
)
from repositories.user_repository import UserRepository
from repositories.utils import log_slow_query

__all__ = [
    "EventRepository",
    "InMemoryTransactionManager",
    "LocationRepository",
    "RuleRepository",
    "SqlTransactionManager",
    "Transaction",
    "TransactionManager",
    "UserRepository",
    "log_slow_query",
]
