"""User repository for database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import User
from repositories.utils import log_slow_query
from schemas import UserData


def to_user_data(user: User) -> UserData:
    return UserData(id=user.id, username=user.username, email=user.email)


class UserRepository:
    """Repository for User database operations.

    Users are managed elsewhere; the rule layer only reads them. create()
    exists for seeding and tests.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("get_user_by_id")
    async def get_by_id(self, user_id: int) -> UserData | None:
        """Get a user by their ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        return to_user_data(user) if user else None

    @log_slow_query("create_user")
    async def create(self, username: str, email: str) -> UserData:
        """Create a new user. Flushes to obtain the generated ID."""
        user = User(username=username, email=email)
        self.db.add(user)
        await self.db.flush()
        return to_user_data(user)
