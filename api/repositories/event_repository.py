"""Repository for calendar events referenced by rules."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Event
from repositories.utils import log_slow_query
from schemas import EventData, UserData


def to_event_data(event: Event) -> EventData:
    return EventData(id=event.id, calendar_id=event.calendar_id, title=event.title)


class EventRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("get_event_by_id")
    async def get_by_id(
        self, event_id: int, calendar_id: int, user: UserData
    ) -> EventData | None:
        """Get an event by its provider ID within a calendar of the given user."""
        result = await self.db.execute(
            select(Event).where(
                Event.id == event_id,
                Event.calendar_id == calendar_id,
                Event.user_id == user.id,
            )
        )
        event = result.scalar_one_or_none()
        return to_event_data(event) if event else None

    @log_slow_query("create_event")
    async def create(
        self, event_id: int, calendar_id: int, title: str, user: UserData
    ) -> EventData:
        event = Event(id=event_id, calendar_id=calendar_id, title=title, user_id=user.id)
        self.db.add(event)
        await self.db.flush()
        return to_event_data(event)
