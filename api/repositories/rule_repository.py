"""Repository for event- and location-bound rules."""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import Rule, RuleKind
from repositories.event_repository import to_event_data
from repositories.location_repository import to_location_data
from repositories.user_repository import to_user_data
from repositories.utils import log_slow_query
from schemas import (
    AnyRule,
    EventData,
    LocationData,
    RuleEvent,
    RuleLocation,
    UserData,
    ensure_utc,
)


def _to_rule_event(rule: Rule) -> RuleEvent:
    return RuleEvent(
        id=rule.id,
        start_time=rule.start_time,
        end_time=rule.end_time,
        creator=to_user_data(rule.user),
        event=to_event_data(rule.event),
    )


def _to_rule_location(rule: Rule) -> RuleLocation:
    return RuleLocation(
        id=rule.id,
        start_time=rule.start_time,
        end_time=rule.end_time,
        creator=to_user_data(rule.user),
        location=to_location_data(rule.location),
    )


def to_rule_data(rule: Rule) -> AnyRule:
    if rule.kind == RuleKind.EVENT:
        return _to_rule_event(rule)
    return _to_rule_location(rule)


class RuleRepository:
    """Repository for Rule database operations.

    Times are stored as UTC. Subjects (event/location) are eager-loaded so
    returned records never touch the session after the query.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _select_rules(self):
        # Rows added earlier in this session must get their relationships loaded too
        return (
            select(Rule)
            .options(
                selectinload(Rule.user),
                selectinload(Rule.event),
                selectinload(Rule.location),
            )
            .execution_options(populate_existing=True)
        )

    async def _get_row(self, rule_id: int, kind: RuleKind) -> Rule | None:
        result = await self.db.execute(
            self._select_rules().where(Rule.id == rule_id, Rule.kind == kind)
        )
        return result.scalar_one_or_none()

    @log_slow_query("get_rules_by_user")
    async def get_by_user(self, user: UserData) -> list[AnyRule]:
        """Get all rules of both kinds owned by a user, in creation order."""
        result = await self.db.execute(
            self._select_rules().where(Rule.user_id == user.id).order_by(Rule.id)
        )
        return [to_rule_data(rule) for rule in result.scalars().all()]

    @log_slow_query("get_rule_event_by_id")
    async def get_rule_event_by_id(self, rule_id: int) -> RuleEvent | None:
        rule = await self._get_row(rule_id, RuleKind.EVENT)
        return _to_rule_event(rule) if rule else None

    @log_slow_query("get_rule_location_by_id")
    async def get_rule_location_by_id(self, rule_id: int) -> RuleLocation | None:
        rule = await self._get_row(rule_id, RuleKind.LOCATION)
        return _to_rule_location(rule) if rule else None

    @log_slow_query("create_event_rule")
    async def create_event_rule(
        self,
        event: EventData,
        user: UserData,
        start_time: datetime,
        end_time: datetime,
    ) -> RuleEvent:
        rule = Rule(
            kind=RuleKind.EVENT,
            user_id=user.id,
            event_id=event.id,
            event_calendar_id=event.calendar_id,
            start_time=ensure_utc(start_time),
            end_time=ensure_utc(end_time),
        )
        self.db.add(rule)
        await self.db.flush()
        return RuleEvent(
            id=rule.id,
            start_time=start_time,
            end_time=end_time,
            creator=user,
            event=event,
        )

    @log_slow_query("create_location_rule")
    async def create_location_rule(
        self,
        location: LocationData,
        user: UserData,
        start_time: datetime,
        end_time: datetime,
    ) -> RuleLocation:
        rule = Rule(
            kind=RuleKind.LOCATION,
            user_id=user.id,
            location_id=location.id,
            start_time=ensure_utc(start_time),
            end_time=ensure_utc(end_time),
        )
        self.db.add(rule)
        await self.db.flush()
        return RuleLocation(
            id=rule.id,
            start_time=start_time,
            end_time=end_time,
            creator=user,
            location=location,
        )

    async def _update_times(
        self, rule_id: int, kind: RuleKind, start_time: datetime, end_time: datetime
    ) -> None:
        row = await self._get_row(rule_id, kind)
        if row is None:
            raise LookupError(f"{kind.value} rule {rule_id} vanished during update")
        row.start_time = ensure_utc(start_time)
        row.end_time = ensure_utc(end_time)
        await self.db.flush()

    @log_slow_query("update_rule_event")
    async def update_rule_event(
        self, rule: RuleEvent, start_time: datetime, end_time: datetime
    ) -> RuleEvent:
        """Change the time range only; the bound event never changes."""
        await self._update_times(rule.id, RuleKind.EVENT, start_time, end_time)
        return rule.model_copy(
            update={"start_time": ensure_utc(start_time), "end_time": ensure_utc(end_time)}
        )

    @log_slow_query("update_rule_location")
    async def update_rule_location(
        self, rule: RuleLocation, start_time: datetime, end_time: datetime
    ) -> RuleLocation:
        """Change the time range only; the bound location never changes."""
        await self._update_times(rule.id, RuleKind.LOCATION, start_time, end_time)
        return rule.model_copy(
            update={"start_time": ensure_utc(start_time), "end_time": ensure_utc(end_time)}
        )

    async def _delete(self, rule_id: int, kind: RuleKind) -> bool:
        result = await self.db.execute(
            delete(Rule).where(Rule.id == rule_id, Rule.kind == kind)
        )
        return result.rowcount > 0

    @log_slow_query("delete_rule_event")
    async def delete_rule_event(self, rule: RuleEvent) -> bool:
        """Delete an event rule. Returns False if it was already gone."""
        return await self._delete(rule.id, RuleKind.EVENT)

    @log_slow_query("delete_rule_location")
    async def delete_rule_location(self, rule: RuleLocation) -> bool:
        """Delete a location rule. Returns False if it was already gone."""
        return await self._delete(rule.id, RuleKind.LOCATION)
