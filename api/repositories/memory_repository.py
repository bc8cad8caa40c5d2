"""In-memory repository implementations.

Mirror the SQLAlchemy repositories method for method so the rule service
can run without a database (local experiments and fast tests). All four
repositories share one InMemoryStore so a unit of work can snapshot and
restore the whole state at once.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import TypeVar

from schemas import (
    AnyRule,
    EventData,
    LocationData,
    RuleEvent,
    RuleLocation,
    UserData,
    ensure_utc,
)

R = TypeVar("R", RuleEvent, RuleLocation)


@dataclass
class InMemoryStore:
    users: dict[int, UserData] = field(default_factory=dict)
    # (event_id, calendar_id, user_id) -> event
    events: dict[tuple[int, int, int], EventData] = field(default_factory=dict)
    # location_id -> (owner_id, location)
    locations: dict[int, tuple[int, LocationData]] = field(default_factory=dict)
    rules: dict[int, AnyRule] = field(default_factory=dict)
    # last issued ids; never reused after a delete
    last_user_id: int = 0
    last_location_id: int = 0
    last_rule_id: int = 0

    def snapshot(self) -> "InMemoryStore":
        """Copy of the current state. Records are immutable, so shallow copies suffice."""
        return replace(
            self,
            users=dict(self.users),
            events=dict(self.events),
            locations=dict(self.locations),
            rules=dict(self.rules),
        )

    def restore(self, snapshot: "InMemoryStore") -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(snapshot, f.name))

    def clear(self) -> None:
        self.restore(InMemoryStore())

    def next_user_id(self) -> int:
        self.last_user_id += 1
        return self.last_user_id

    def next_location_id(self) -> int:
        self.last_location_id += 1
        return self.last_location_id

    def next_rule_id(self) -> int:
        self.last_rule_id += 1
        return self.last_rule_id


class InMemoryUserRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_id(self, user_id: int) -> UserData | None:
        return self.store.users.get(user_id)

    async def create(self, username: str, email: str) -> UserData:
        user = UserData(id=self.store.next_user_id(), username=username, email=email)
        self.store.users[user.id] = user
        return user

    def clear(self) -> None:
        self.store.users.clear()


class InMemoryEventRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_id(
        self, event_id: int, calendar_id: int, user: UserData
    ) -> EventData | None:
        return self.store.events.get((event_id, calendar_id, user.id))

    async def create(
        self, event_id: int, calendar_id: int, title: str, user: UserData
    ) -> EventData:
        event = EventData(id=event_id, calendar_id=calendar_id, title=title)
        self.store.events[(event_id, calendar_id, user.id)] = event
        return event

    def clear(self) -> None:
        self.store.events.clear()


class InMemoryLocationRepository:
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_user(self, user: UserData) -> list[LocationData]:
        return [
            location
            for owner_id, location in self.store.locations.values()
            if owner_id == user.id
        ]

    async def create(
        self,
        name: str,
        latitude: float,
        longitude: float,
        radius: float,
        user: UserData,
    ) -> LocationData:
        location = LocationData(
            id=self.store.next_location_id(),
            name=name,
            latitude=latitude,
            longitude=longitude,
            radius=radius,
        )
        self.store.locations[location.id] = (user.id, location)
        return location

    def clear(self) -> None:
        self.store.locations.clear()


class InMemoryRuleRepository:
    """Rules of both kinds share one id sequence, like the rules table."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_user(self, user: UserData) -> list[AnyRule]:
        return [rule for rule in self.store.rules.values() if rule.creator.id == user.id]

    async def get_rule_event_by_id(self, rule_id: int) -> RuleEvent | None:
        rule = self.store.rules.get(rule_id)
        return rule if isinstance(rule, RuleEvent) else None

    async def get_rule_location_by_id(self, rule_id: int) -> RuleLocation | None:
        rule = self.store.rules.get(rule_id)
        return rule if isinstance(rule, RuleLocation) else None

    async def create_event_rule(
        self,
        event: EventData,
        user: UserData,
        start_time: datetime,
        end_time: datetime,
    ) -> RuleEvent:
        rule = RuleEvent(
            id=self.store.next_rule_id(),
            start_time=start_time,
            end_time=end_time,
            creator=user,
            event=event,
        )
        self.store.rules[rule.id] = rule
        return rule

    async def create_location_rule(
        self,
        location: LocationData,
        user: UserData,
        start_time: datetime,
        end_time: datetime,
    ) -> RuleLocation:
        rule = RuleLocation(
            id=self.store.next_rule_id(),
            start_time=start_time,
            end_time=end_time,
            creator=user,
            location=location,
        )
        self.store.rules[rule.id] = rule
        return rule

    async def update_rule_event(
        self, rule: RuleEvent, start_time: datetime, end_time: datetime
    ) -> RuleEvent:
        return self._update_times(rule, start_time, end_time)

    async def update_rule_location(
        self, rule: RuleLocation, start_time: datetime, end_time: datetime
    ) -> RuleLocation:
        return self._update_times(rule, start_time, end_time)

    def _update_times(
        self, rule: R, start_time: datetime, end_time: datetime
    ) -> R:
        updated = rule.model_copy(
            update={"start_time": ensure_utc(start_time), "end_time": ensure_utc(end_time)}
        )
        self.store.rules[rule.id] = updated
        return updated

    async def delete_rule_event(self, rule: RuleEvent) -> bool:
        return self._delete(rule.id, RuleEvent)

    async def delete_rule_location(self, rule: RuleLocation) -> bool:
        return self._delete(rule.id, RuleLocation)

    def _delete(self, rule_id: int, kind: type) -> bool:
        if not isinstance(self.store.rules.get(rule_id), kind):
            return False
        del self.store.rules[rule_id]
        return True

    def clear(self) -> None:
        self.store.rules.clear()
