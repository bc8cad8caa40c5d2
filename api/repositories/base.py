"""Repository contracts the rule service is written against.

Both the SQLAlchemy repositories and the in-memory ones satisfy these
structurally; nothing inherits from them.
"""

from datetime import datetime
from typing import Protocol

from schemas import AnyRule, EventData, LocationData, RuleEvent, RuleLocation, UserData


class UserRepo(Protocol):
    async def get_by_id(self, user_id: int) -> UserData | None: ...

    async def create(self, username: str, email: str) -> UserData: ...


class EventRepo(Protocol):
    async def get_by_id(
        self, event_id: int, calendar_id: int, user: UserData
    ) -> EventData | None: ...

    async def create(
        self, event_id: int, calendar_id: int, title: str, user: UserData
    ) -> EventData: ...


class LocationRepo(Protocol):
    async def get_by_user(self, user: UserData) -> list[LocationData]: ...

    async def create(
        self,
        name: str,
        latitude: float,
        longitude: float,
        radius: float,
        user: UserData,
    ) -> LocationData: ...


class RuleRepo(Protocol):
    async def get_by_user(self, user: UserData) -> list[AnyRule]: ...

    async def get_rule_event_by_id(self, rule_id: int) -> RuleEvent | None: ...

    async def get_rule_location_by_id(self, rule_id: int) -> RuleLocation | None: ...

    async def create_event_rule(
        self, event: EventData, user: UserData, start_time: datetime, end_time: datetime
    ) -> RuleEvent: ...

    async def create_location_rule(
        self,
        location: LocationData,
        user: UserData,
        start_time: datetime,
        end_time: datetime,
    ) -> RuleLocation: ...

    async def update_rule_event(
        self, rule: RuleEvent, start_time: datetime, end_time: datetime
    ) -> RuleEvent: ...

    async def update_rule_location(
        self, rule: RuleLocation, start_time: datetime, end_time: datetime
    ) -> RuleLocation: ...

    async def delete_rule_event(self, rule: RuleEvent) -> bool: ...

    async def delete_rule_location(self, rule: RuleLocation) -> bool: ...
