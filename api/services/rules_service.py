"""Rule business logic.

This module owns every decision about rules:
- identifier, title, time-range and coordinate validation
- ownership (a rule is only visible to its creator)
- time-collision detection against the user's other rules
- lazy find-or-create of the event/location a rule binds to

Each public method runs as one unit of work and returns Success or
Failure(RuleError). The checks run in a fixed order and the first failing
one decides the error, so callers and tests can rely on which error wins.
"""

from datetime import datetime
from enum import Enum

from core.logger import get_logger
from core.result import Failure, Result, failure, success
from repositories.transaction import Transaction, TransactionManager
from schemas import (
    AnyRule,
    LocationData,
    RuleEvent,
    RuleLocation,
    UserData,
    ensure_utc,
)

logger = get_logger(__name__)


class RuleError(str, Enum):
    """Every expected way a rule operation can be rejected."""

    NEGATIVE_IDENTIFIER = "NegativeIdentifier"
    USER_NOT_FOUND = "UserNotFound"
    RULE_ALREADY_EXISTS_FOR_GIVEN_TIME = "RuleAlreadyExistsForGivenTime"
    RULE_NOT_FOUND = "RuleNotFound"
    TITLE_CANNOT_BE_BLANK = "TitleCannotBeBlank"
    START_TIME_MUST_BE_BEFORE_END_TIME = "StartTimeMustBeBeforeEndTime"
    INVALID_LATITUDE = "InvalidLatitude"
    INVALID_LONGITUDE = "InvalidLongitude"
    INVALID_RADIUS = "InvalidRadius"
    NOT_ALLOWED = "NotAllowed"


def check_collision_time(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """True if the closed intervals [start_a, end_a] and [start_b, end_b] overlap.

    Touching intervals (one ends exactly when the other starts) collide.
    """
    return start_a <= end_b and end_a >= start_b


def _is_valid_time_range(start_time: datetime, end_time: datetime) -> bool:
    return start_time < end_time


def _has_collision(
    rules: list[AnyRule],
    start_time: datetime,
    end_time: datetime,
    exclude_rule_id: int | None = None,
) -> bool:
    return any(
        rule.id != exclude_rule_id
        and check_collision_time(rule.start_time, rule.end_time, start_time, end_time)
        for rule in rules
    )


def _reject(operation: str, error: RuleError) -> Failure[RuleError]:
    logger.debug("rule.rejected", operation=operation, error=error.value)
    return failure(error)


class RuleService:
    """Create, read, update and delete event- and location-bound rules.

    Example usage:
        service = RuleService(SqlTransactionManager(session_maker))
        result = await service.get_rules_by_user(user_id=7)
        match result:
            case Success(value=rules): ...
            case Failure(error=RuleError.USER_NOT_FOUND): ...
    """

    check_collision_time = staticmethod(check_collision_time)

    def __init__(self, trx_manager: TransactionManager):
        self.trx_manager = trx_manager

    async def create_event_rule(
        self,
        user_id: int,
        event_id: int,
        calendar_id: int,
        title: str,
        start_time: datetime,
        end_time: datetime,
    ) -> Result[RuleEvent, RuleError]:
        """Create a rule bound to a calendar event.

        The event is looked up by (event_id, calendar_id, user) and created
        with the given title if the user has no such event yet.
        """
        op = "create_event_rule"
        start_time, end_time = ensure_utc(start_time), ensure_utc(end_time)

        async def block(trx: Transaction) -> Result[RuleEvent, RuleError]:
            if user_id < 0 or event_id < 0 or calendar_id < 0:
                return _reject(op, RuleError.NEGATIVE_IDENTIFIER)
            if not title.strip():
                return _reject(op, RuleError.TITLE_CANNOT_BE_BLANK)
            if not _is_valid_time_range(start_time, end_time):
                return _reject(op, RuleError.START_TIME_MUST_BE_BEFORE_END_TIME)
            user = await trx.users.get_by_id(user_id)
            if user is None:
                return _reject(op, RuleError.USER_NOT_FOUND)
            if _has_collision(await trx.rules.get_by_user(user), start_time, end_time):
                return _reject(op, RuleError.RULE_ALREADY_EXISTS_FOR_GIVEN_TIME)

            event = await trx.events.get_by_id(event_id, calendar_id, user)
            if event is None:
                event = await trx.events.create(event_id, calendar_id, title, user)
            rule = await trx.rules.create_event_rule(event, user, start_time, end_time)
            logger.info("rule.created", rule_id=rule.id, user_id=user.id, kind=rule.kind)
            return success(rule)

        return await self.trx_manager.run(block)

    async def create_location_rule(
        self,
        user_id: int,
        title: str,
        start_time: datetime,
        end_time: datetime,
        name: str,
        latitude: float,
        longitude: float,
        radius: float,
    ) -> Result[RuleLocation, RuleError]:
        """Create a rule bound to a geofence.

        Reuses the user's location only on an exact match of name,
        latitude, longitude and radius; otherwise a new one is created.
        Note the coordinate checks run before the user id is checked.
        """
        op = "create_location_rule"
        start_time, end_time = ensure_utc(start_time), ensure_utc(end_time)

        async def block(trx: Transaction) -> Result[RuleLocation, RuleError]:
            if not title.strip():
                return _reject(op, RuleError.TITLE_CANNOT_BE_BLANK)
            if not _is_valid_time_range(start_time, end_time):
                return _reject(op, RuleError.START_TIME_MUST_BE_BEFORE_END_TIME)
            if not LocationData.MIN_LATITUDE <= latitude <= LocationData.MAX_LATITUDE:
                return _reject(op, RuleError.INVALID_LATITUDE)
            if not LocationData.MIN_LONGITUDE <= longitude <= LocationData.MAX_LONGITUDE:
                return _reject(op, RuleError.INVALID_LONGITUDE)
            if not radius > 0:
                return _reject(op, RuleError.INVALID_RADIUS)
            if user_id < 0:
                return _reject(op, RuleError.NEGATIVE_IDENTIFIER)
            user = await trx.users.get_by_id(user_id)
            if user is None:
                return _reject(op, RuleError.USER_NOT_FOUND)
            if _has_collision(await trx.rules.get_by_user(user), start_time, end_time):
                return _reject(op, RuleError.RULE_ALREADY_EXISTS_FOR_GIVEN_TIME)

            location = next(
                (
                    existing
                    for existing in await trx.locations.get_by_user(user)
                    if existing.matches(name, latitude, longitude, radius)
                ),
                None,
            )
            if location is None:
                location = await trx.locations.create(
                    name, latitude, longitude, radius, user
                )
            rule = await trx.rules.create_location_rule(
                location, user, start_time, end_time
            )
            logger.info("rule.created", rule_id=rule.id, user_id=user.id, kind=rule.kind)
            return success(rule)

        return await self.trx_manager.run(block)

    async def get_event_rule_by_id(
        self, user_id: int, rule_id: int
    ) -> Result[RuleEvent, RuleError]:
        op = "get_event_rule_by_id"

        async def block(trx: Transaction) -> Result[RuleEvent, RuleError]:
            if user_id < 0 or rule_id < 0:
                return _reject(op, RuleError.NEGATIVE_IDENTIFIER)
            user = await trx.users.get_by_id(user_id)
            if user is None:
                return _reject(op, RuleError.USER_NOT_FOUND)
            rule = await trx.rules.get_rule_event_by_id(rule_id)
            if rule is None:
                return _reject(op, RuleError.RULE_NOT_FOUND)
            if not _is_owner(rule, user):
                return _reject(op, RuleError.NOT_ALLOWED)
            return success(rule)

        return await self.trx_manager.run(block)

    async def get_location_rule_by_id(
        self, user_id: int, rule_id: int
    ) -> Result[RuleLocation, RuleError]:
        op = "get_location_rule_by_id"

        async def block(trx: Transaction) -> Result[RuleLocation, RuleError]:
            if user_id < 0 or rule_id < 0:
                return _reject(op, RuleError.NEGATIVE_IDENTIFIER)
            user = await trx.users.get_by_id(user_id)
            if user is None:
                return _reject(op, RuleError.USER_NOT_FOUND)
            rule = await trx.rules.get_rule_location_by_id(rule_id)
            if rule is None:
                return _reject(op, RuleError.RULE_NOT_FOUND)
            if not _is_owner(rule, user):
                return _reject(op, RuleError.NOT_ALLOWED)
            return success(rule)

        return await self.trx_manager.run(block)

    async def get_rules_by_user(self, user_id: int) -> Result[list[AnyRule], RuleError]:
        """All rules of both kinds owned by the user, in storage order."""
        op = "get_rules_by_user"

        async def block(trx: Transaction) -> Result[list[AnyRule], RuleError]:
            if user_id < 0:
                return _reject(op, RuleError.NEGATIVE_IDENTIFIER)
            user = await trx.users.get_by_id(user_id)
            if user is None:
                return _reject(op, RuleError.USER_NOT_FOUND)
            return success(await trx.rules.get_by_user(user))

        return await self.trx_manager.run(block)

    async def update_event_rule(
        self,
        user_id: int,
        rule_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> Result[RuleEvent, RuleError]:
        """Move an event rule to a new time range.

        The collision check ignores the rule itself and runs before the
        ownership check, so a foreign rule whose new range collides
        reports RuleAlreadyExistsForGivenTime rather than NotAllowed.
        """
        op = "update_event_rule"
        start_time, end_time = ensure_utc(start_time), ensure_utc(end_time)

        async def block(trx: Transaction) -> Result[RuleEvent, RuleError]:
            if not _is_valid_time_range(start_time, end_time):
                return _reject(op, RuleError.START_TIME_MUST_BE_BEFORE_END_TIME)
            if user_id < 0 or rule_id < 0:
                return _reject(op, RuleError.NEGATIVE_IDENTIFIER)
            user = await trx.users.get_by_id(user_id)
            if user is None:
                return _reject(op, RuleError.USER_NOT_FOUND)
            rule = await trx.rules.get_rule_event_by_id(rule_id)
            if rule is None:
                return _reject(op, RuleError.RULE_NOT_FOUND)
            user_rules = await trx.rules.get_by_user(user)
            if _has_collision(user_rules, start_time, end_time, exclude_rule_id=rule_id):
                return _reject(op, RuleError.RULE_ALREADY_EXISTS_FOR_GIVEN_TIME)
            if not _is_owner(rule, user):
                return _reject(op, RuleError.NOT_ALLOWED)

            updated = await trx.rules.update_rule_event(rule, start_time, end_time)
            logger.info("rule.updated", rule_id=rule_id, user_id=user.id, kind=updated.kind)
            return success(updated)

        return await self.trx_manager.run(block)

    async def update_location_rule(
        self,
        user_id: int,
        rule_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> Result[RuleLocation, RuleError]:
        """Move a location rule to a new time range. Same check order as update_event_rule."""
        op = "update_location_rule"
        start_time, end_time = ensure_utc(start_time), ensure_utc(end_time)

        async def block(trx: Transaction) -> Result[RuleLocation, RuleError]:
            if not _is_valid_time_range(start_time, end_time):
                return _reject(op, RuleError.START_TIME_MUST_BE_BEFORE_END_TIME)
            if user_id < 0 or rule_id < 0:
                return _reject(op, RuleError.NEGATIVE_IDENTIFIER)
            user = await trx.users.get_by_id(user_id)
            if user is None:
                return _reject(op, RuleError.USER_NOT_FOUND)
            rule = await trx.rules.get_rule_location_by_id(rule_id)
            if rule is None:
                return _reject(op, RuleError.RULE_NOT_FOUND)
            user_rules = await trx.rules.get_by_user(user)
            if _has_collision(user_rules, start_time, end_time, exclude_rule_id=rule_id):
                return _reject(op, RuleError.RULE_ALREADY_EXISTS_FOR_GIVEN_TIME)
            if not _is_owner(rule, user):
                return _reject(op, RuleError.NOT_ALLOWED)

            updated = await trx.rules.update_rule_location(rule, start_time, end_time)
            logger.info("rule.updated", rule_id=rule_id, user_id=user.id, kind=updated.kind)
            return success(updated)

        return await self.trx_manager.run(block)

    async def delete_event_rule(self, user_id: int, rule_id: int) -> Result[None, RuleError]:
        op = "delete_event_rule"

        async def block(trx: Transaction) -> Result[None, RuleError]:
            if user_id < 0 or rule_id < 0:
                return _reject(op, RuleError.NEGATIVE_IDENTIFIER)
            user = await trx.users.get_by_id(user_id)
            if user is None:
                return _reject(op, RuleError.USER_NOT_FOUND)
            rule = await trx.rules.get_rule_event_by_id(rule_id)
            if rule is None:
                return _reject(op, RuleError.RULE_NOT_FOUND)
            if not _is_owner(rule, user):
                return _reject(op, RuleError.NOT_ALLOWED)

            await trx.rules.delete_rule_event(rule)
            logger.info("rule.deleted", rule_id=rule_id, user_id=user.id, kind=rule.kind)
            return success(None)

        return await self.trx_manager.run(block)

    async def delete_location_rule(
        self, user_id: int, rule_id: int
    ) -> Result[None, RuleError]:
        op = "delete_location_rule"

        async def block(trx: Transaction) -> Result[None, RuleError]:
            if user_id < 0 or rule_id < 0:
                return _reject(op, RuleError.NEGATIVE_IDENTIFIER)
            user = await trx.users.get_by_id(user_id)
            if user is None:
                return _reject(op, RuleError.USER_NOT_FOUND)
            rule = await trx.rules.get_rule_location_by_id(rule_id)
            if rule is None:
                return _reject(op, RuleError.RULE_NOT_FOUND)
            if not _is_owner(rule, user):
                return _reject(op, RuleError.NOT_ALLOWED)

            await trx.rules.delete_rule_location(rule)
            logger.info("rule.deleted", rule_id=rule_id, user_id=user.id, kind=rule.kind)
            return success(None)

        return await self.trx_manager.run(block)


def _is_owner(rule: AnyRule, user: UserData) -> bool:
    return rule.creator.id == user.id
