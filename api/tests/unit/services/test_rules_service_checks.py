"""Unit tests for services/rules_service.py check ordering.

Repositories are AsyncMocks, so these tests pin down which repository
calls happen before a request is rejected:
- identifier and input checks never touch storage
- rejected requests never write
- update checks collision before ownership
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from core.result import Failure, Success
from repositories.transaction import Transaction
from services.rules_service import RuleError, RuleService, check_collision_time
from tests.factories import (
    LocationDataFactory,
    RuleEventFactory,
    RuleLocationFactory,
    UserDataFactory,
)

T0 = datetime(2025, 6, 23, 10, 0, tzinfo=UTC)


def at(hours: float, seconds: int = 0) -> datetime:
    return T0 + timedelta(hours=hours, seconds=seconds)


class _PassThroughTrxManager:
    def __init__(self, trx: Transaction):
        self.trx = trx
        self.calls = 0

    async def run(self, block):
        self.calls += 1
        return await block(self.trx)


@pytest.fixture
def trx() -> Transaction:
    return Transaction(
        users=AsyncMock(),
        events=AsyncMock(),
        locations=AsyncMock(),
        rules=AsyncMock(),
    )


@pytest.fixture
def service(trx: Transaction) -> RuleService:
    return RuleService(_PassThroughTrxManager(trx))


def _assert_no_writes(trx: Transaction) -> None:
    trx.events.create.assert_not_awaited()
    trx.locations.create.assert_not_awaited()
    trx.rules.create_event_rule.assert_not_awaited()
    trx.rules.create_location_rule.assert_not_awaited()
    trx.rules.update_rule_event.assert_not_awaited()
    trx.rules.update_rule_location.assert_not_awaited()
    trx.rules.delete_rule_event.assert_not_awaited()
    trx.rules.delete_rule_location.assert_not_awaited()


@pytest.mark.unit
class TestCheckCollisionTime:
    def test_overlapping(self):
        assert check_collision_time(T0, at(2), at(1), at(3))

    def test_touching_end_to_start(self):
        assert check_collision_time(T0, at(1), at(1), at(2))

    def test_contained(self):
        assert check_collision_time(T0, at(4), at(1), at(2))

    def test_disjoint(self):
        assert not check_collision_time(T0, at(1), at(1, seconds=1), at(2))

    def test_exposed_on_service(self):
        assert RuleService.check_collision_time(T0, T0, T0, T0) is True


@pytest.mark.unit
class TestInputChecksSkipStorage:
    """Requests rejected on their inputs alone never reach a repository."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.create_event_rule(-1, 1, 1, "Title", T0, at(1)),
            lambda s: s.get_event_rule_by_id(1, -5),
            lambda s: s.get_location_rule_by_id(-5, 1),
            lambda s: s.get_rules_by_user(-1),
            lambda s: s.update_event_rule(-1, 1, T0, at(1)),
            lambda s: s.update_location_rule(1, -1, T0, at(1)),
            lambda s: s.delete_event_rule(-1, 1),
            lambda s: s.delete_location_rule(1, -1),
        ],
    )
    async def test_negative_identifier(self, service, trx, call):
        result = await call(service)

        assert result == Failure(RuleError.NEGATIVE_IDENTIFIER)
        trx.users.get_by_id.assert_not_awaited()
        trx.rules.get_by_user.assert_not_awaited()

    async def test_blank_title(self, service, trx):
        result = await service.create_event_rule(1, 1, 1, "", T0, at(1))

        assert result == Failure(RuleError.TITLE_CANNOT_BE_BLANK)
        trx.users.get_by_id.assert_not_awaited()

    async def test_update_range_checked_before_identifiers(self, service, trx):
        result = await service.update_event_rule(-1, -1, T0, T0)

        assert result == Failure(RuleError.START_TIME_MUST_BE_BEFORE_END_TIME)
        trx.users.get_by_id.assert_not_awaited()

    @pytest.mark.parametrize(
        ("overrides", "error"),
        [
            ({"latitude": 91.0}, RuleError.INVALID_LATITUDE),
            ({"longitude": -181.0}, RuleError.INVALID_LONGITUDE),
            ({"radius": 0.0}, RuleError.INVALID_RADIUS),
            ({"user_id": -1}, RuleError.NEGATIVE_IDENTIFIER),
        ],
    )
    async def test_location_inputs(self, service, trx, overrides, error):
        args = {
            "user_id": 1,
            "title": "Title",
            "start_time": T0,
            "end_time": at(1),
            "name": "ISEL",
            "latitude": 38.75,
            "longitude": -9.11,
            "radius": 50.0,
        } | overrides

        result = await service.create_location_rule(**args)

        assert result == Failure(error)
        trx.users.get_by_id.assert_not_awaited()


@pytest.mark.unit
class TestCreateEventRuleFlow:
    async def test_user_not_found_stops_before_rules(self, service, trx):
        trx.users.get_by_id.return_value = None

        result = await service.create_event_rule(7, 1, 1, "Title", T0, at(1))

        assert result == Failure(RuleError.USER_NOT_FOUND)
        trx.users.get_by_id.assert_awaited_once_with(7)
        trx.rules.get_by_user.assert_not_awaited()

    async def test_collision_stops_before_event_lookup(self, service, trx):
        user = UserDataFactory.build()
        trx.users.get_by_id.return_value = user
        trx.rules.get_by_user.return_value = [
            RuleEventFactory.build(creator=user, start_time=T0, end_time=at(1))
        ]

        result = await service.create_event_rule(
            user.id, 2, 1, "Title", at(1), at(2)
        )

        assert result == Failure(RuleError.RULE_ALREADY_EXISTS_FOR_GIVEN_TIME)
        trx.events.get_by_id.assert_not_awaited()
        _assert_no_writes(trx)

    async def test_creates_missing_event(self, service, trx):
        user = UserDataFactory.build()
        created = RuleEventFactory.build(creator=user)
        trx.users.get_by_id.return_value = user
        trx.rules.get_by_user.return_value = []
        trx.events.get_by_id.return_value = None
        trx.rules.create_event_rule.return_value = created

        result = await service.create_event_rule(
            user.id, 3, 4, "Standup", created.start_time, created.end_time
        )

        assert result == Success(created)
        trx.events.get_by_id.assert_awaited_once_with(3, 4, user)
        trx.events.create.assert_awaited_once_with(3, 4, "Standup", user)
        trx.rules.create_event_rule.assert_awaited_once_with(
            trx.events.create.return_value, user, created.start_time, created.end_time
        )

    async def test_existing_event_is_not_recreated(self, service, trx):
        user = UserDataFactory.build()
        trx.users.get_by_id.return_value = user
        trx.rules.get_by_user.return_value = []

        await service.create_event_rule(user.id, 3, 4, "Standup", T0, at(1))

        trx.events.create.assert_not_awaited()
        trx.rules.create_event_rule.assert_awaited_once()


@pytest.mark.unit
class TestCreateLocationRuleFlow:
    async def test_reuses_exact_match(self, service, trx):
        user = UserDataFactory.build()
        existing = LocationDataFactory.build()
        trx.users.get_by_id.return_value = user
        trx.rules.get_by_user.return_value = []
        trx.locations.get_by_user.return_value = [existing]

        await service.create_location_rule(
            user.id,
            "Title",
            T0,
            at(1),
            existing.name,
            existing.latitude,
            existing.longitude,
            existing.radius,
        )

        trx.locations.create.assert_not_awaited()
        trx.rules.create_location_rule.assert_awaited_once_with(
            existing, user, T0, at(1)
        )

    async def test_near_match_creates_new_location(self, service, trx):
        user = UserDataFactory.build()
        existing = LocationDataFactory.build()
        trx.users.get_by_id.return_value = user
        trx.rules.get_by_user.return_value = []
        trx.locations.get_by_user.return_value = [existing]

        await service.create_location_rule(
            user.id,
            "Title",
            T0,
            at(1),
            existing.name,
            existing.latitude + 1e-9,
            existing.longitude,
            existing.radius,
        )

        trx.locations.create.assert_awaited_once_with(
            existing.name, existing.latitude + 1e-9, existing.longitude, existing.radius, user
        )


@pytest.mark.unit
class TestUpdateFlow:
    async def test_collision_checked_before_ownership(self, service, trx):
        owner = UserDataFactory.build()
        intruder = UserDataFactory.build()
        foreign_rule = RuleLocationFactory.build(creator=owner)
        trx.users.get_by_id.return_value = intruder
        trx.rules.get_rule_location_by_id.return_value = foreign_rule
        trx.rules.get_by_user.return_value = [
            RuleEventFactory.build(creator=intruder, start_time=T0, end_time=at(1))
        ]

        result = await service.update_location_rule(
            intruder.id, foreign_rule.id, T0, at(0.5)
        )

        assert result == Failure(RuleError.RULE_ALREADY_EXISTS_FOR_GIVEN_TIME)
        _assert_no_writes(trx)

    async def test_foreign_rule_without_collision_is_not_allowed(self, service, trx):
        owner = UserDataFactory.build()
        intruder = UserDataFactory.build()
        foreign_rule = RuleEventFactory.build(creator=owner)
        trx.users.get_by_id.return_value = intruder
        trx.rules.get_rule_event_by_id.return_value = foreign_rule
        trx.rules.get_by_user.return_value = []

        result = await service.update_event_rule(
            intruder.id, foreign_rule.id, T0, at(1)
        )

        assert result == Failure(RuleError.NOT_ALLOWED)
        _assert_no_writes(trx)

    async def test_rule_itself_is_excluded_from_collision(self, service, trx):
        user = UserDataFactory.build()
        rule = RuleEventFactory.build(creator=user, start_time=T0, end_time=at(1))
        trx.users.get_by_id.return_value = user
        trx.rules.get_rule_event_by_id.return_value = rule
        trx.rules.get_by_user.return_value = [rule]

        await service.update_event_rule(user.id, rule.id, T0, at(2))

        trx.rules.update_rule_event.assert_awaited_once_with(rule, T0, at(2))

    async def test_missing_rule_stops_before_listing(self, service, trx):
        trx.users.get_by_id.return_value = UserDataFactory.build()
        trx.rules.get_rule_event_by_id.return_value = None

        result = await service.update_event_rule(1, 99, T0, at(1))

        assert result == Failure(RuleError.RULE_NOT_FOUND)
        trx.rules.get_by_user.assert_not_awaited()


@pytest.mark.unit
class TestDeleteFlow:
    async def test_foreign_rule_is_not_deleted(self, service, trx):
        trx.users.get_by_id.return_value = UserDataFactory.build()
        trx.rules.get_rule_location_by_id.return_value = RuleLocationFactory.build()

        result = await service.delete_location_rule(1, 1)

        assert result == Failure(RuleError.NOT_ALLOWED)
        _assert_no_writes(trx)

    async def test_deletes_owned_rule(self, service, trx):
        user = UserDataFactory.build()
        rule = RuleEventFactory.build(creator=user)
        trx.users.get_by_id.return_value = user
        trx.rules.get_rule_event_by_id.return_value = rule

        result = await service.delete_event_rule(user.id, rule.id)

        assert result == Success(None)
        trx.rules.delete_rule_event.assert_awaited_once_with(rule)


@pytest.mark.unit
class TestUnitOfWork:
    async def test_each_call_is_one_unit_of_work(self, trx):
        manager = _PassThroughTrxManager(trx)
        service = RuleService(manager)
        trx.users.get_by_id.return_value = None

        await service.get_rules_by_user(1)
        await service.delete_event_rule(1, 1)

        assert manager.calls == 2
