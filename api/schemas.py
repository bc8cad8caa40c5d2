"""Pydantic domain records returned by repositories and services.

These are immutable snapshots, independent of the ORM session, so the
same types flow out of both the SQLAlchemy and in-memory repositories.
"""

from datetime import UTC, datetime
from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class UserData(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str


class EventData(BaseModel):
    """A calendar event as seen by the rule layer."""

    model_config = ConfigDict(frozen=True)

    id: int
    calendar_id: int
    title: str


class LocationData(BaseModel):
    """A named geofence. Coordinates in degrees, radius in metres."""

    model_config = ConfigDict(frozen=True)

    MIN_LATITUDE: ClassVar[float] = -90.0
    MAX_LATITUDE: ClassVar[float] = 90.0
    MIN_LONGITUDE: ClassVar[float] = -180.0
    MAX_LONGITUDE: ClassVar[float] = 180.0

    id: int
    name: str
    latitude: float
    longitude: float
    radius: float

    def matches(self, name: str, latitude: float, longitude: float, radius: float) -> bool:
        """Exact match on all four fields (no tolerance on coordinates)."""
        return (
            self.name == name
            and self.latitude == latitude
            and self.longitude == longitude
            and self.radius == radius
        )


class RuleBase(BaseModel):
    """Fields shared by every rule kind."""

    model_config = ConfigDict(frozen=True)

    id: int
    start_time: datetime
    end_time: datetime
    creator: UserData

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_time(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class RuleEvent(RuleBase):
    kind: Literal["event"] = "event"
    event: EventData


class RuleLocation(RuleBase):
    kind: Literal["location"] = "location"
    location: LocationData


AnyRule = Annotated[RuleEvent | RuleLocation, Field(discriminator="kind")]
