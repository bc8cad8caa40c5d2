"""SQLAlchemy models for calendar and location rules."""

from datetime import UTC, datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from core.database import Base


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns.

    Use this for any model that needs audit timestamps.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class User(TimestampMixin, Base):
    """User model - owned by the user-management side, read here."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    events: Mapped[list["Event"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    locations: Mapped[list["Location"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    rules: Mapped[list["Rule"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )


class Event(TimestampMixin, Base):
    """A calendar event a rule can attach to.

    The id comes from the calendar provider, so it is only unique together
    with the calendar and the owning user.
    """

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    calendar_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped["User"] = relationship(back_populates="events")


class Location(TimestampMixin, Base):
    """A named geofence (centre + radius in metres) owned by a user."""

    __tablename__ = "locations"
    __table_args__ = (
        CheckConstraint("latitude >= -90 AND latitude <= 90", name="ck_locations_latitude"),
        CheckConstraint(
            "longitude >= -180 AND longitude <= 180", name="ck_locations_longitude"
        ),
        CheckConstraint("radius > 0", name="ck_locations_radius"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    radius: Mapped[float] = mapped_column(Float, nullable=False)

    user: Mapped["User"] = relationship(back_populates="locations")


class RuleKind(str, PyEnum):
    """What a rule is bound to."""

    EVENT = "event"
    LOCATION = "location"


class Rule(TimestampMixin, Base):
    """A time-windowed rule bound to either an event or a location.

    Both kinds share one table so rule ids are unique across kinds.
    Exactly one of the event key columns / location_id is set, per kind.
    """

    __tablename__ = "rules"
    __table_args__ = (
        ForeignKeyConstraint(
            ["event_id", "event_calendar_id", "user_id"],
            ["events.id", "events.calendar_id", "events.user_id"],
            ondelete="CASCADE",
            name="fk_rules_event",
        ),
        CheckConstraint("start_time < end_time", name="ck_rules_time_range"),
        CheckConstraint(
            "(kind = 'event' AND event_id IS NOT NULL AND location_id IS NULL)"
            " OR (kind = 'location' AND location_id IS NOT NULL AND event_id IS NULL)",
            name="ck_rules_subject",
        ),
        Index("ix_rules_user_start", "user_id", "start_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[RuleKind] = mapped_column(
        Enum(
            RuleKind,
            name="rule_kind",
            native_enum=False,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    event_calendar_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    location_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=True,
    )
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped["User"] = relationship(back_populates="rules")
    event: Mapped["Event | None"] = relationship(
        foreign_keys=[event_id, event_calendar_id, user_id],
        viewonly=True,
    )
    location: Mapped["Location | None"] = relationship()
