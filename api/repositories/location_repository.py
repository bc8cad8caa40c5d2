"""Repository for user-owned locations (geofences)."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Location
from repositories.utils import log_slow_query
from schemas import LocationData, UserData


def to_location_data(location: Location) -> LocationData:
    return LocationData(
        id=location.id,
        name=location.name,
        latitude=location.latitude,
        longitude=location.longitude,
        radius=location.radius,
    )


class LocationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("get_locations_by_user")
    async def get_by_user(self, user: UserData) -> list[LocationData]:
        """Get all locations owned by a user, oldest first."""
        result = await self.db.execute(
            select(Location).where(Location.user_id == user.id).order_by(Location.id)
        )
        return [to_location_data(location) for location in result.scalars().all()]

    @log_slow_query("create_location")
    async def create(
        self,
        name: str,
        latitude: float,
        longitude: float,
        radius: float,
        user: UserData,
    ) -> LocationData:
        location = Location(
            name=name,
            latitude=latitude,
            longitude=longitude,
            radius=radius,
            user_id=user.id,
        )
        self.db.add(location)
        await self.db.flush()
        return to_location_data(location)
