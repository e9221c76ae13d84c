"""
Vehicle repository for data access.
"""
from typing import Optional

from sqlalchemy import select

from app.db.models import Vehicle
from app.repositories.base import SQLAlchemyRepository


class VehicleRepository(SQLAlchemyRepository[Vehicle]):
    """Repository for Vehicle entity"""

    model = Vehicle
    owner_column = "owner_id"
    conflict_message = "Vehicle with this VIN already exists"

    async def get_by_vin(self, vin: str) -> Optional[Vehicle]:
        result = await self._db.execute(
            select(Vehicle).where(Vehicle.vin == vin.upper())
        )
        return result.scalar_one_or_none()
