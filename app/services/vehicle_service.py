"""
Vehicle Service - registering and maintaining insured vehicles.
"""
from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import User, UserRole, Vehicle
from app.domain.exceptions import BadRequestError, ConflictError, NotFoundError
from app.repositories.user_repository import UserRepository
from app.repositories.vehicle_repository import VehicleRepository

logger = logging.getLogger(__name__)

# Fields owners may change after registration; VIN and owner are fixed
UPDATABLE_FIELDS = {
    "make", "model", "year", "trim", "body_style", "engine_type", "transmission",
    "fuel_type", "mileage", "color", "license_plate", "registration_state",
    "purchase_price", "current_value", "purchase_date", "usage", "annual_mileage",
    "has_anti_theft_device", "has_airbags", "has_abs", "parking_location",
}
REQUIRED_FIELDS = {"make", "model", "year", "has_anti_theft_device", "has_airbags", "has_abs"}


async def resolve_owner(db: AsyncSession, actor: User, owner_id: Optional[str]) -> str:
    """
    Decide whose record is being created.

    Customers always act for themselves; agents and admins must name an
    existing customer (or default to themselves).
    """
    if actor.role == UserRole.CUSTOMER or not owner_id or owner_id == actor.id:
        return actor.id

    owner = await UserRepository(db).get_by_id(owner_id)
    if not owner or not owner.is_active:
        raise BadRequestError("Owner not found or inactive")
    return owner.id


class VehicleService:
    """Service for managing vehicles"""

    def __init__(self, db: AsyncSession):
        self._vehicles = VehicleRepository(db)
        self._db = db

    async def create_vehicle(self, actor: User, data: dict) -> Vehicle:
        """
        Raises:
            ConflictError: If the VIN is already registered
        """
        data = dict(data)
        owner_id = await resolve_owner(self._db, actor, data.pop("owner_id", None))
        data["vin"] = data["vin"].upper()

        if await self._vehicles.get_by_vin(data["vin"]):
            raise ConflictError("Vehicle with this VIN already exists")

        vehicle = Vehicle(owner_id=owner_id, **data)
        await self._vehicles.add(vehicle)

        logger.info(f"Registered vehicle {vehicle.id} for owner {owner_id}")
        return vehicle

    async def get_vehicle(self, actor: User, vehicle_id: str) -> Vehicle:
        vehicle = await self._vehicles.get_visible_to(vehicle_id, actor)
        if not vehicle:
            raise NotFoundError("Vehicle not found")
        return vehicle

    async def list_vehicles(self, actor: User, include_inactive: bool = False, limit: int = 100, offset: int = 0) -> List[Vehicle]:
        criteria = [] if include_inactive else [Vehicle.is_active.is_(True)]
        return await self._vehicles.list_visible_to(actor, *criteria, limit=limit, offset=offset)

    async def update_vehicle(self, actor: User, vehicle_id: str, changes: dict) -> Vehicle:
        vehicle = await self.get_vehicle(actor, vehicle_id)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise BadRequestError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        cleared = {name for name, value in changes.items() if value is None and name in REQUIRED_FIELDS}
        if cleared:
            raise BadRequestError(f"Fields cannot be cleared: {', '.join(sorted(cleared))}")

        for field_name, value in changes.items():
            setattr(vehicle, field_name, value)
        await self._vehicles.save(vehicle)

        logger.info(f"Updated vehicle {vehicle.id}: {', '.join(sorted(changes)) or 'no changes'}")
        return vehicle

    async def deactivate_vehicle(self, actor: User, vehicle_id: str) -> Vehicle:
        """Soft delete - quotes and policies keep referencing the row"""
        vehicle = await self.get_vehicle(actor, vehicle_id)
        vehicle.is_active = False
        await self._vehicles.save(vehicle)

        logger.info(f"Deactivated vehicle {vehicle.id}")
        return vehicle
