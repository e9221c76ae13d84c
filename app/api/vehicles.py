"""
Vehicle API - register and maintain insured vehicles.

Customers manage their own vehicles; agents and admins may register a
vehicle for a customer by passing owner_id.
"""
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.db.connection import get_db_session
from app.db.models import User
from app.services.vehicle_service import VehicleService
from app.utils.datetime_utils import today

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_MODEL_YEAR = 1900


def _validate_year(value: Optional[int]) -> Optional[int]:
    if value is not None and not (MIN_MODEL_YEAR <= value <= today().year + 1):
        raise ValueError(f"must be between {MIN_MODEL_YEAR} and next year")
    return value


# ============================================
# Pydantic Models
# ============================================

class VehicleDetails(BaseModel):
    """Optional descriptive fields shared by create and update"""
    trim: Optional[str] = Field(None, max_length=50)
    body_style: Optional[str] = Field(None, max_length=50)
    engine_type: Optional[str] = Field(None, max_length=50)
    transmission: Optional[str] = Field(None, max_length=50)
    fuel_type: Optional[str] = Field(None, max_length=50)
    mileage: Optional[int] = Field(None, ge=0)
    color: Optional[str] = Field(None, max_length=50)
    license_plate: Optional[str] = Field(None, max_length=20)
    registration_state: Optional[str] = Field(None, max_length=50)
    purchase_price: Optional[Decimal] = Field(None, ge=0)
    current_value: Optional[Decimal] = Field(None, ge=0)
    purchase_date: Optional[date] = None
    usage: Optional[str] = Field(None, max_length=50, examples=["personal"])
    annual_mileage: Optional[int] = Field(None, ge=0)
    parking_location: Optional[str] = Field(None, max_length=50, examples=["garage"])


class CreateVehicleRequest(VehicleDetails):
    vin: str = Field(..., min_length=17, max_length=17, examples=["1HGCM82633A004352"])
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int
    has_anti_theft_device: bool = False
    has_airbags: bool = False
    has_abs: bool = False
    owner_id: Optional[str] = Field(None, description="Agents/admins only: the customer who owns the vehicle")

    @field_validator("vin")
    @classmethod
    def validate_vin(cls, value: str) -> str:
        # VINs never contain I, O or Q
        if not value.isalnum() or set(value.upper()) & {"I", "O", "Q"}:
            raise ValueError("must be a valid 17-character VIN")
        return value.upper()

    @field_validator("year")
    @classmethod
    def validate_year(cls, value: int) -> int:
        return _validate_year(value)


class UpdateVehicleRequest(VehicleDetails):
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = None
    has_anti_theft_device: Optional[bool] = None
    has_airbags: Optional[bool] = None
    has_abs: Optional[bool] = None

    @field_validator("year")
    @classmethod
    def validate_year(cls, value: Optional[int]) -> Optional[int]:
        return _validate_year(value)


class VehicleResponse(VehicleDetails):
    id: str
    vin: str
    make: str
    model: str
    year: int
    has_anti_theft_device: bool
    has_airbags: bool
    has_abs: bool
    is_active: bool
    owner_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ============================================
# Endpoints
# ============================================

@router.post("/vehicles", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    request: CreateVehicleRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """Register a vehicle. 409 if the VIN is already registered."""
    vehicle = await VehicleService(db).create_vehicle(user, request.model_dump())
    return VehicleResponse.model_validate(vehicle)


@router.get("/vehicles", response_model=List[VehicleResponse])
async def list_vehicles(
    include_inactive: bool = False,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    vehicles = await VehicleService(db).list_vehicles(user, include_inactive, limit=limit, offset=offset)
    return [VehicleResponse.model_validate(v) for v in vehicles]


@router.get("/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    vehicle = await VehicleService(db).get_vehicle(user, vehicle_id)
    return VehicleResponse.model_validate(vehicle)


@router.patch("/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: str,
    request: UpdateVehicleRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """Update descriptive fields. Only fields present in the body change."""
    changes = request.model_dump(exclude_unset=True)
    vehicle = await VehicleService(db).update_vehicle(user, vehicle_id, changes)
    return VehicleResponse.model_validate(vehicle)


@router.delete("/vehicles/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """Deactivate a vehicle (soft delete)"""
    await VehicleService(db).deactivate_vehicle(user, vehicle_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
