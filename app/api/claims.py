"""
Claims API - file claims and review them.

Customers file and view claims on their own policies. Agents and admins
review claims through PATCH /claims/{claim_id}.
"""
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user, require_staff
from app.db.connection import get_db_session
from app.db.models import ClaimStatus, CoverageType, User
from app.services.claim_service import ClaimService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Pydantic Models
# ============================================

class FileClaimRequest(BaseModel):
    policy_id: str
    claim_type: CoverageType = Field(..., examples=["collision"])
    incident_date: date
    reported_date: Optional[date] = Field(None, description="Defaults to today")
    description: str = Field(..., min_length=1)
    location: Optional[str] = Field(None, max_length=255)
    estimated_amount: Optional[Decimal] = Field(None, ge=0)
    is_at_fault: bool = False
    police_report_number: Optional[str] = Field(None, max_length=255)
    involved_parties: Optional[List[dict]] = None
    witnesses: Optional[List[dict]] = None


class UpdateClaimRequest(BaseModel):
    """Review update - only fields present in the body are applied"""
    status: Optional[ClaimStatus] = None
    approved_amount: Optional[Decimal] = Field(None, ge=0)
    settled_amount: Optional[Decimal] = Field(None, ge=0)
    denial_reason: Optional[str] = None
    adjuster_notes: Optional[str] = None
    is_fraudulent: Optional[bool] = None
    fraud_score: Optional[Decimal] = Field(None, ge=0, le=1)


class ClaimResponse(BaseModel):
    id: str
    claim_number: str
    status: ClaimStatus
    claim_type: str
    incident_date: date
    reported_date: date
    description: str
    location: Optional[str] = None
    estimated_amount: Optional[Decimal] = None
    approved_amount: Optional[Decimal] = None
    settled_amount: Optional[Decimal] = None
    deductible_amount: Optional[Decimal] = None
    is_at_fault: bool
    police_report_number: Optional[str] = None
    involved_parties: Optional[Any] = None
    witnesses: Optional[Any] = None
    adjuster_notes: Optional[str] = None
    closed_date: Optional[date] = None
    denial_reason: Optional[str] = None
    is_fraudulent: bool
    fraud_score: Optional[Decimal] = None
    policy_id: str
    claimant_id: str
    adjuster_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ============================================
# Endpoints
# ============================================

@router.post("/claims", response_model=ClaimResponse, status_code=status.HTTP_201_CREATED)
async def file_claim(
    request: FileClaimRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """File a claim. 400 if the incident falls outside the policy term."""
    data = request.model_dump()
    data["claim_type"] = request.claim_type.value
    claim = await ClaimService(db).file_claim(user, **data)
    return ClaimResponse.model_validate(claim)


@router.get("/claims", response_model=List[ClaimResponse])
async def list_claims(
    status: Optional[ClaimStatus] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    claims = await ClaimService(db).list_claims(user, status)
    return [ClaimResponse.model_validate(c) for c in claims]


@router.get("/claims/{claim_id}", response_model=ClaimResponse)
async def get_claim(
    claim_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    claim = await ClaimService(db).get_claim(user, claim_id)
    return ClaimResponse.model_validate(claim)


@router.patch("/claims/{claim_id}", response_model=ClaimResponse)
async def update_claim(
    claim_id: str,
    request: UpdateClaimRequest,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db_session)
):
    """Review a claim (agents/admins). 400 for an invalid status transition."""
    claim = await ClaimService(db).update_claim(user, claim_id, **request.model_dump(exclude_unset=True))
    return ClaimResponse.model_validate(claim)
