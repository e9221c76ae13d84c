"""
Policy API - view and cancel bound policies.

Policy responses include derived term information (expiry countdown,
renewal window, grace period) computed from the policy dates.
"""
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.db.connection import get_db_session
from app.db.models import ClaimStatus, PaymentFrequency, Policy, PolicyStatus, User
from app.services.claim_service import ClaimService
from app.services.policy_service import PolicyService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Pydantic Models
# ============================================

class CancelPolicyRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class PolicyResponse(BaseModel):
    id: str
    policy_number: str
    status: PolicyStatus
    effective_date: date
    expiration_date: date
    premium_amount: Decimal
    payment_frequency: PaymentFrequency
    monthly_premium: Decimal
    next_payment_due: Optional[date] = None
    grace_period_days: int
    coverage_details: dict
    deductible: Optional[Decimal] = None
    coverage_limit: Optional[Decimal] = None
    last_payment_date: Optional[date] = None
    outstanding_balance: Decimal
    cancellation_reason: Optional[str] = None
    cancellation_date: Optional[date] = None
    auto_renew: bool
    notes: Optional[str] = None
    quote_id: str
    customer_id: str
    vehicle_id: str
    agent_id: Optional[str] = None
    created_at: datetime

    # Derived from the dates above
    is_expired: bool
    days_until_expiration: int
    needs_renewal: bool
    is_in_grace_period: bool

    @classmethod
    def from_policy(cls, policy: Policy) -> "PolicyResponse":
        columns = {column.key: getattr(policy, column.key) for column in Policy.__table__.columns}
        return cls(
            **{name: value for name, value in columns.items() if name in cls.model_fields},
            is_expired=policy.is_expired(),
            days_until_expiration=policy.days_until_expiration(),
            needs_renewal=policy.needs_renewal(),
            is_in_grace_period=policy.is_in_grace_period(),
        )


class PolicyClaimSummary(BaseModel):
    id: str
    claim_number: str
    status: ClaimStatus
    claim_type: str
    incident_date: date

    class Config:
        from_attributes = True


# ============================================
# Endpoints
# ============================================

@router.get("/policies", response_model=List[PolicyResponse])
async def list_policies(
    status: Optional[PolicyStatus] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    policies = await PolicyService(db).list_policies(user, status)
    return [PolicyResponse.from_policy(p) for p in policies]


@router.get("/policies/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    policy = await PolicyService(db).get_policy(user, policy_id)
    return PolicyResponse.from_policy(policy)


@router.get("/policies/{policy_id}/claims", response_model=List[PolicyClaimSummary])
async def list_policy_claims(
    policy_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """Claims filed against a policy"""
    policy = await PolicyService(db).get_policy(user, policy_id)
    claims = await ClaimService(db).list_policy_claims(policy.id)
    return [PolicyClaimSummary.model_validate(c) for c in claims]


@router.post("/policies/{policy_id}/cancel", response_model=PolicyResponse)
async def cancel_policy(
    policy_id: str,
    request: CancelPolicyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """Cancel a pending, active or suspended policy. 400 otherwise."""
    policy = await PolicyService(db).cancel_policy(user, policy_id, request.reason)
    return PolicyResponse.from_policy(policy)
