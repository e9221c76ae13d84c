"""
Quote API - price a vehicle and bind a policy from an accepted quote.
"""
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.api.policies import PolicyResponse
from app.db.connection import get_db_session
from app.db.models import PaymentFrequency, QuoteStatus, User
from app.services.policy_service import PolicyService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Pydantic Models
# ============================================

class CreateQuoteRequest(BaseModel):
    vehicle_id: str
    base_premium: Decimal = Field(..., gt=0, examples=["1200.00"])
    discount_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    effective_date: date
    expiration_date: Optional[date] = Field(None, description="Defaults to a one-year term")
    coverage_details: Optional[dict] = Field(None, examples=[{"liability": 100000, "collision": 25000}])
    risk_factors: Optional[dict] = None
    discount_factors: Optional[dict] = None
    notes: Optional[str] = None
    customer_id: Optional[str] = Field(None, description="Agents/admins only: the customer being quoted")


class QuoteResponse(BaseModel):
    id: str
    quote_number: str
    status: QuoteStatus
    base_premium: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    total_premium: Decimal
    monthly_premium: Decimal
    payment_frequency: PaymentFrequency
    effective_date: date
    expiration_date: date
    quote_expires_at: datetime
    coverage_details: Optional[dict] = None
    risk_factors: Optional[dict] = None
    discount_factors: Optional[dict] = None
    notes: Optional[str] = None
    customer_id: str
    vehicle_id: str
    agent_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================
# Endpoints
# ============================================

@router.post("/quotes", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def create_quote(
    request: CreateQuoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """Create a quote for one of the customer's vehicles. Valid for 30 days."""
    quote = await PolicyService(db).create_quote(user, **request.model_dump())
    return QuoteResponse.model_validate(quote)


@router.get("/quotes", response_model=List[QuoteResponse])
async def list_quotes(
    status: Optional[QuoteStatus] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    quotes = await PolicyService(db).list_quotes(user, status)
    return [QuoteResponse.model_validate(q) for q in quotes]


@router.get("/quotes/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    quote = await PolicyService(db).get_quote(user, quote_id)
    return QuoteResponse.model_validate(quote)


@router.post("/quotes/{quote_id}/accept", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def accept_quote(
    quote_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """Accept a pending quote and bind the policy. 400 if not pending or expired."""
    policy = await PolicyService(db).accept_quote(user, quote_id)
    return PolicyResponse.from_policy(policy)


@router.post("/quotes/{quote_id}/decline", response_model=QuoteResponse)
async def decline_quote(
    quote_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    quote = await PolicyService(db).decline_quote(user, quote_id)
    return QuoteResponse.model_validate(quote)
