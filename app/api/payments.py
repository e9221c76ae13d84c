"""
Payments API - record payments and report their outcome.
"""
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user, require_staff
from app.db.connection import get_db_session
from app.db.models import Payment, PaymentMethod, PaymentStatus, PaymentType, User
from app.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Pydantic Models
# ============================================

class CreatePaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, examples=["100.00"])
    payment_method: PaymentMethod
    payment_type: PaymentType = PaymentType.PREMIUM
    due_date: Optional[date] = Field(None, description="Defaults to today")
    policy_id: Optional[str] = None
    payment_provider: Optional[str] = Field(None, max_length=100)
    provider_transaction_id: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    metadata: Optional[dict] = None


class ProcessPaymentRequest(BaseModel):
    provider_transaction_id: Optional[str] = Field(None, max_length=255)


class FailPaymentRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class PaymentResponse(BaseModel):
    id: str
    transaction_id: str
    amount: Decimal
    status: PaymentStatus
    payment_method: PaymentMethod
    payment_type: PaymentType
    payment_provider: Optional[str] = None
    provider_transaction_id: Optional[str] = None
    due_date: date
    processed_at: Optional[datetime] = None
    description: Optional[str] = None
    failure_reason: Optional[str] = None
    retry_count: int
    next_retry_at: Optional[datetime] = None
    metadata: Optional[dict] = None
    payer_id: str
    policy_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_payment(cls, payment: Payment) -> "PaymentResponse":
        # The ORM attribute is payment_metadata ("metadata" is reserved by SQLAlchemy)
        data = {name: getattr(payment, name) for name in cls.model_fields if name != "metadata"}
        return cls(metadata=payment.payment_metadata, **data)


# ============================================
# Endpoints
# ============================================

@router.post("/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    request: CreatePaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """Record a pending payment"""
    payment = await PaymentService(db).create_payment(user, **request.model_dump())
    return PaymentResponse.from_payment(payment)


@router.get("/payments", response_model=List[PaymentResponse])
async def list_payments(
    status: Optional[PaymentStatus] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    payments = await PaymentService(db).list_payments(user, status)
    return [PaymentResponse.from_payment(p) for p in payments]


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    payment = await PaymentService(db).get_payment(user, payment_id)
    return PaymentResponse.from_payment(payment)


@router.post("/payments/{payment_id}/process", response_model=PaymentResponse)
async def process_payment(
    payment_id: str,
    request: ProcessPaymentRequest,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db_session)
):
    """Mark a payment completed and apply it to its policy (agents/admins)"""
    payment = await PaymentService(db).process_payment(user, payment_id, request.provider_transaction_id)
    return PaymentResponse.from_payment(payment)


@router.post("/payments/{payment_id}/fail", response_model=PaymentResponse)
async def fail_payment(
    payment_id: str,
    request: FailPaymentRequest,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db_session)
):
    """Record a failed attempt and schedule a retry in 24 hours (agents/admins)"""
    payment = await PaymentService(db).fail_payment(user, payment_id, request.reason)
    return PaymentResponse.from_payment(payment)
