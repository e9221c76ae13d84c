"""
Policy Service - quoting, binding and cancelling policies.

Lifecycle:
    Quote(pending) --accept--> Quote(accepted) + Policy(active|pending)
    Quote(pending) --decline--> Quote(declined)
    Quote(pending, past quote_expires_at) --accept--> Quote(expired), rejected
    Policy(pending|active|suspended) --cancel--> Policy(cancelled)
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import (
    PaymentFrequency,
    Policy,
    PolicyStatus,
    Quote,
    QuoteStatus,
    User,
    UserRole,
    default_expiration_date,
    quantize_money,
)
from app.domain.exceptions import BadRequestError, InvalidStatusTransitionError, NotFoundError
from app.domain.value_objects import ReferencePrefix, generate_reference_number
from app.repositories.policy_repository import PolicyRepository
from app.repositories.quote_repository import QuoteRepository
from app.repositories.vehicle_repository import VehicleRepository
from app.services.vehicle_service import resolve_owner
from app.utils.datetime_utils import add_months, as_utc, today, utcnow

logger = logging.getLogger(__name__)

QUOTE_VALIDITY = timedelta(days=30)
DEFAULT_GRACE_PERIOD_DAYS = 10
CANCELLABLE_STATUSES = {PolicyStatus.PENDING, PolicyStatus.ACTIVE, PolicyStatus.SUSPENDED}

# Months between scheduled payments
BILLING_INTERVAL_MONTHS = {
    PaymentFrequency.MONTHLY: 1,
    PaymentFrequency.QUARTERLY: 3,
    PaymentFrequency.SEMI_ANNUAL: 6,
    PaymentFrequency.ANNUAL: 12,
}


def price_quote(base_premium: Decimal, discount_percentage: Decimal) -> dict:
    """
    Derive quote totals from the base premium and discount.

    Example:
        >>> price_quote(Decimal("1200"), Decimal("10"))["monthly_premium"]
        Decimal('90.00')
    """
    base = quantize_money(base_premium)
    pct = Decimal(discount_percentage or 0)
    if base <= 0:
        raise BadRequestError("Base premium must be positive")
    if pct < 0 or pct > 100:
        raise BadRequestError("Discount percentage must be between 0 and 100")

    discount_amount = quantize_money(base * pct / Decimal(100))
    total = quantize_money(base - discount_amount)
    return {
        "base_premium": base,
        "discount_percentage": quantize_money(pct),
        "discount_amount": discount_amount,
        "total_premium": total,
        "monthly_premium": quantize_money(total / Decimal(12)),
    }


class PolicyService:
    """Service for quotes and policies"""

    def __init__(self, db: AsyncSession):
        self._db = db
        self._quotes = QuoteRepository(db)
        self._policies = PolicyRepository(db)
        self._vehicles = VehicleRepository(db)

    # ============================================
    # Quotes
    # ============================================

    async def create_quote(
        self,
        actor: User,
        vehicle_id: str,
        base_premium: Decimal,
        payment_frequency: PaymentFrequency,
        effective_date: date,
        expiration_date: Optional[date] = None,
        discount_percentage: Decimal = Decimal("0"),
        coverage_details: Optional[dict] = None,
        risk_factors: Optional[dict] = None,
        discount_factors: Optional[dict] = None,
        notes: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> Quote:
        """
        Raises:
            BadRequestError: For an unknown/inactive/foreign vehicle or bad pricing
        """
        customer_id = await resolve_owner(self._db, actor, customer_id)

        vehicle = await self._vehicles.get_by_id(vehicle_id)
        if not vehicle or not vehicle.is_active or vehicle.owner_id != customer_id:
            raise BadRequestError("Vehicle not found for this customer")

        if effective_date < today():
            raise BadRequestError("Effective date cannot be in the past")

        expiration_date = expiration_date or default_expiration_date(effective_date)
        # Same term rules as the policy the quote would become
        Policy(effective_date=effective_date, expiration_date=expiration_date).validate_dates()

        pricing = price_quote(base_premium, discount_percentage)

        quote = Quote(
            quote_number=generate_reference_number(ReferencePrefix.QUOTE),
            payment_frequency=payment_frequency,
            effective_date=effective_date,
            expiration_date=expiration_date,
            quote_expires_at=utcnow() + QUOTE_VALIDITY,
            status=QuoteStatus.PENDING,
            coverage_details=coverage_details or {},
            risk_factors=risk_factors,
            discount_factors=discount_factors,
            notes=notes,
            customer_id=customer_id,
            vehicle_id=vehicle.id,
            agent_id=actor.id if actor.role == UserRole.AGENT else None,
            **pricing,
        )
        await self._quotes.add(quote)

        logger.info(f"Created quote {quote.quote_number} for customer {customer_id}: total {quote.total_premium}")
        return quote

    async def get_quote(self, actor: User, quote_id: str) -> Quote:
        quote = await self._quotes.get_visible_to(quote_id, actor)
        if not quote:
            raise NotFoundError("Quote not found")
        return quote

    async def list_quotes(self, actor: User, status: Optional[QuoteStatus] = None) -> List[Quote]:
        criteria = [Quote.status == status] if status else []
        return await self._quotes.list_visible_to(actor, *criteria)

    async def _require_pending(self, quote: Quote) -> None:
        if quote.status != QuoteStatus.PENDING:
            raise InvalidStatusTransitionError("quote", quote.status.value, "accepted")

        if as_utc(quote.quote_expires_at) < utcnow():
            quote.status = QuoteStatus.EXPIRED
            # Commit now: the error below rolls back the request session
            await self._db.commit()
            logger.info(f"Quote {quote.quote_number} expired before acceptance")
            raise BadRequestError("Quote has expired")

    async def accept_quote(self, actor: User, quote_id: str) -> Policy:
        """
        Bind a policy from a pending quote.

        The policy starts active when its effective date has arrived, pending
        otherwise.

        Raises:
            BadRequestError: If the quote is not pending or has expired
        """
        quote = await self.get_quote(actor, quote_id)
        await self._require_pending(quote)

        if quote.effective_date < today():
            raise BadRequestError("Quote effective date has passed; request a new quote")

        policy = Policy(
            status=PolicyStatus.ACTIVE if quote.effective_date <= today() else PolicyStatus.PENDING,
            effective_date=quote.effective_date,
            expiration_date=quote.expiration_date,
            premium_amount=quote.total_premium,
            payment_frequency=quote.payment_frequency,
            monthly_premium=quote.monthly_premium,
            next_payment_due=quote.effective_date,
            grace_period_days=DEFAULT_GRACE_PERIOD_DAYS,
            coverage_details=quote.coverage_details or {},
            outstanding_balance=quote.total_premium,
            auto_renew=True,
            quote_id=quote.id,
            customer_id=quote.customer_id,
            vehicle_id=quote.vehicle_id,
            agent_id=quote.agent_id or (actor.id if actor.role == UserRole.AGENT else None),
        )
        policy.validate_dates()
        policy.generate_policy_number()

        quote.status = QuoteStatus.ACCEPTED
        await self._policies.add(policy)

        logger.info(
            f"Quote {quote.quote_number} accepted: policy {policy.policy_number} ({policy.status.value})"
        )
        return policy

    async def decline_quote(self, actor: User, quote_id: str) -> Quote:
        quote = await self.get_quote(actor, quote_id)
        if quote.status != QuoteStatus.PENDING:
            raise InvalidStatusTransitionError("quote", quote.status.value, QuoteStatus.DECLINED.value)

        quote.status = QuoteStatus.DECLINED
        await self._quotes.save(quote)

        logger.info(f"Quote {quote.quote_number} declined")
        return quote

    # ============================================
    # Policies
    # ============================================

    async def get_policy(self, actor: User, policy_id: str) -> Policy:
        policy = await self._policies.get_visible_to(policy_id, actor)
        if not policy:
            raise NotFoundError("Policy not found")
        return policy

    async def list_policies(self, actor: User, status: Optional[PolicyStatus] = None) -> List[Policy]:
        criteria = [Policy.status == status] if status else []
        return await self._policies.list_visible_to(actor, *criteria)

    async def cancel_policy(self, actor: User, policy_id: str, reason: str) -> Policy:
        """
        Raises:
            InvalidStatusTransitionError: If the policy is already cancelled or expired
        """
        policy = await self.get_policy(actor, policy_id)
        if policy.status not in CANCELLABLE_STATUSES:
            raise InvalidStatusTransitionError("policy", policy.status.value, PolicyStatus.CANCELLED.value)

        policy.status = PolicyStatus.CANCELLED
        policy.cancellation_reason = reason
        policy.cancellation_date = today()
        policy.auto_renew = False
        await self._policies.save(policy)

        logger.info(f"Cancelled policy {policy.policy_number}")
        return policy

    @staticmethod
    def advance_payment_schedule(policy: Policy) -> None:
        """Move next_payment_due one billing interval forward"""
        if policy.next_payment_due is None:
            return
        interval = BILLING_INTERVAL_MONTHS[policy.payment_frequency]
        next_due = add_months(policy.next_payment_due, interval)
        policy.next_payment_due = next_due if next_due <= policy.expiration_date else None
