"""
Payment Service - recording payments and applying them to policies.

No payment provider is called here: processing a payment records the
outcome reported by staff (or a provider callback) and updates the policy's
billing state.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import (
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    PolicyStatus,
    User,
    quantize_money,
)
from app.domain.exceptions import BadRequestError, InvalidStatusTransitionError, NotFoundError
from app.domain.value_objects import ReferencePrefix, generate_reference_number
from app.repositories.payment_repository import PaymentRepository
from app.repositories.policy_repository import PolicyRepository
from app.services.policy_service import PolicyService
from app.utils.datetime_utils import today, utcnow

logger = logging.getLogger(__name__)

RETRY_DELAY = timedelta(hours=24)
PROCESSABLE_STATUSES = {PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FAILED}
# Premiums only reduce the balance of policies that are still in force or about to be
BILLABLE_POLICY_STATUSES = {PolicyStatus.PENDING, PolicyStatus.ACTIVE, PolicyStatus.SUSPENDED}


class PaymentService:
    """Service for payments"""

    def __init__(self, db: AsyncSession):
        self._payments = PaymentRepository(db)
        self._policies = PolicyRepository(db)

    async def create_payment(
        self,
        actor: User,
        amount: Decimal,
        payment_method: PaymentMethod,
        payment_type: PaymentType,
        due_date: Optional[date] = None,
        policy_id: Optional[str] = None,
        payment_provider: Optional[str] = None,
        provider_transaction_id: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Payment:
        """
        Record a pending payment.

        Raises:
            BadRequestError: For a non-positive amount
            NotFoundError: If the policy does not exist or belongs to another customer
        """
        amount = quantize_money(amount)
        if amount <= 0:
            raise BadRequestError("Amount must be greater than zero")

        payer_id = actor.id
        if policy_id:
            policy = await self._policies.get_visible_to(policy_id, actor)
            if not policy:
                raise NotFoundError("Policy not found")
            # Payments on a policy are booked to the policyholder
            payer_id = policy.customer_id

        payment = Payment(
            transaction_id=generate_reference_number(ReferencePrefix.TRANSACTION),
            amount=amount,
            status=PaymentStatus.PENDING,
            payment_method=payment_method,
            payment_type=payment_type,
            payment_provider=payment_provider,
            provider_transaction_id=provider_transaction_id,
            due_date=due_date or today(),
            description=description,
            payment_metadata=metadata,
            retry_count=0,
            payer_id=payer_id,
            policy_id=policy_id,
        )
        await self._payments.add(payment)

        logger.info(f"Recorded payment {payment.transaction_id} ({payment.payment_type.value}, {amount})")
        return payment

    async def get_payment(self, actor: User, payment_id: str) -> Payment:
        payment = await self._payments.get_visible_to(payment_id, actor)
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    async def list_payments(self, actor: User, status: Optional[PaymentStatus] = None) -> List[Payment]:
        criteria = [Payment.status == status] if status else []
        return await self._payments.list_visible_to(actor, *criteria)

    async def process_payment(
        self,
        actor: User,
        payment_id: str,
        provider_transaction_id: Optional[str] = None,
    ) -> Payment:
        """
        Mark a payment completed and apply premiums to the policy.

        Raises:
            InvalidStatusTransitionError: If the payment is already settled
        """
        payment = await self.get_payment(actor, payment_id)
        if payment.status not in PROCESSABLE_STATUSES:
            raise InvalidStatusTransitionError("payment", payment.status.value, PaymentStatus.COMPLETED.value)

        payment.status = PaymentStatus.COMPLETED
        payment.processed_at = utcnow()
        payment.failure_reason = None
        payment.next_retry_at = None
        if provider_transaction_id:
            payment.provider_transaction_id = provider_transaction_id

        if payment.policy_id and payment.payment_type == PaymentType.PREMIUM:
            policy = await self._policies.get_by_id(payment.policy_id)
            policy.last_payment_date = today()
            if policy.status not in BILLABLE_POLICY_STATUSES:
                logger.warning(
                    f"Payment {payment.transaction_id} completed on {policy.status.value} policy "
                    f"{policy.policy_number}; balance and schedule left unchanged"
                )
            else:
                self._apply_premium(policy, payment)
            await self._policies.save(policy)

        await self._payments.save(payment)
        logger.info(f"Payment {payment.transaction_id} completed")
        return payment

    async def fail_payment(self, actor: User, payment_id: str, reason: str) -> Payment:
        """Record a failed attempt and schedule a retry"""
        payment = await self.get_payment(actor, payment_id)
        if payment.status not in PROCESSABLE_STATUSES:
            raise InvalidStatusTransitionError("payment", payment.status.value, PaymentStatus.FAILED.value)

        payment.status = PaymentStatus.FAILED
        payment.failure_reason = reason
        payment.retry_count = (payment.retry_count or 0) + 1
        payment.next_retry_at = utcnow() + RETRY_DELAY
        await self._payments.save(payment)

        logger.warning(f"Payment {payment.transaction_id} failed (attempt {payment.retry_count}): {reason}")
        return payment

    @staticmethod
    def _apply_premium(policy, payment: Payment) -> None:
        balance = Decimal(policy.outstanding_balance or 0) - Decimal(payment.amount)
        policy.outstanding_balance = quantize_money(max(balance, Decimal("0")))
        PolicyService.advance_payment_schedule(policy)
        logger.info(
            f"Applied payment {payment.transaction_id} to policy {policy.policy_number}: "
            f"balance {policy.outstanding_balance}, next due {policy.next_payment_due}"
        )
