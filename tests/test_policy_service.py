"""
Tests for quoting, binding and billing rules at the service level
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.db.models import (
    ClaimStatus,
    PaymentFrequency,
    Policy,
    PolicyStatus,
    QuoteStatus,
    User,
    UserRole,
    Vehicle,
)
from app.domain.exceptions import BadRequestError, InvalidStatusTransitionError
from app.services.claim_service import can_transition
from app.services.policy_service import PolicyService, price_quote
from app.utils.datetime_utils import today, utcnow
from app.utils.password_hash import hash_password


# ============================================
# Pricing
# ============================================

def test_price_quote_applies_discount():
    pricing = price_quote(Decimal("1200"), Decimal("10"))

    assert pricing["base_premium"] == Decimal("1200.00")
    assert pricing["discount_amount"] == Decimal("120.00")
    assert pricing["total_premium"] == Decimal("1080.00")
    assert pricing["monthly_premium"] == Decimal("90.00")


def test_price_quote_rounds_to_cents():
    pricing = price_quote(Decimal("999.99"), Decimal("12.5"))

    assert pricing["discount_amount"] == Decimal("125.00")
    assert pricing["total_premium"] == Decimal("874.99")
    assert pricing["monthly_premium"] == Decimal("72.92")


@pytest.mark.parametrize("base, pct", [
    (Decimal("0"), Decimal("0")),
    (Decimal("-10"), Decimal("0")),
    (Decimal("100"), Decimal("-1")),
    (Decimal("100"), Decimal("101")),
])
def test_price_quote_rejects_invalid_input(base, pct):
    with pytest.raises(BadRequestError):
        price_quote(base, pct)


# ============================================
# Billing schedule
# ============================================

def _billing_policy(frequency, next_due, expiration=date(2026, 12, 31)):
    return Policy(
        effective_date=date(2026, 1, 1),
        expiration_date=expiration,
        payment_frequency=frequency,
        next_payment_due=next_due,
    )


@pytest.mark.parametrize("frequency, expected", [
    (PaymentFrequency.MONTHLY, date(2026, 2, 15)),
    (PaymentFrequency.QUARTERLY, date(2026, 4, 15)),
    (PaymentFrequency.SEMI_ANNUAL, date(2026, 7, 15)),
])
def test_advance_payment_schedule(frequency, expected):
    policy = _billing_policy(frequency, date(2026, 1, 15))

    PolicyService.advance_payment_schedule(policy)

    assert policy.next_payment_due == expected


def test_advance_payment_schedule_past_expiration_clears_due_date():
    policy = _billing_policy(PaymentFrequency.ANNUAL, date(2026, 1, 1))

    PolicyService.advance_payment_schedule(policy)

    assert policy.next_payment_due is None


def test_advance_payment_schedule_without_due_date():
    policy = _billing_policy(PaymentFrequency.MONTHLY, None)

    PolicyService.advance_payment_schedule(policy)

    assert policy.next_payment_due is None


# ============================================
# Claim transitions
# ============================================

@pytest.mark.parametrize("current, requested, allowed", [
    (ClaimStatus.SUBMITTED, ClaimStatus.UNDER_REVIEW, True),
    (ClaimStatus.UNDER_REVIEW, ClaimStatus.APPROVED, True),
    (ClaimStatus.INVESTIGATING, ClaimStatus.DENIED, True),
    (ClaimStatus.APPROVED, ClaimStatus.SETTLED, True),
    (ClaimStatus.DENIED, ClaimStatus.CLOSED, True),
    (ClaimStatus.SUBMITTED, ClaimStatus.APPROVED, False),
    (ClaimStatus.APPROVED, ClaimStatus.DENIED, False),
    (ClaimStatus.CLOSED, ClaimStatus.UNDER_REVIEW, False),
])
def test_claim_transitions(current, requested, allowed):
    assert can_transition(current, requested) is allowed


# ============================================
# Quote lifecycle against the database
# ============================================

async def _customer_with_vehicle(db_session):
    customer = User(
        email="customer@example.com",
        password_hash=hash_password("SecurePassword123!"),
        first_name="Jane",
        last_name="Doe",
        role=UserRole.CUSTOMER,
    )
    db_session.add(customer)
    await db_session.flush()

    vehicle = Vehicle(vin="1HGCM82633A004352", make="Honda", model="Accord", year=2020, owner_id=customer.id)
    db_session.add(vehicle)
    await db_session.flush()
    return customer, vehicle


@pytest.mark.asyncio
async def test_accept_quote_binds_active_policy(db_session):
    customer, vehicle = await _customer_with_vehicle(db_session)
    service = PolicyService(db_session)

    quote = await service.create_quote(
        customer, vehicle.id, Decimal("1200"), PaymentFrequency.MONTHLY, today(),
        discount_percentage=Decimal("10"),
    )
    policy = await service.accept_quote(customer, quote.id)

    assert quote.status == QuoteStatus.ACCEPTED
    assert policy.status == PolicyStatus.ACTIVE
    assert policy.quote_id == quote.id
    assert policy.premium_amount == Decimal("1080.00")
    assert policy.outstanding_balance == Decimal("1080.00")
    assert policy.next_payment_due == today()
    assert policy.grace_period_days == 10
    assert policy.is_active() is True


@pytest.mark.asyncio
async def test_accept_quote_with_future_start_is_pending(db_session):
    customer, vehicle = await _customer_with_vehicle(db_session)
    service = PolicyService(db_session)

    quote = await service.create_quote(
        customer, vehicle.id, Decimal("1200"), PaymentFrequency.ANNUAL, today() + timedelta(days=14),
    )
    policy = await service.accept_quote(customer, quote.id)

    assert policy.status == PolicyStatus.PENDING


@pytest.mark.asyncio
async def test_accept_expired_quote(db_session):
    customer, vehicle = await _customer_with_vehicle(db_session)
    service = PolicyService(db_session)

    quote = await service.create_quote(customer, vehicle.id, Decimal("1200"), PaymentFrequency.MONTHLY, today())
    quote.quote_expires_at = utcnow() - timedelta(minutes=1)

    with pytest.raises(BadRequestError, match="Quote has expired"):
        await service.accept_quote(customer, quote.id)
    assert quote.status == QuoteStatus.EXPIRED


@pytest.mark.asyncio
async def test_accept_quote_twice(db_session):
    customer, vehicle = await _customer_with_vehicle(db_session)
    service = PolicyService(db_session)

    quote = await service.create_quote(customer, vehicle.id, Decimal("1200"), PaymentFrequency.MONTHLY, today())
    await service.accept_quote(customer, quote.id)

    with pytest.raises(InvalidStatusTransitionError):
        await service.accept_quote(customer, quote.id)


@pytest.mark.asyncio
async def test_quote_for_inactive_vehicle(db_session):
    customer, vehicle = await _customer_with_vehicle(db_session)
    vehicle.is_active = False

    with pytest.raises(BadRequestError, match="Vehicle not found for this customer"):
        await PolicyService(db_session).create_quote(
            customer, vehicle.id, Decimal("1200"), PaymentFrequency.MONTHLY, today(),
        )
