"""
SQLAlchemy ORM models for database tables.

All primary keys are UUID strings so the schema runs unchanged on SQLite
(development/tests) and PostgreSQL (production). Relationships are expressed
through foreign key columns only; async sessions cannot lazy-load, so
related rows are fetched explicitly through the repositories.
"""
import enum
import uuid
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

from app.domain.exceptions import InvalidPolicyDatesError
from app.domain.value_objects import ReferencePrefix, generate_reference_number
from app.utils.datetime_utils import add_years, today, utcnow
from app.utils.password_hash import verify_password

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


# ============================================
# Enums
# ============================================

class UserRole(str, enum.Enum):
    """User roles for access control"""
    CUSTOMER = "customer"  # Sees only their own records
    AGENT = "agent"  # Sells and services policies for any customer
    ADMIN = "admin"


class PolicyStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ClaimStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    INVESTIGATING = "investigating"
    APPROVED = "approved"
    DENIED = "denied"
    SETTLED = "settled"
    CLOSED = "closed"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class QuoteStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    DECLINED = "declined"


class CoverageType(str, enum.Enum):
    LIABILITY = "liability"
    COLLISION = "collision"
    COMPREHENSIVE = "comprehensive"
    UNINSURED_MOTORIST = "uninsured_motorist"
    PERSONAL_INJURY_PROTECTION = "personal_injury_protection"
    MEDICAL_PAYMENTS = "medical_payments"
    ROADSIDE_ASSISTANCE = "roadside_assistance"
    RENTAL_REIMBURSEMENT = "rental_reimbursement"


class PaymentFrequency(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi-annual"
    ANNUAL = "annual"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"


class PaymentType(str, enum.Enum):
    PREMIUM = "premium"
    DEDUCTIBLE = "deductible"
    FEE = "fee"
    REFUND = "refund"


# ============================================
# Shared columns
# ============================================

class TimestampMixin:
    """id/created_at/updated_at shared by every table"""

    id = Column(String(36), primary_key=True, default=_uuid)
    # Python-side defaults so values are known right after flush (no lazy refresh in async)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


# ============================================
# Users
# ============================================

class User(TimestampMixin, Base):
    """
    Application users - customers, agents and admins.

    password_hash holds a bcrypt hash; the plaintext never reaches the database.
    """
    __tablename__ = "users"

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(50), nullable=True)
    license_number = Column(String(20), nullable=True)
    license_expiry_date = Column(Date, nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token = Column(String(255), nullable=True)
    password_reset_token = Column(String(255), nullable=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index('idx_users_password_reset_token', 'password_reset_token'),
        Index('idx_users_is_active', 'is_active'),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def validate_password(self, password: str) -> bool:
        """Check a plaintext password against the stored bcrypt hash"""
        return verify_password(password, self.password_hash)


# ============================================
# Vehicles
# ============================================

class Vehicle(TimestampMixin, Base):
    """Insured vehicles, one owner each"""
    __tablename__ = "vehicles"

    vin = Column(String(17), unique=True, nullable=False)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    trim = Column(String(50), nullable=True)
    body_style = Column(String(50), nullable=True)
    engine_type = Column(String(50), nullable=True)
    transmission = Column(String(50), nullable=True)
    fuel_type = Column(String(50), nullable=True)
    mileage = Column(Integer, nullable=True)
    color = Column(String(50), nullable=True)
    license_plate = Column(String(20), nullable=True)
    registration_state = Column(String(50), nullable=True)
    purchase_price = Column(Numeric(10, 2), nullable=True)
    current_value = Column(Numeric(10, 2), nullable=True)
    purchase_date = Column(Date, nullable=True)
    usage = Column(String(50), nullable=True)  # personal, business, commercial
    annual_mileage = Column(Integer, nullable=True)
    has_anti_theft_device = Column(Boolean, nullable=False, default=False)
    has_airbags = Column(Boolean, nullable=False, default=False)
    has_abs = Column(Boolean, nullable=False, default=False)
    parking_location = Column(String(50), nullable=True)  # garage, driveway, street
    is_active = Column(Boolean, nullable=False, default=True)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False)

    __table_args__ = (
        Index('idx_vehicles_owner_id', 'owner_id'),
    )


# ============================================
# Quotes
# ============================================

class Quote(TimestampMixin, Base):
    """Premium quotes offered for a vehicle before a policy is bound"""
    __tablename__ = "quotes"

    quote_number = Column(String(50), unique=True, nullable=False)
    base_premium = Column(Numeric(10, 2), nullable=False)
    total_premium = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    payment_frequency = Column(Enum(PaymentFrequency), nullable=False)
    monthly_premium = Column(Numeric(10, 2), nullable=False)
    effective_date = Column(Date, nullable=False)
    expiration_date = Column(Date, nullable=False)
    quote_expires_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Enum(QuoteStatus), nullable=False, default=QuoteStatus.PENDING)
    coverage_details = Column(JSON, nullable=True)
    risk_factors = Column(JSON, nullable=True)
    discount_factors = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    customer_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    vehicle_id = Column(String(36), ForeignKey('vehicles.id'), nullable=False)
    agent_id = Column(String(36), ForeignKey('users.id'), nullable=True)

    __table_args__ = (
        Index('idx_quotes_customer_id', 'customer_id'),
        Index('idx_quotes_status', 'status'),
    )


# ============================================
# Policies
# ============================================

class Policy(TimestampMixin, Base):
    """
    Bound insurance policies.

    Term rules:
    1. effective_date strictly before expiration_date
    2. term no longer than one calendar year
    3. renewal window opens 30 days before expiration
    """
    __tablename__ = "policies"

    RENEWAL_WINDOW_DAYS = 30
    # Average month length over a year, used to count months in a term
    DAYS_PER_MONTH = 365.25 / 12

    policy_number = Column(String(50), unique=True, nullable=False)
    status = Column(Enum(PolicyStatus), nullable=False, default=PolicyStatus.PENDING)
    effective_date = Column(Date, nullable=False)
    expiration_date = Column(Date, nullable=False)
    premium_amount = Column(Numeric(10, 2), nullable=False)
    payment_frequency = Column(Enum(PaymentFrequency), nullable=False)
    monthly_premium = Column(Numeric(10, 2), nullable=False)
    next_payment_due = Column(Date, nullable=True)
    grace_period_days = Column(Integer, nullable=False, default=0)
    coverage_details = Column(JSON, nullable=False, default=dict)
    deductible = Column(Numeric(10, 2), nullable=True)
    coverage_limit = Column(Numeric(15, 2), nullable=True)
    last_payment_date = Column(Date, nullable=True)
    outstanding_balance = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    cancellation_reason = Column(Text, nullable=True)
    cancellation_date = Column(Date, nullable=True)
    auto_renew = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
    quote_id = Column(String(36), ForeignKey('quotes.id'), unique=True, nullable=False)
    customer_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    vehicle_id = Column(String(36), ForeignKey('vehicles.id'), nullable=False)
    agent_id = Column(String(36), ForeignKey('users.id'), nullable=True)

    __table_args__ = (
        Index('idx_policies_customer_id', 'customer_id'),
        Index('idx_policies_status', 'status'),
    )

    def is_active(self) -> bool:
        """Active status and today within the policy term"""
        current = today()
        return (
            self.status == PolicyStatus.ACTIVE
            and self.effective_date <= current <= self.expiration_date
        )

    def is_expired(self) -> bool:
        return self.expiration_date < today()

    def days_until_expiration(self) -> int:
        """Whole days until expiration; negative once expired"""
        return (self.expiration_date - today()).days

    def needs_renewal(self) -> bool:
        days = self.days_until_expiration()
        return 0 <= days <= self.RENEWAL_WINDOW_DAYS

    def term_months(self) -> int:
        days = (self.expiration_date - self.effective_date).days
        return max(1, round(days / self.DAYS_PER_MONTH))

    def calculate_total_premium(self) -> Decimal:
        """Monthly premium times the number of months in the term"""
        total = Decimal(self.monthly_premium) * self.term_months()
        return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def is_in_grace_period(self) -> bool:
        """Payment overdue but still within grace_period_days of the due date"""
        if self.next_payment_due is None:
            return False
        current = today()
        grace_end = self.next_payment_due + timedelta(days=self.grace_period_days or 0)
        return self.next_payment_due < current <= grace_end

    def validate_dates(self) -> None:
        """
        Raises:
            InvalidPolicyDatesError: If the term rules are broken
        """
        if self.effective_date >= self.expiration_date:
            raise InvalidPolicyDatesError("Effective date must be before expiration date")
        if self.expiration_date > add_years(self.effective_date, 1):
            raise InvalidPolicyDatesError("Policy term cannot exceed one year")

    def generate_policy_number(self) -> None:
        """Assign a policy number unless one is already set"""
        if not self.policy_number:
            self.policy_number = generate_reference_number(ReferencePrefix.POLICY)


# ============================================
# Claims
# ============================================

class Claim(TimestampMixin, Base):
    """Claims filed against a policy"""
    __tablename__ = "claims"

    claim_number = Column(String(50), unique=True, nullable=False)
    status = Column(Enum(ClaimStatus), nullable=False, default=ClaimStatus.SUBMITTED)
    claim_type = Column(String(100), nullable=False)  # collision, comprehensive, liability, etc.
    incident_date = Column(Date, nullable=False)
    reported_date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(255), nullable=True)
    estimated_amount = Column(Numeric(10, 2), nullable=True)
    approved_amount = Column(Numeric(10, 2), nullable=True)
    settled_amount = Column(Numeric(10, 2), nullable=True)
    deductible_amount = Column(Numeric(10, 2), nullable=True)
    is_at_fault = Column(Boolean, nullable=False, default=False)
    police_report_number = Column(String(255), nullable=True)
    involved_parties = Column(JSON, nullable=True)
    witnesses = Column(JSON, nullable=True)
    adjuster_notes = Column(Text, nullable=True)
    closed_date = Column(Date, nullable=True)
    denial_reason = Column(Text, nullable=True)
    is_fraudulent = Column(Boolean, nullable=False, default=False)
    fraud_score = Column(Numeric(3, 2), nullable=True)
    policy_id = Column(String(36), ForeignKey('policies.id'), nullable=False)
    claimant_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    adjuster_id = Column(String(36), ForeignKey('users.id'), nullable=True)

    __table_args__ = (
        Index('idx_claims_policy_id', 'policy_id'),
        Index('idx_claims_claimant_id', 'claimant_id'),
        Index('idx_claims_status', 'status'),
    )


# ============================================
# Payments
# ============================================

class Payment(TimestampMixin, Base):
    """Money movements - premiums, deductibles, fees and refunds"""
    __tablename__ = "payments"

    transaction_id = Column(String(50), unique=True, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    payment_provider = Column(String(100), nullable=True)  # stripe, paypal, etc.
    provider_transaction_id = Column(String(255), nullable=True)
    due_date = Column(Date, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    payment_type = Column(Enum(PaymentType), nullable=False)
    description = Column(Text, nullable=True)
    failure_reason = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    next_retry_at = Column(DateTime(timezone=True), nullable=True)
    # "metadata" is reserved on declarative classes
    payment_metadata = Column("metadata", JSON, nullable=True)
    payer_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    policy_id = Column(String(36), ForeignKey('policies.id'), nullable=True)

    __table_args__ = (
        Index('idx_payments_payer_id', 'payer_id'),
        Index('idx_payments_policy_id', 'policy_id'),
        Index('idx_payments_status', 'status'),
    )


def quantize_money(value) -> Optional[Decimal]:
    """Round a monetary value to cents"""
    if value is None:
        return None
    return Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def default_expiration_date(effective_date: date) -> date:
    """One-year term: the day before the anniversary of the effective date"""
    return add_years(effective_date, 1) - timedelta(days=1)
