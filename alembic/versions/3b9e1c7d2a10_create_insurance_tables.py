"""create_insurance_tables

Revision ID: 3b9e1c7d2a10
Revises:
Create Date: 2026-10-19 09:12:44.318201

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b9e1c7d2a10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum columns store member names (SQLAlchemy default for Python enums)
user_role = sa.Enum('CUSTOMER', 'AGENT', 'ADMIN', name='userrole')
policy_status = sa.Enum('PENDING', 'ACTIVE', 'SUSPENDED', 'CANCELLED', 'EXPIRED', name='policystatus')
claim_status = sa.Enum(
    'SUBMITTED', 'UNDER_REVIEW', 'INVESTIGATING', 'APPROVED', 'DENIED', 'SETTLED', 'CLOSED',
    name='claimstatus'
)
payment_status = sa.Enum(
    'PENDING', 'PROCESSING', 'COMPLETED', 'FAILED', 'REFUNDED', 'CANCELLED', name='paymentstatus'
)
quote_status = sa.Enum('PENDING', 'ACCEPTED', 'EXPIRED', 'DECLINED', name='quotestatus')
payment_frequency = sa.Enum('MONTHLY', 'QUARTERLY', 'SEMI_ANNUAL', 'ANNUAL', name='paymentfrequency')
payment_method = sa.Enum('CREDIT_CARD', 'DEBIT_CARD', 'BANK_TRANSFER', 'CHECK', name='paymentmethod')
payment_type = sa.Enum('PREMIUM', 'DEDUCTIBLE', 'FEE', 'REFUND', name='paymenttype')


def _timestamps():
    return [
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table('users',
        *_timestamps(),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('zip_code', sa.String(length=20), nullable=True),
        sa.Column('country', sa.String(length=50), nullable=True),
        sa.Column('license_number', sa.String(length=20), nullable=True),
        sa.Column('license_expiry_date', sa.Date(), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False),
        sa.Column('email_verification_token', sa.String(length=255), nullable=True),
        sa.Column('password_reset_token', sa.String(length=255), nullable=True),
        sa.Column('password_reset_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('idx_users_password_reset_token', 'users', ['password_reset_token'], unique=False)
    op.create_index('idx_users_is_active', 'users', ['is_active'], unique=False)

    op.create_table('vehicles',
        *_timestamps(),
        sa.Column('vin', sa.String(length=17), nullable=False),
        sa.Column('make', sa.String(length=100), nullable=False),
        sa.Column('model', sa.String(length=100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('trim', sa.String(length=50), nullable=True),
        sa.Column('body_style', sa.String(length=50), nullable=True),
        sa.Column('engine_type', sa.String(length=50), nullable=True),
        sa.Column('transmission', sa.String(length=50), nullable=True),
        sa.Column('fuel_type', sa.String(length=50), nullable=True),
        sa.Column('mileage', sa.Integer(), nullable=True),
        sa.Column('color', sa.String(length=50), nullable=True),
        sa.Column('license_plate', sa.String(length=20), nullable=True),
        sa.Column('registration_state', sa.String(length=50), nullable=True),
        sa.Column('purchase_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('current_value', sa.Numeric(10, 2), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('usage', sa.String(length=50), nullable=True),
        sa.Column('annual_mileage', sa.Integer(), nullable=True),
        sa.Column('has_anti_theft_device', sa.Boolean(), nullable=False),
        sa.Column('has_airbags', sa.Boolean(), nullable=False),
        sa.Column('has_abs', sa.Boolean(), nullable=False),
        sa.Column('parking_location', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('owner_id', sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('vin')
    )
    op.create_index('idx_vehicles_owner_id', 'vehicles', ['owner_id'], unique=False)

    op.create_table('quotes',
        *_timestamps(),
        sa.Column('quote_number', sa.String(length=50), nullable=False),
        sa.Column('base_premium', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_premium', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount_percentage', sa.Numeric(5, 2), nullable=False),
        sa.Column('payment_frequency', payment_frequency, nullable=False),
        sa.Column('monthly_premium', sa.Numeric(10, 2), nullable=False),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('expiration_date', sa.Date(), nullable=False),
        sa.Column('quote_expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', quote_status, nullable=False),
        sa.Column('coverage_details', sa.JSON(), nullable=True),
        sa.Column('risk_factors', sa.JSON(), nullable=True),
        sa.Column('discount_factors', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('customer_id', sa.String(length=36), nullable=False),
        sa.Column('vehicle_id', sa.String(length=36), nullable=False),
        sa.Column('agent_id', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['customer_id'], ['users.id']),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id']),
        sa.ForeignKeyConstraint(['agent_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quote_number')
    )
    op.create_index('idx_quotes_customer_id', 'quotes', ['customer_id'], unique=False)
    op.create_index('idx_quotes_status', 'quotes', ['status'], unique=False)

    op.create_table('policies',
        *_timestamps(),
        sa.Column('policy_number', sa.String(length=50), nullable=False),
        sa.Column('status', policy_status, nullable=False),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('expiration_date', sa.Date(), nullable=False),
        sa.Column('premium_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_frequency', payment_frequency, nullable=False),
        sa.Column('monthly_premium', sa.Numeric(10, 2), nullable=False),
        sa.Column('next_payment_due', sa.Date(), nullable=True),
        sa.Column('grace_period_days', sa.Integer(), nullable=False),
        sa.Column('coverage_details', sa.JSON(), nullable=False),
        sa.Column('deductible', sa.Numeric(10, 2), nullable=True),
        sa.Column('coverage_limit', sa.Numeric(15, 2), nullable=True),
        sa.Column('last_payment_date', sa.Date(), nullable=True),
        sa.Column('outstanding_balance', sa.Numeric(10, 2), nullable=False),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('cancellation_date', sa.Date(), nullable=True),
        sa.Column('auto_renew', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('quote_id', sa.String(length=36), nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=False),
        sa.Column('vehicle_id', sa.String(length=36), nullable=False),
        sa.Column('agent_id', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['quote_id'], ['quotes.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['users.id']),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id']),
        sa.ForeignKeyConstraint(['agent_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('policy_number'),
        sa.UniqueConstraint('quote_id')
    )
    op.create_index('idx_policies_customer_id', 'policies', ['customer_id'], unique=False)
    op.create_index('idx_policies_status', 'policies', ['status'], unique=False)

    op.create_table('claims',
        *_timestamps(),
        sa.Column('claim_number', sa.String(length=50), nullable=False),
        sa.Column('status', claim_status, nullable=False),
        sa.Column('claim_type', sa.String(length=100), nullable=False),
        sa.Column('incident_date', sa.Date(), nullable=False),
        sa.Column('reported_date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('estimated_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('approved_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('settled_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('deductible_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('is_at_fault', sa.Boolean(), nullable=False),
        sa.Column('police_report_number', sa.String(length=255), nullable=True),
        sa.Column('involved_parties', sa.JSON(), nullable=True),
        sa.Column('witnesses', sa.JSON(), nullable=True),
        sa.Column('adjuster_notes', sa.Text(), nullable=True),
        sa.Column('closed_date', sa.Date(), nullable=True),
        sa.Column('denial_reason', sa.Text(), nullable=True),
        sa.Column('is_fraudulent', sa.Boolean(), nullable=False),
        sa.Column('fraud_score', sa.Numeric(3, 2), nullable=True),
        sa.Column('policy_id', sa.String(length=36), nullable=False),
        sa.Column('claimant_id', sa.String(length=36), nullable=False),
        sa.Column('adjuster_id', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['policy_id'], ['policies.id']),
        sa.ForeignKeyConstraint(['claimant_id'], ['users.id']),
        sa.ForeignKeyConstraint(['adjuster_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('claim_number')
    )
    op.create_index('idx_claims_policy_id', 'claims', ['policy_id'], unique=False)
    op.create_index('idx_claims_claimant_id', 'claims', ['claimant_id'], unique=False)
    op.create_index('idx_claims_status', 'claims', ['status'], unique=False)

    op.create_table('payments',
        *_timestamps(),
        sa.Column('transaction_id', sa.String(length=50), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', payment_status, nullable=False),
        sa.Column('payment_method', payment_method, nullable=False),
        sa.Column('payment_provider', sa.String(length=100), nullable=True),
        sa.Column('provider_transaction_id', sa.String(length=255), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_type', payment_type, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False),
        sa.Column('next_retry_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('payer_id', sa.String(length=36), nullable=False),
        sa.Column('policy_id', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['payer_id'], ['users.id']),
        sa.ForeignKeyConstraint(['policy_id'], ['policies.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id')
    )
    op.create_index('idx_payments_payer_id', 'payments', ['payer_id'], unique=False)
    op.create_index('idx_payments_policy_id', 'payments', ['policy_id'], unique=False)
    op.create_index('idx_payments_status', 'payments', ['status'], unique=False)


def downgrade() -> None:
    # Reverse dependency order
    for table in ('payments', 'claims', 'policies', 'quotes', 'vehicles', 'users'):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (
        payment_type, payment_method, payment_frequency, quote_status,
        payment_status, claim_status, policy_status, user_role,
    ):
        enum_type.drop(bind, checkfirst=True)
