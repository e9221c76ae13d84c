"""Repositories - SQLAlchemy data access, one class per table."""
from app.repositories.user_repository import UserRepository
from app.repositories.vehicle_repository import VehicleRepository
from app.repositories.quote_repository import QuoteRepository
from app.repositories.policy_repository import PolicyRepository
from app.repositories.claim_repository import ClaimRepository
from app.repositories.payment_repository import PaymentRepository

__all__ = [
    "UserRepository",
    "VehicleRepository",
    "QuoteRepository",
    "PolicyRepository",
    "ClaimRepository",
    "PaymentRepository",
]
