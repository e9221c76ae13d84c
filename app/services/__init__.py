"""
Services package for business logic.
"""
from app.services.auth_service import AuthService
from app.services.claim_service import ClaimService
from app.services.payment_service import PaymentService
from app.services.policy_service import PolicyService
from app.services.token_service import TokenService
from app.services.vehicle_service import VehicleService

__all__ = [
    'AuthService',
    'ClaimService',
    'PaymentService',
    'PolicyService',
    'TokenService',
    'VehicleService',
]
