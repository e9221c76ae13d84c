"""
Payment repository for data access.
"""
from app.db.models import Payment
from app.repositories.base import SQLAlchemyRepository


class PaymentRepository(SQLAlchemyRepository[Payment]):
    """Repository for Payment entity"""

    model = Payment
    owner_column = "payer_id"
    conflict_message = "Transaction ID already exists"
