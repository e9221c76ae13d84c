"""
Policy repository for data access.
"""
from app.db.models import Policy
from app.repositories.base import SQLAlchemyRepository


class PolicyRepository(SQLAlchemyRepository[Policy]):
    """Repository for Policy entity"""

    model = Policy
    owner_column = "customer_id"
    conflict_message = "A policy already exists for this quote"
