"""
Quote repository for data access.
"""
from app.db.models import Quote
from app.repositories.base import SQLAlchemyRepository


class QuoteRepository(SQLAlchemyRepository[Quote]):
    """Repository for Quote entity"""

    model = Quote
    owner_column = "customer_id"
    conflict_message = "Quote number already exists"
