"""
User repository for data access.
"""
from typing import List, Optional

from sqlalchemy import func, select

from app.core.interfaces import IUserRepository
from app.db.models import User
from app.repositories.base import SQLAlchemyRepository


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository(SQLAlchemyRepository[User], IUserRepository):
    """Repository for User entity"""

    model = User
    conflict_message = "User with this email already exists"

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self._db.execute(
            select(User).where(func.lower(User.email) == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        result = await self._db.execute(
            select(User).where(User.password_reset_token == token)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[User]:
        result = await self._db.execute(select(User).order_by(User.created_at))
        return list(result.scalars().all())
