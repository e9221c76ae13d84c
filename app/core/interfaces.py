"""
Core interfaces for the insurance backend.

AuthService depends on IUserRepository rather than on SQLAlchemy directly,
so alternative stores (or test doubles) can be plugged in.
"""
from abc import ABC, abstractmethod
from typing import Optional, List, TYPE_CHECKING

if TYPE_CHECKING:
    from app.db.models import User


class IUserRepository(ABC):
    """
    Interface for user storage and retrieval.

    Implementations must treat email lookups as case-insensitive; emails are
    stored lower-cased.
    """

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional['User']:
        """Get user by ID"""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional['User']:
        """Get user by email address"""
        pass

    @abstractmethod
    async def get_by_reset_token(self, token: str) -> Optional['User']:
        """Get user holding the given password reset token"""
        pass

    @abstractmethod
    async def add(self, user: 'User') -> 'User':
        """
        Persist a new user.

        Raises:
            ConflictError: If the email is already registered
        """
        pass

    @abstractmethod
    async def save(self, user: 'User') -> 'User':
        """Flush changes made to a loaded user"""
        pass

    @abstractmethod
    async def list_all(self) -> List['User']:
        """All users ordered by creation time"""
        pass
