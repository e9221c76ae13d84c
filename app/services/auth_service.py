"""
Auth Service - registration, login, token refresh and password reset.

Passwords are hashed with bcrypt before they touch the database; tokens are
issued by TokenService. Every credential failure is reported with the same
message so callers cannot discover which emails are registered.
"""
from dataclasses import dataclass
from typing import Optional
import logging
import uuid

from app.config import settings
from app.core.interfaces import IUserRepository
from app.db.models import User, UserRole
from app.domain.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
)
from app.repositories.user_repository import normalize_email
from app.services.token_service import TokenError, TokenPair, TokenService
from app.utils.datetime_utils import as_utc, utcnow
from app.utils.password_hash import hash_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
INVALID_RESET_TOKEN = "Invalid or expired reset token"


@dataclass
class AuthResult:
    """Authenticated user plus freshly issued tokens"""
    user: User
    tokens: TokenPair


class AuthService:
    """Service for user authentication"""

    def __init__(self, users: IUserRepository, tokens: TokenService = None):
        self._users = users
        self._tokens = tokens or TokenService()

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> AuthResult:
        """
        Register a new user and log them in.

        Raises:
            ConflictError: If the email is already registered
        """
        email = normalize_email(email)

        existing_user = await self._users.get_by_email(email)
        if existing_user:
            logger.warning(f"Registration rejected: email already registered (user {existing_user.id})")
            raise ConflictError("User with this email already exists")

        user = User(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role or UserRole.CUSTOMER,
            email_verification_token=str(uuid.uuid4()),
            is_email_verified=False,
            is_active=True,
        )
        await self._users.add(user)

        logger.info(f"Registered user {user.id} (role: {user.role.value})")
        return AuthResult(user=user, tokens=self.generate_tokens(user))

    async def login(self, email: str, password: str) -> AuthResult:
        """
        Raises:
            UnauthorizedError: For unknown email, inactive user or wrong password
        """
        user = await self._users.get_by_email(email)

        if not user or not user.is_active:
            logger.warning("Login rejected: unknown or inactive user")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not user.validate_password(password):
            logger.warning(f"Login rejected: invalid password for user {user.id}")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        user.last_login_at = utcnow()
        await self._users.save(user)

        logger.info(f"User {user.id} logged in")
        return AuthResult(user=user, tokens=self.generate_tokens(user))

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            UnauthorizedError: If the token is invalid or its user is gone/inactive
        """
        try:
            payload = self._tokens.verify_refresh_token(refresh_token)
        except TokenError as e:
            logger.warning(f"Refresh rejected: {e}")
            raise UnauthorizedError(INVALID_REFRESH_TOKEN) from e

        user = await self._users.get_by_id(payload["sub"])
        if not user or not user.is_active:
            logger.warning(f"Refresh rejected: user {payload['sub']} missing or inactive")
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        return self.generate_tokens(user)

    async def validate_user(self, email: str, password: str) -> Optional[User]:
        """Return the user for valid credentials of an active account, else None"""
        user = await self._users.get_by_email(email)
        if user and user.is_active and user.validate_password(password):
            return user
        return None

    async def find_by_id(self, user_id: str) -> User:
        """
        Raises:
            NotFoundError: If no user has this ID
        """
        user = await self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def generate_tokens(self, user: User) -> TokenPair:
        return self._tokens.generate_tokens(user)

    async def forgot_password(self, email: str) -> Optional[str]:
        """
        Start a password reset.

        Unknown emails are ignored silently. Returns the reset token for
        delivery (None when the email is unknown); it must never be echoed
        in an HTTP response.
        """
        user = await self._users.get_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return None

        user.password_reset_token = str(uuid.uuid4())
        user.password_reset_expires = utcnow() + settings.password_reset_ttl
        await self._users.save(user)

        logger.info(f"Password reset token issued for user {user.id}")
        return user.password_reset_token

    async def reset_password(self, token: str, new_password: str) -> None:
        """
        Raises:
            BadRequestError: If the token is unknown or expired
        """
        user = await self._users.get_by_reset_token(token)

        if not user or not user.password_reset_expires or as_utc(user.password_reset_expires) < utcnow():
            logger.warning("Password reset rejected: invalid or expired token")
            raise BadRequestError(INVALID_RESET_TOKEN)

        user.password_hash = hash_password(new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        await self._users.save(user)

        logger.info(f"Password reset for user {user.id}")

    async def change_password(self, user_id: str, new_password: str) -> User:
        """Set a new password directly (admin tooling)"""
        user = await self.find_by_id(user_id)
        user.password_hash = hash_password(new_password)
        await self._users.save(user)
        logger.info(f"Password updated for user {user.id}")
        return user

    async def set_active(self, user_id: str, is_active: bool) -> User:
        """Activate or deactivate (soft delete) a user"""
        user = await self.find_by_id(user_id)
        user.is_active = is_active
        await self._users.save(user)
        logger.info(f"{'Activated' if is_active else 'Deactivated'} user {user.id}")
        return user
