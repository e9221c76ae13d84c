"""
Authentication API and dependencies

Endpoints:
- POST /auth/register, /auth/login, /auth/refresh
- POST /auth/forgot-password, /auth/reset-password
- GET  /auth/me

Dependencies used by the other routers:
- get_current_user: validates the Bearer access token and loads the user
- require_roles: restricts an endpoint to the given roles
"""
from datetime import date, datetime
import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.connection import get_db_session
from app.db.models import User, UserRole
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService
from app.services.token_service import TokenError, TokenPair, TokenService

logger = logging.getLogger(__name__)

router = APIRouter()

# E.164: "+", country code, subscriber number (max 15 digits)
PHONE_PATTERN = re.compile(r"^\+[1-9]\d{6,14}$")
MIN_PASSWORD_LENGTH = 8


# ============================================
# Pydantic Models
# ============================================

class RegisterRequest(BaseModel):
    """New user registration"""
    email: EmailStr = Field(..., examples=["john@example.com"])
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, examples=["SecurePassword123!"])
    first_name: str = Field(..., min_length=1, max_length=100, examples=["John"])
    last_name: str = Field(..., min_length=1, max_length=100, examples=["Doe"])
    phone: Optional[str] = Field(None, examples=["+1234567890"])
    role: Optional[UserRole] = Field(None, description="Defaults to customer; other roles need an admin caller")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not PHONE_PATTERN.match(value):
            raise ValueError("must be a valid phone number")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


class UserResponse(BaseModel):
    """User details (password hash and tokens excluded)"""
    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    role: UserRole
    is_email_verified: bool
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: str

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenResponse":
        return cls(**pair.to_dict())


class AuthResponse(BaseModel):
    user: UserResponse
    tokens: TokenResponse


class RefreshResponse(BaseModel):
    tokens: TokenResponse


class MessageResponse(BaseModel):
    message: str


# ============================================
# Dependencies
# ============================================

def get_token_service() -> TokenService:
    return TokenService()


def get_auth_service(
    db: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(UserRepository(db), tokens)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    """
    Verify the access token from the Authorization header and load its user.

    Returns:
        User: The authenticated, active user

    Raises:
        HTTPException: 401 if the token is missing, invalid, expired, or the
                       user no longer exists or is inactive
    """
    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("Request rejected: Missing or invalid Authorization header")
        raise _unauthorized("Missing access token. Use 'Authorization: Bearer <token>'.")

    token = authorization[7:].strip()  # Remove "Bearer " prefix
    if not token:
        logger.warning("Request rejected: Empty token")
        raise _unauthorized("Empty access token.")

    try:
        payload = tokens.verify_access_token(token)
    except TokenError as e:
        logger.warning(f"Request rejected: {e}")
        raise _unauthorized("Invalid or expired access token.")

    user = await UserRepository(db).get_by_id(payload["sub"])
    if not user or not user.is_active:
        logger.warning(f"Request rejected: user {payload['sub']} missing or inactive")
        raise _unauthorized("User not found or inactive.")

    return user


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[User]:
    """Authenticated user when an Authorization header is sent, otherwise None"""
    if authorization is None:
        return None
    return await get_current_user(authorization, db, tokens)


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given roles.

    Usage:
        @router.patch("/claims/{claim_id}")
        async def update_claim(user: User = Depends(require_roles(UserRole.AGENT, UserRole.ADMIN))):
            ...
    """
    allowed = set(roles)

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.warning(f"Permission denied: user {user.id} ({user.role.value}) needs one of {sorted(r.value for r in allowed)}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return user

    return dependency


# Agents and admins act on any customer's records
require_staff = require_roles(UserRole.AGENT, UserRole.ADMIN)


# ============================================
# Endpoints
# ============================================

def _auth_response(result) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(result.user),
        tokens=TokenResponse.from_pair(result.tokens),
    )


@router.post("/auth/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    caller: Optional[User] = Depends(get_optional_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Register a new user.

    Self-registration always creates a customer; only an authenticated admin
    may create agent or admin accounts (403 otherwise). Returns the created
    user and a token pair. 409 if the email is taken.
    """
    if request.role not in (None, UserRole.CUSTOMER) and (caller is None or caller.role != UserRole.ADMIN):
        logger.warning(f"Registration as {request.role.value} refused for {caller.id if caller else 'anonymous caller'}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can create staff accounts"
        )

    result = await auth_service.register(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        phone=request.phone,
        role=request.role,
    )
    return _auth_response(result)


@router.post("/auth/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Log in with email and password. 401 for invalid credentials."""
    result = await auth_service.login(request.email, request.password)
    return _auth_response(result)


@router.post("/auth/refresh", response_model=RefreshResponse)
async def refresh(
    request: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Exchange a refresh token for a new token pair. 401 if invalid."""
    tokens = await auth_service.refresh_token(request.refresh_token)
    return RefreshResponse(tokens=TokenResponse.from_pair(tokens))


@router.post("/auth/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Request a password reset.

    Always answers the same way so the endpoint cannot be used to discover
    registered emails.
    """
    await auth_service.forgot_password(request.email)
    return MessageResponse(message="If the email exists, a reset link has been sent")


@router.post("/auth/reset-password", response_model=MessageResponse)
async def reset_password(
    request: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Set a new password using a reset token. 400 if invalid or expired."""
    await auth_service.reset_password(request.token, request.password)
    return MessageResponse(message="Password successfully reset")


@router.get("/auth/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Return the authenticated user"""
    return UserResponse.model_validate(user)
