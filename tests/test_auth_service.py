"""
Tests for AuthService against an in-memory database
"""
from datetime import timedelta

import pytest

from app.db.models import UserRole
from app.domain.exceptions import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService
from app.utils.datetime_utils import utcnow
from app.utils.password_hash import verify_password

PASSWORD = "SecurePassword123!"


@pytest.fixture
def auth_service(db_session):
    return AuthService(UserRepository(db_session))


async def _register(auth_service, email="john@example.com", **kwargs):
    return await auth_service.register(
        email=email,
        password=PASSWORD,
        first_name="John",
        last_name="Doe",
        **kwargs,
    )


# ============================================
# Registration
# ============================================

@pytest.mark.asyncio
async def test_register_creates_customer(auth_service):
    result = await _register(auth_service, phone="+1234567890")

    user = result.user
    assert user.email == "john@example.com"
    assert user.role == UserRole.CUSTOMER
    assert user.is_active is True
    assert user.is_email_verified is False
    assert user.email_verification_token
    assert user.phone == "+1234567890"
    assert result.tokens.access_token
    assert result.tokens.refresh_token


@pytest.mark.asyncio
async def test_register_hashes_password(auth_service):
    user = (await _register(auth_service)).user

    assert user.password_hash != PASSWORD
    assert verify_password(PASSWORD, user.password_hash)


@pytest.mark.asyncio
async def test_register_normalizes_email(auth_service):
    user = (await _register(auth_service, email="  John@Example.COM ")).user
    assert user.email == "john@example.com"


@pytest.mark.asyncio
async def test_register_duplicate_email(auth_service):
    await _register(auth_service)

    with pytest.raises(ConflictError, match="User with this email already exists"):
        await _register(auth_service, email="JOHN@example.com")


@pytest.mark.asyncio
async def test_register_with_role(auth_service):
    user = (await _register(auth_service, role=UserRole.AGENT)).user
    assert user.role == UserRole.AGENT


# ============================================
# Login / validation
# ============================================

@pytest.mark.asyncio
async def test_login_success_records_last_login(auth_service):
    await _register(auth_service)

    result = await auth_service.login("john@example.com", PASSWORD)

    assert result.user.last_login_at is not None
    assert result.tokens.access_token


@pytest.mark.asyncio
async def test_login_wrong_password(auth_service):
    await _register(auth_service)

    with pytest.raises(UnauthorizedError, match="Invalid credentials"):
        await auth_service.login("john@example.com", "WrongPassword")


@pytest.mark.asyncio
async def test_login_unknown_email(auth_service):
    with pytest.raises(UnauthorizedError, match="Invalid credentials"):
        await auth_service.login("nobody@example.com", PASSWORD)


@pytest.mark.asyncio
async def test_login_inactive_user(auth_service):
    user = (await _register(auth_service)).user
    await auth_service.set_active(user.id, False)

    with pytest.raises(UnauthorizedError):
        await auth_service.login("john@example.com", PASSWORD)


@pytest.mark.asyncio
async def test_validate_user(auth_service):
    user = (await _register(auth_service)).user

    assert (await auth_service.validate_user("john@example.com", PASSWORD)).id == user.id
    assert await auth_service.validate_user("john@example.com", "WrongPassword") is None
    assert await auth_service.validate_user("nobody@example.com", PASSWORD) is None


# ============================================
# Tokens
# ============================================

@pytest.mark.asyncio
async def test_refresh_token_issues_new_pair(auth_service):
    result = await _register(auth_service)

    tokens = await auth_service.refresh_token(result.tokens.refresh_token)

    assert tokens.access_token
    assert tokens.refresh_token


@pytest.mark.asyncio
async def test_refresh_token_rejects_access_token(auth_service):
    result = await _register(auth_service)

    with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
        await auth_service.refresh_token(result.tokens.access_token)


@pytest.mark.asyncio
async def test_refresh_token_rejects_deactivated_user(auth_service):
    result = await _register(auth_service)
    await auth_service.set_active(result.user.id, False)

    with pytest.raises(UnauthorizedError):
        await auth_service.refresh_token(result.tokens.refresh_token)


@pytest.mark.asyncio
async def test_find_by_id(auth_service):
    user = (await _register(auth_service)).user

    assert (await auth_service.find_by_id(user.id)).email == "john@example.com"
    with pytest.raises(NotFoundError, match="User not found"):
        await auth_service.find_by_id("missing")


# ============================================
# Password reset
# ============================================

@pytest.mark.asyncio
async def test_forgot_password_unknown_email_is_silent(auth_service):
    assert await auth_service.forgot_password("nobody@example.com") is None


@pytest.mark.asyncio
async def test_forgot_and_reset_password(auth_service):
    user = (await _register(auth_service)).user

    token = await auth_service.forgot_password("john@example.com")
    assert token
    assert user.password_reset_expires is not None

    await auth_service.reset_password(token, "BrandNewPassword1!")

    assert user.password_reset_token is None
    assert user.password_reset_expires is None
    assert (await auth_service.login("john@example.com", "BrandNewPassword1!")).user.id == user.id
    with pytest.raises(UnauthorizedError):
        await auth_service.login("john@example.com", PASSWORD)


@pytest.mark.asyncio
async def test_reset_token_is_single_use(auth_service):
    await _register(auth_service)
    token = await auth_service.forgot_password("john@example.com")

    await auth_service.reset_password(token, "BrandNewPassword1!")

    with pytest.raises(BadRequestError):
        await auth_service.reset_password(token, "AnotherPassword1!")


@pytest.mark.asyncio
async def test_reset_password_expired_token(auth_service):
    user = (await _register(auth_service)).user
    token = await auth_service.forgot_password("john@example.com")
    user.password_reset_expires = utcnow() - timedelta(minutes=1)

    with pytest.raises(BadRequestError, match="Invalid or expired reset token"):
        await auth_service.reset_password(token, "BrandNewPassword1!")


@pytest.mark.asyncio
async def test_reset_password_unknown_token(auth_service):
    with pytest.raises(BadRequestError):
        await auth_service.reset_password("not-a-token", "BrandNewPassword1!")


@pytest.mark.asyncio
async def test_change_password(auth_service):
    user = (await _register(auth_service)).user

    await auth_service.change_password(user.id, "ChangedPassword1!")

    assert await auth_service.validate_user("john@example.com", "ChangedPassword1!") is not None
