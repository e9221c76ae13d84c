"""
Token Service - JWT issuance and verification.

Access and refresh tokens carry the same claims but are signed with
different secrets and a "type" claim, so a refresh token can never be
presented as an access token (and vice versa).
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
import logging

import jwt

from app.config import settings
from app.db.models import User
from app.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    """Token could not be decoded or failed validation"""


@dataclass
class TokenPair:
    """Tokens returned to the client after login, registration or refresh"""
    access_token: str
    refresh_token: str
    expires_in: str
    token_type: str = "bearer"

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }


class TokenService:
    """Signs and verifies access/refresh JWTs"""

    def __init__(
        self,
        access_secret: str = None,
        refresh_secret: str = None,
        algorithm: str = None,
        access_ttl: Optional[timedelta] = None,
        refresh_ttl: Optional[timedelta] = None,
        access_expires_in: str = None,
    ):
        self.access_secret = access_secret or settings.jwt_secret
        self.refresh_secret = refresh_secret or settings.jwt_refresh_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.access_ttl = access_ttl or settings.access_token_ttl
        self.refresh_ttl = refresh_ttl or settings.refresh_token_ttl
        self.access_expires_in = access_expires_in or settings.jwt_expiration

    @staticmethod
    def build_payload(user: User) -> dict:
        return {
            "sub": user.id,
            "email": user.email,
            "role": user.role.value if hasattr(user.role, "value") else user.role,
        }

    def _encode(self, payload: dict, secret: str, ttl: timedelta, token_type: str) -> str:
        issued_at = utcnow()
        claims = {
            **payload,
            "type": token_type,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def create_access_token(self, user: User) -> str:
        return self._encode(self.build_payload(user), self.access_secret, self.access_ttl, ACCESS_TOKEN_TYPE)

    def create_refresh_token(self, user: User) -> str:
        return self._encode(self.build_payload(user), self.refresh_secret, self.refresh_ttl, REFRESH_TOKEN_TYPE)

    def generate_tokens(self, user: User) -> TokenPair:
        """Issue a fresh access/refresh pair for a user"""
        return TokenPair(
            access_token=self.create_access_token(user),
            refresh_token=self.create_refresh_token(user),
            expires_in=self.access_expires_in,
        )

    def _decode(self, token: str, secret: str, expected_type: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise TokenError(f"Invalid token: {e}") from e

        if payload.get("type") != expected_type:
            raise TokenError(f"Invalid token type '{payload.get('type')}'")

        return payload

    def verify_access_token(self, token: str) -> dict:
        """
        Raises:
            TokenError: If the token is invalid, expired or not an access token
        """
        return self._decode(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> dict:
        """
        Raises:
            TokenError: If the token is invalid, expired or not a refresh token
        """
        return self._decode(token, self.refresh_secret, REFRESH_TOKEN_TYPE)
