"""Application settings read from the environment (and .env when present)"""
import logging
import os
import re
import secrets
from datetime import timedelta

from dotenv import load_dotenv

# .env values never override variables already set
load_dotenv()

logger = logging.getLogger(__name__)

# Well-known secret value that must never reach production
DEV_SECRET_PLACEHOLDER = "test_secret_dev"

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration string such as "15m", "7d", "12h" or "900".

    A bare number is read as seconds.

    Raises:
        ValueError: If the string is not a valid duration
    """
    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}. Use e.g. '15m', '7d', '3600'.")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


class Settings:
    """Application settings"""

    def __init__(self):
        # development | test | production
        self.environment = os.getenv("ENVIRONMENT", "development")

        # JWT configuration
        if self.environment == "production":
            self.jwt_secret = self._get_required("JWT_SECRET")
            self.jwt_refresh_secret = self._get_required("JWT_REFRESH_SECRET")

            # The placeholder secret is refused in production
            for key, value in (("JWT_SECRET", self.jwt_secret), ("JWT_REFRESH_SECRET", self.jwt_refresh_secret)):
                if value == DEV_SECRET_PLACEHOLDER:
                    raise ValueError(
                        f"Cannot use test secret '{DEV_SECRET_PLACEHOLDER}' in production mode. "
                        f"Set a real {key}."
                    )
            if self.jwt_secret == self.jwt_refresh_secret:
                raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must differ in production mode.")
        else:
            self.jwt_secret = self._get_or_generate("JWT_SECRET")
            self.jwt_refresh_secret = self._get_or_generate("JWT_REFRESH_SECRET")

        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_expiration = os.getenv("JWT_EXPIRATION", "15m")
        self.jwt_refresh_expiration = os.getenv("JWT_REFRESH_EXPIRATION", "7d")

        # Validate durations at startup rather than on first login
        parse_duration(self.jwt_expiration)
        parse_duration(self.jwt_refresh_expiration)

        # Password handling
        self.password_reset_expiration_minutes = int(os.getenv("PASSWORD_RESET_EXPIRATION_MINUTES", "60"))
        self.bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", "12"))

        # Bind address for `python -m app.main`
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "8000"))

        # Database configuration
        self.database_url = os.getenv(
            "DATABASE_URL",
            "sqlite+aiosqlite:///./insurance.db"
        )

        # Extra allowed browser origins, comma-separated
        self.cors_origins = os.getenv("CORS_ORIGINS", "")

        # Root log level name
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def access_token_ttl(self) -> timedelta:
        return parse_duration(self.jwt_expiration)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return parse_duration(self.jwt_refresh_expiration)

    @property
    def password_reset_ttl(self) -> timedelta:
        return timedelta(minutes=self.password_reset_expiration_minutes)

    def _get_required(self, key: str) -> str:
        """Value of key, or ValueError when it is unset or blank"""
        value = os.getenv(key, "").strip()
        if not value:
            raise ValueError(
                f"Missing required environment variable: {key}. "
                f"Required in production mode."
            )
        return value

    def _get_or_generate(self, key: str) -> str:
        """Development: Generate random secret if not provided"""
        value = os.getenv(key, "").strip()
        if value:
            return value

        logger.warning(
            f"⚠️  No {key} provided - generated random secret for this process. "
            f"Tokens will not survive restarts. Set {key} in .env for persistent tokens."
        )
        return secrets.token_urlsafe(32)


# Imported everywhere as app.config.settings
settings = Settings()
