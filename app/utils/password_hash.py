"""
bcrypt helpers for user passwords.

Stored values are full bcrypt strings ($2b$<cost>$<salt><digest>), so the cost
and salt travel with the hash and older hashes keep verifying after
BCRYPT_ROUNDS changes.
"""
import logging

import bcrypt

from app.config import settings

logger = logging.getLogger(__name__)

_ENCODING = "utf-8"


def hash_password(plaintext: str, rounds: int = None) -> str:
    """
    Return a salted bcrypt hash of plaintext.

    rounds overrides settings.bcrypt_rounds. Raises ValueError for an empty
    password.
    """
    if not plaintext:
        raise ValueError("Cannot hash empty password")

    cost = rounds or settings.bcrypt_rounds
    digest = bcrypt.hashpw(plaintext.encode(_ENCODING), bcrypt.gensalt(rounds=cost))
    return digest.decode(_ENCODING)


def verify_password(plaintext: str, password_hash: str) -> bool:
    """True when plaintext matches password_hash; a malformed hash never matches"""
    if not plaintext or not password_hash:
        logger.warning("Password check skipped: empty password or stored hash")
        return False

    try:
        return bcrypt.checkpw(plaintext.encode(_ENCODING), password_hash.encode(_ENCODING))
    except ValueError as e:
        logger.error(f"Stored password hash is not valid bcrypt: {e}")
        return False
