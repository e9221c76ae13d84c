"""
Value objects - business identifiers with a fixed textual format.

Reference numbers shown to customers follow PREFIX-<epoch millis>-<3 digits>,
e.g. "POL-1717171717171-042". The random suffix keeps numbers generated in
the same millisecond apart; the unique constraints on the tables are the
final guard.
"""
import re
import secrets
import time
from enum import Enum


class ReferencePrefix(str, Enum):
    """Prefixes for customer-facing reference numbers"""
    POLICY = "POL"
    QUOTE = "QTE"
    CLAIM = "CLM"
    TRANSACTION = "TXN"


REFERENCE_NUMBER_PATTERN = re.compile(r"^(POL|QTE|CLM|TXN)-\d+-\d{3}$")


def generate_reference_number(prefix: ReferencePrefix) -> str:
    """
    Generate a reference number for the given prefix.

    Example:
        >>> generate_reference_number(ReferencePrefix.POLICY)
        'POL-1717171717171-042'
    """
    millis = int(time.time() * 1000)
    suffix = secrets.randbelow(1000)
    return f"{prefix.value}-{millis}-{suffix:03d}"


def is_reference_number(value: str, prefix: ReferencePrefix = None) -> bool:
    """Check a string against the reference number format"""
    match = REFERENCE_NUMBER_PATTERN.match(value or "")
    if not match:
        return False
    return prefix is None or match.group(1) == prefix.value
