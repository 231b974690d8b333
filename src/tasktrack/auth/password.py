"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor comes from settings.bcrypt_rounds (12 by default,
~100ms per hash on modern hardware; tests turn it down).
"""

import functools

import bcrypt

from tasktrack.config import settings


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Learn: bcrypt produces hashes starting with "$2b$" and silently
    ignores input past 72 bytes, so we truncate explicitly.
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash. Never raises."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


@functools.lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("tasktrack-dummy-password")


def burn_verify(password: str) -> None:
    """Spend the same time as a real verification.

    Called when the email is unknown so login latency doesn't reveal
    whether an account exists.
    """
    verify_password(password, _dummy_hash())
