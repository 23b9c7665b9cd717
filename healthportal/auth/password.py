"""
Healthcare Portal - Password Hashing Utilities

Credential hashing using bcrypt.
The work factor comes from settings.BCRYPT_ROUNDS (default 12).

Stored format: "$2b$<cost>$<22-char salt><31-char hash>". Salt (16 random
bytes) and cost are embedded, so verification needs no side lookup.

Legacy format: "<hex salt>:<hex hash>" (PBKDF2-HMAC-SHA512, 1000 iterations,
64-byte key) written by the previous portal. Such secrets still verify and
are flagged by needs_rehash() so login can upgrade them.

Security:
- Never log or expose plaintext passwords
- bcrypt considers only the first 72 bytes of input
- Verification never raises; any malformed secret returns False
"""

import hashlib
import hmac
from functools import lru_cache
from typing import Optional

import bcrypt

from healthportal.config import settings


BCRYPT_MAX_BYTES = 72
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

LEGACY_PBKDF2_ITERATIONS = 1000
LEGACY_PBKDF2_KEY_BYTES = 64


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plaintext password
        rounds: Override work factor (defaults to settings.BCRYPT_ROUNDS)

    Returns:
        bcrypt hash string (includes salt and cost)

    Example:
        >>> hashed = hash_password("password1")
        >>> hashed.startswith("$2b$")
        True
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(_password_bytes(password), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a stored secret.

    Uses constant-time comparison for both bcrypt and legacy secrets.

    Args:
        plain_password: Plaintext password to verify
        hashed_password: Stored secret to check against

    Returns:
        True if password matches, False otherwise (including corrupt secrets)
    """
    if not isinstance(plain_password, str) or not isinstance(hashed_password, str):
        return False

    if hashed_password.startswith(BCRYPT_PREFIXES):
        try:
            return bcrypt.checkpw(
                _password_bytes(plain_password),
                hashed_password.encode("utf-8"),
            )
        except (ValueError, TypeError):
            # Invalid hash format
            return False

    return _verify_legacy_pbkdf2(plain_password, hashed_password)


def _verify_legacy_pbkdf2(plain_password: str, hashed_password: str) -> bool:
    parts = hashed_password.split(":")
    if len(parts) != 2 or not all(parts):
        return False

    salt, stored_hex = parts
    try:
        stored = bytes.fromhex(stored_hex)
    except ValueError:
        return False
    if len(stored) != LEGACY_PBKDF2_KEY_BYTES:
        return False

    computed = hashlib.pbkdf2_hmac(
        "sha512",
        plain_password.encode("utf-8"),
        salt.encode("utf-8"),
        LEGACY_PBKDF2_ITERATIONS,
        dklen=LEGACY_PBKDF2_KEY_BYTES,
    )
    return hmac.compare_digest(computed, stored)


def needs_rehash(hashed_password: str, target_work_factor: Optional[int] = None) -> bool:
    """
    Check if a stored secret should be regenerated on next login.

    True for legacy PBKDF2 secrets and for bcrypt hashes whose cost is
    below the target work factor.

    Args:
        hashed_password: Existing secret
        target_work_factor: Desired cost (defaults to settings.BCRYPT_ROUNDS)

    Returns:
        True if hash should be regenerated
    """
    target = target_work_factor or settings.BCRYPT_ROUNDS
    if not is_valid_bcrypt_hash(hashed_password):
        return True

    try:
        # bcrypt hash format: $2b$XX$...
        work_factor_str = hashed_password.split("$")[2]
        return int(work_factor_str) < target
    except (ValueError, IndexError):
        return True


def is_valid_bcrypt_hash(hash_string: str) -> bool:
    """
    Check if a string is a valid bcrypt hash format.

    Args:
        hash_string: String to validate

    Returns:
        True if valid bcrypt format
    """
    if not hash_string:
        return False

    if not hash_string.startswith(BCRYPT_PREFIXES):
        return False

    # Standard bcrypt hash is 60 characters
    return len(hash_string) == 60


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return hash_password("not-a-real-password", rounds=rounds)


def dummy_password_hash() -> str:
    """
    Hash to verify against when no account matches a login.

    Keeps the unknown-account path as slow as the wrong-password path.
    """
    return _dummy_hash(settings.BCRYPT_ROUNDS)
