"""
Healthcare Portal - Opaque Token Generation

Session and password-reset tokens are opaque random strings:
- 32 bytes from the OS CSPRNG (256 bits of entropy)
- Rendered as 64 lowercase hex characters (URL and cookie safe)

Security:
- Only the SHA-256 digest of a token is persisted
- The digest is the primary key of its table, so a collision would be
  rejected by the data store rather than silently shared
"""

import hashlib
import re
import secrets


TOKEN_BYTES = 32
TOKEN_LENGTH = TOKEN_BYTES * 2

_TOKEN_PATTERN = re.compile(r"^[0-9a-f]{%d}$" % TOKEN_LENGTH)


def new_token() -> str:
    """
    Generate a new opaque token.

    Returns:
        64-character hex string

    Example:
        >>> len(new_token())
        64
    """
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest used as the storage key for a token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_well_formed(token) -> bool:
    """Cheap format check run before any store lookup."""
    return isinstance(token, str) and bool(_TOKEN_PATTERN.match(token))
