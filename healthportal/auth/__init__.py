"""
Healthcare Portal - Authentication Package

Self-hosted credentials for hospital and lab accounts:
- bcrypt password hashing (legacy PBKDF2 secrets verified and upgraded)
- Opaque 256-bit session tokens backed by server-side sessions
- Single-use, one-hour password-reset tokens
- Enumeration-safe service layer shared by every entry point
"""

from healthportal.auth.models import Account, Session, ResetToken, Role
from healthportal.auth.password import hash_password, verify_password
from healthportal.auth.tokens import new_token, hash_token

__all__ = [
    "Account",
    "Session",
    "ResetToken",
    "Role",
    "hash_password",
    "verify_password",
    "new_token",
    "hash_token",
]
