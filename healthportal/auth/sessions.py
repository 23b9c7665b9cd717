"""
Healthcare Portal - Session Management

Server-side sessions backing opaque session tokens.
Sessions enable immediate revocation and activity tracking.

Security:
- Only the SHA-256 digest of a token is stored
- Logout deletes the session row; the token is dead immediately
- Sessions expire a fixed SESSION_EXPIRE_DAYS after issuance
- Expiry is enforced lazily: an expired row is deleted when presented
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

from sqlmodel import Session as DBSession, select

from healthportal.auth.database import commit
from healthportal.auth.models import Session, utcnow
from healthportal.auth.tokens import new_token, hash_token, is_well_formed
from healthportal.config import settings

logger = logging.getLogger(__name__)


def session_lifetime() -> timedelta:
    return timedelta(days=settings.SESSION_EXPIRE_DAYS)


async def create_session(
    db: DBSession,
    account_id: UUID,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Tuple[str, Session]:
    """
    Create a new server-side session.

    Args:
        db: Database session
        account_id: Owning account
        ip_address: Client IP for audit
        user_agent: Client user-agent for audit

    Returns:
        Tuple of (plaintext token for the caller, persisted Session)

    Security:
        - Token is 256 bits from the OS CSPRNG
        - Only its digest reaches the database
    """
    now = utcnow()
    token = new_token()

    session = Session(
        token_hash=hash_token(token),
        account_id=account_id,
        created_at=now,
        expires_at=now + session_lifetime(),
        last_seen=now,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(session)
    commit(db)
    db.refresh(session)

    logger.info("Session issued for account %s", account_id)
    return token, session


async def validate_session(db: DBSession, token: Optional[str]) -> Optional[Session]:
    """
    Resolve a session token to its active Session.

    Args:
        db: Database session
        token: Plaintext token presented by the client

    Returns:
        Session if valid, None otherwise

    Validation checks:
        1. Token is well-formed
        2. Session exists
        3. Session is not expired (expired rows are deleted here)
    """
    if not is_well_formed(token):
        return None

    session = db.get(Session, hash_token(token))

    if not session:
        return None

    # Check expiration
    if utcnow() >= session.expires_at:
        account_id = session.account_id
        db.delete(session)
        commit(db)
        logger.info("Expired session removed for account %s", account_id)
        return None

    # Update last_seen for activity tracking
    session.last_seen = utcnow()
    db.add(session)
    commit(db)
    db.refresh(session)

    return session


async def revoke_session(db: DBSession, token: Optional[str]) -> bool:
    """
    Delete the session behind a token (logout).

    Args:
        db: Database session
        token: Plaintext session token, possibly missing or invalid

    Returns:
        True if a session was deleted, False if there was nothing to delete
    """
    if not is_well_formed(token):
        return False

    session = db.get(Session, hash_token(token))

    if not session:
        return False

    db.delete(session)
    commit(db)

    return True


async def revoke_all_account_sessions(
    db: DBSession,
    account_id: UUID,
    keep_token: Optional[str] = None,
) -> int:
    """
    Delete all sessions for an account (force logout everywhere).

    Args:
        db: Database session
        account_id: Account whose sessions to delete
        keep_token: Optional token whose session survives (the caller's own)

    Returns:
        Number of sessions deleted

    Use cases:
        - Password reset
        - Password change (keeping the current session)
        - Logout everywhere
    """
    statement = select(Session).where(Session.account_id == account_id)
    if keep_token:
        statement = statement.where(Session.token_hash != hash_token(keep_token))

    sessions = db.exec(statement).all()
    count = 0

    for session in sessions:
        db.delete(session)
        count += 1

    commit(db)

    if count:
        logger.info("Revoked %d session(s) for account %s", count, account_id)
    return count


async def get_active_sessions(db: DBSession, account_id: UUID) -> list[Session]:
    """
    Get all unexpired sessions for an account.

    Use cases:
        - Show an organization its signed-in devices
    """
    now = utcnow()

    statement = select(Session).where(
        Session.account_id == account_id,
        Session.expires_at > now,
    ).order_by(Session.created_at.desc())

    return list(db.exec(statement).all())


async def purge_expired_sessions(db: DBSession, now: Optional[datetime] = None) -> int:
    """
    Delete all expired sessions.

    Validation already ignores expired rows; this only reclaims storage.
    Run periodically (see scripts/purge_expired.py).

    Returns:
        Number of sessions deleted
    """
    now = now or utcnow()

    statement = select(Session).where(Session.expires_at <= now)

    sessions = db.exec(statement).all()
    count = 0

    for session in sessions:
        db.delete(session)
        count += 1

    commit(db)

    return count
