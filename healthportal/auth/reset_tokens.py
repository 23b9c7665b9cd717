"""
Healthcare Portal - Password Reset Tokens

Single-use, time-boxed tokens emailed by forgot-password.

Lifecycle:
    create_reset_token  -> row inserted, plaintext token returned for the link
    find_reset_token    -> read-only validity check (reset page preflight)
    consume_reset_token -> conditional DELETE; exactly one caller wins

Consumption runs inside the caller's transaction: the token delete and the
password update commit together, or not at all. Two racing consumers both
issue the same DELETE ... WHERE token_hash = :h AND expires_at > :now; the
database lets only one of them affect a row.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import Session as DBSession, select

from healthportal.auth.database import commit
from healthportal.auth.models import ResetToken, utcnow
from healthportal.auth.tokens import new_token, hash_token, is_well_formed
from healthportal.config import settings

logger = logging.getLogger(__name__)


def reset_token_lifetime() -> timedelta:
    return timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)


async def create_reset_token(db: DBSession, account_id: UUID) -> Tuple[str, ResetToken]:
    """
    Issue a reset token for an account.

    Earlier unexpired tokens for the same account stay valid until used,
    expired, or cleared by a successful reset.

    Returns:
        Tuple of (plaintext token for the email link, persisted ResetToken)
    """
    now = utcnow()
    token = new_token()

    record = ResetToken(
        token_hash=hash_token(token),
        account_id=account_id,
        created_at=now,
        expires_at=now + reset_token_lifetime(),
    )

    db.add(record)
    commit(db)
    db.refresh(record)

    logger.info("Reset token issued for account %s", account_id)
    return token, record


async def find_reset_token(db: DBSession, token: Optional[str]) -> Optional[ResetToken]:
    """
    Look up an unexpired reset token without consuming it.

    Returns:
        ResetToken if the token is well-formed, known and unexpired
    """
    if not is_well_formed(token):
        return None

    statement = select(ResetToken).where(
        ResetToken.token_hash == hash_token(token),
        ResetToken.expires_at > utcnow(),
    )
    return db.exec(statement).first()


def claim_reset_token(db: DBSession, token_hash: str, now: Optional[datetime] = None) -> bool:
    """
    Atomically delete an unexpired token row.

    Does not commit. Returns True only for the caller whose DELETE removed
    the row; every concurrent or later claimant sees a rowcount of 0.
    """
    now = now or utcnow()
    statement = delete(ResetToken).where(
        ResetToken.token_hash == token_hash,
        ResetToken.expires_at > now,
    )
    result = db.connection().execute(statement)
    return result.rowcount == 1


async def consume_reset_token(db: DBSession, token: Optional[str]) -> Optional[UUID]:
    """
    Consume a reset token inside the current transaction.

    Args:
        db: Database session; the caller commits (or rolls back) afterwards
        token: Plaintext token from the reset link

    Returns:
        Owning account id if this call won the token, None otherwise
    """
    record = await find_reset_token(db, token)
    if record is None:
        return None

    account_id = record.account_id
    if not claim_reset_token(db, record.token_hash):
        # Lost the race to another consumer
        logger.warning("Reset token for account %s was already consumed", account_id)
        return None

    return account_id


def discard_account_reset_tokens(db: DBSession, account_id: UUID) -> int:
    """
    Delete every outstanding reset token of an account. Does not commit.

    Called after a successful reset so older emailed links stop working.
    """
    statement = delete(ResetToken).where(ResetToken.account_id == account_id)
    result = db.connection().execute(statement)
    return result.rowcount


async def purge_expired_reset_tokens(db: DBSession, now: Optional[datetime] = None) -> int:
    """
    Delete all expired reset tokens.

    Validation already rejects expired rows; this only reclaims storage.

    Returns:
        Number of tokens deleted
    """
    now = now or utcnow()

    statement = delete(ResetToken).where(ResetToken.expires_at <= now)
    result = db.connection().execute(statement)
    commit(db)

    return result.rowcount
