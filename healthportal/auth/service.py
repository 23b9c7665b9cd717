"""
Healthcare Portal - Authentication Service

Orchestrates signup, login, logout, forgot-password, reset-password and
change-password on top of the hasher, token generator and the session /
reset-token accessors.

Account-enumeration safety lives here and only here:
- login failures are one message, one status, one code path cost
- forgot-password answers the same whether or not the account exists
- reset-token failures never say why the token was rejected

The database session, the mailer and (inside a request) FastAPI's
BackgroundTasks are injected; the service keeps no state of its own between
calls. Emails are queued on BackgroundTasks so SMTP latency never shows in
the response time, which would otherwise reveal whether an account exists.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple
from urllib.parse import urlencode

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session as DBSession, select

from healthportal.auth import reset_tokens, sessions
from healthportal.auth.database import commit
from healthportal.auth.models import Account, Role, Session, utcnow
from healthportal.auth.password import (
    dummy_password_hash,
    hash_password,
    needs_rehash,
    verify_password,
)
from healthportal.auth.schemas import SignupRequest
from healthportal.config import Settings, settings as default_settings
from healthportal.exceptions import (
    AuthenticationError,
    InvalidResetTokenError,
    ValidationError,
)
from healthportal.services.mailer import Mailer

logger = logging.getLogger(__name__)


MIN_PASSWORD_LENGTH = 8

INVALID_CREDENTIALS = "Invalid email or password"
NOT_AUTHENTICATED = "Not authenticated"
FORGOT_PASSWORD_MESSAGE = "If this email exists, a reset link will be sent"
RESET_SUCCESS_MESSAGE = "Password reset successfully"


@dataclass
class AuthResult:
    """Outcome of a successful signup or login."""
    token: str
    expires_at: datetime
    account: Account


def check_new_password(password: Optional[str], confirm_password: Optional[str]) -> None:
    """
    Validate a new password and its confirmation.

    Order matters: a mismatch is reported before the length rule.

    Raises:
        ValidationError: naming the failing field
    """
    if not password or not confirm_password:
        raise ValidationError("Missing required fields", field="password")
    if password != confirm_password:
        raise ValidationError("Passwords do not match", field="confirmPassword")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            field="password",
        )


class AuthService:
    """
    Credential, session and reset-token orchestration.

    Usage:
        service = AuthService(db, mailer)
        result = await service.login("a@x.com", "password1", Role.HOSPITAL)
    """

    def __init__(
        self,
        db: DBSession,
        mailer: Mailer,
        settings: Optional[Settings] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        self.db = db
        self.mailer = mailer
        self.settings = settings or default_settings
        self.background_tasks = background_tasks

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find_account(self, email: str, role: Role) -> Optional[Account]:
        statement = select(Account).where(
            Account.email == email,
            Account.role == role,
        )
        return self.db.exec(statement).first()

    # ------------------------------------------------------------------
    # Signup / login / logout
    # ------------------------------------------------------------------

    async def signup(
        self,
        request: SignupRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        """
        Register an organization account and sign it in.

        Preconditions (checked in order, no side effects on failure):
            1. password and confirmation present and equal
            2. password at least 8 characters
            3. email not yet registered for this role

        Raises:
            ValidationError: on any failed precondition
        """
        check_new_password(request.password, request.confirm_password)

        if self._find_account(request.email, request.role) is not None:
            logger.info("Signup rejected: email already registered for role %s", request.role.value)
            raise ValidationError("Email already registered", field="email")

        now = utcnow()
        account = Account(
            email=request.email,
            password_hash=hash_password(request.password),
            role=request.role,
            organization_name=request.organization_name,
            organization_type=request.organization_type,
            contact_person=request.contact_person,
            phone=request.phone,
            address=request.address,
            city=request.city,
            state=request.state,
            postal_code=request.postal_code,
            country=request.country,
            created_at=now,
            updated_at=now,
        )

        self.db.add(account)
        try:
            commit(self.db)
        except IntegrityError:
            # Lost a race with a concurrent signup for the same (email, role)
            self.db.rollback()
            raise ValidationError("Email already registered", field="email")
        self.db.refresh(account)

        logger.info("Account %s created (role=%s)", account.id, account.role.value)

        token, session = await sessions.create_session(
            self.db, account.id, ip_address=ip_address, user_agent=user_agent
        )

        await self._send_email(
            "Welcome", account.id,
            self.mailer.send_welcome, account.email, account.organization_name, account.role,
        )

        return AuthResult(token=token, expires_at=session.expires_at, account=account)

    async def login(
        self,
        email: str,
        password: str,
        role: Role,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        """
        Authenticate with email, password and role.

        Unknown account and wrong password are indistinguishable: same
        exception, same message, and a bcrypt verification on both paths.

        Raises:
            AuthenticationError: "Invalid email or password"
        """
        account = self._find_account(email, role)

        if account is None:
            verify_password(password, dummy_password_hash())
            logger.info("Login failed: no %s account for submitted email", role.value)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not verify_password(password, account.password_hash):
            logger.info("Login failed: bad password for account %s", account.id)
            raise AuthenticationError(INVALID_CREDENTIALS)

        # Upgrade legacy or low-cost hashes while the plaintext is at hand
        if needs_rehash(account.password_hash):
            account.password_hash = hash_password(password)
            account.updated_at = utcnow()
            self.db.add(account)
            commit(self.db)
            self.db.refresh(account)
            logger.info("Password hash upgraded for account %s", account.id)

        token, session = await sessions.create_session(
            self.db, account.id, ip_address=ip_address, user_agent=user_agent
        )
        logger.info("Login succeeded for account %s", account.id)

        return AuthResult(token=token, expires_at=session.expires_at, account=account)

    async def authenticate(self, token: Optional[str]) -> Tuple[Account, Session]:
        """
        Resolve a session token to its account.

        Raises:
            AuthenticationError: token missing, malformed, unknown or expired
        """
        session = await sessions.validate_session(self.db, token)
        if session is None or session.account is None:
            raise AuthenticationError(NOT_AUTHENTICATED)
        return session.account, session

    async def logout(self, token: Optional[str]) -> int:
        """
        Delete the session behind a token. Idempotent; never raises for a
        missing or already invalid token.

        Returns:
            Number of sessions deleted (0 or 1)
        """
        return int(await sessions.revoke_session(self.db, token))

    async def logout_all(self, account: Account) -> int:
        """Delete every session of an account, including the caller's."""
        return await sessions.revoke_all_account_sessions(self.db, account.id)

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------

    def build_reset_link(self, token: str, role: Role) -> str:
        query = urlencode({"token": token, "role": role.value})
        return f"{self.settings.APP_URL}/{role.value}/reset-password?{query}"

    async def forgot_password(self, email: str, role: Role) -> str:
        """
        Start password recovery.

        Always returns the same message. When the account exists a reset
        token is stored and the link is emailed; an email failure is logged
        and does not change the outcome.
        """
        account = self._find_account(email, role)

        if account is None:
            logger.info("Forgot-password: no %s account for submitted email", role.value)
            return FORGOT_PASSWORD_MESSAGE

        token, _ = await reset_tokens.create_reset_token(self.db, account.id)
        reset_link = self.build_reset_link(token, role)

        await self._send_email(
            "Reset", account.id, self.mailer.send_password_reset, account.email, reset_link, role,
        )

        return FORGOT_PASSWORD_MESSAGE

    async def validate_reset_token(self, token: Optional[str]) -> None:
        """
        Check that a reset link is still usable, without consuming it.

        Raises:
            InvalidResetTokenError: for any unusable token
        """
        if await reset_tokens.find_reset_token(self.db, token) is None:
            raise InvalidResetTokenError()

    async def reset_password(
        self,
        token: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> str:
        """
        Set a new password using a reset token.

        The token is claimed and the password written in one transaction;
        of two concurrent resets with the same token only one succeeds.
        Afterwards every session of the account is revoked when
        REVOKE_SESSIONS_ON_RESET is set.

        Raises:
            ValidationError: password missing, mismatched or too short
            InvalidResetTokenError: token unknown, expired, malformed or used
        """
        check_new_password(password, confirm_password)
        new_hash = hash_password(password)

        account_id = await reset_tokens.consume_reset_token(self.db, token)
        if account_id is None:
            self.db.rollback()
            raise InvalidResetTokenError()

        account = self.db.get(Account, account_id)
        if account is None:
            self.db.rollback()
            raise InvalidResetTokenError()

        account.password_hash = new_hash
        account.updated_at = utcnow()
        self.db.add(account)
        reset_tokens.discard_account_reset_tokens(self.db, account.id)
        commit(self.db)
        self.db.refresh(account)

        logger.info("Password reset for account %s", account.id)

        if self.settings.REVOKE_SESSIONS_ON_RESET:
            await sessions.revoke_all_account_sessions(self.db, account.id)

        await self._notify_password_changed(account)
        return RESET_SUCCESS_MESSAGE

    async def change_password(
        self,
        account: Account,
        current_token: Optional[str],
        current_password: str,
        password: str,
        confirm_password: str,
    ) -> int:
        """
        Change the password of a signed-in account.

        Other sessions are revoked; the caller's session survives.

        Returns:
            Number of other sessions revoked

        Raises:
            ValidationError: wrong current password, or invalid new password
        """
        if not verify_password(current_password or "", account.password_hash):
            logger.info("Password change rejected for account %s", account.id)
            raise ValidationError("Current password is incorrect", field="currentPassword")

        check_new_password(password, confirm_password)

        account.password_hash = hash_password(password)
        account.updated_at = utcnow()
        self.db.add(account)
        commit(self.db)
        self.db.refresh(account)

        revoked = await sessions.revoke_all_account_sessions(
            self.db, account.id, keep_token=current_token
        )
        logger.info("Password changed for account %s", account.id)

        await self._notify_password_changed(account)
        return revoked

    async def _notify_password_changed(self, account: Account) -> None:
        await self._send_email(
            "Password-changed", account.id,
            self.mailer.send_password_changed,
            account.email, account.organization_name, account.role,
        )

    # ------------------------------------------------------------------
    # Outbound email
    # ------------------------------------------------------------------

    async def _send_email(self, kind: str, account_id, send, *args) -> None:
        """
        Fire-and-forget delivery.

        Queued on BackgroundTasks when available, so it runs after the
        response is sent; awaited inline otherwise (scripts, unit tests).
        Arguments must be plain values, not ORM instances, since the
        database session is closed by the time a queued task runs.
        """
        if self.background_tasks is not None:
            self.background_tasks.add_task(self._deliver, kind, account_id, send, *args)
        else:
            await self._deliver(kind, account_id, send, *args)

    @staticmethod
    async def _deliver(kind: str, account_id, send, *args) -> None:
        try:
            await send(*args)
        except Exception:
            logger.exception("%s email failed for account %s", kind, account_id)
