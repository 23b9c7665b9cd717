"""
Healthcare Portal - Security Dependencies

FastAPI dependencies for database access, the authentication service and
session resolution.

Usage:
    @router.get("/protected")
    async def protected_route(current: AuthenticatedAccount = Depends(get_current_account)):
        ...

Security:
- The session token is read from "Authorization: Bearer <token>" or, when
  absent, from the session cookie
- Every protected request validates the token against the session store
- Failures are a single generic 401
"""

from dataclasses import dataclass, field
from typing import Generator, Optional
from uuid import UUID

from fastapi import BackgroundTasks, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session as DBSession

from healthportal.auth.models import Account, Role, Session
from healthportal.auth.service import AuthService
from healthportal.config import settings
from healthportal.services.mailer import Mailer


# HTTP Bearer scheme; cookie auth is the fallback
security = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedAccount:
    """
    Represents a validated, signed-in organization account.

    Available in route handlers via Depends(get_current_account).
    """
    account: Account
    session: Session
    token: str = field(repr=False)

    @property
    def account_id(self) -> UUID:
        return self.account.id

    @property
    def role(self) -> Role:
        return self.account.role


def get_db(request: Request) -> Generator[DBSession, None, None]:
    """Yield a database session from the app's session factory."""
    db = request.app.state.db_session_factory()
    try:
        yield db
    finally:
        db.close()


def get_mailer(request: Request) -> Mailer:
    """Email collaborator configured at startup."""
    return request.app.state.mailer


def get_auth_service(
    background_tasks: BackgroundTasks,
    db: DBSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> AuthService:
    """Service for one request; emails go out after the response."""
    return AuthService(db, mailer, background_tasks=background_tasks)


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_user_agent(request: Request) -> str:
    """Extract user agent from request."""
    return request.headers.get("User-Agent", "unknown")[:512]


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """
    Session token presented by the client, if any.

    Bearer header wins over the cookie when both are present.
    """
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_current_account(
    token: Optional[str] = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service),
) -> AuthenticatedAccount:
    """
    Validate request authentication and return the current account.

    Raises:
        AuthenticationError (401): token missing, unknown or expired
    """
    account, session = await service.authenticate(token)
    return AuthenticatedAccount(account=account, session=session, token=token)
