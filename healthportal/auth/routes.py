"""
Healthcare Portal - Authentication Routes

API endpoints for authentication:
- POST /auth/signup                   - Register an organization, start a session
- POST /auth/login                    - Authenticate and create session
- POST /auth/logout                   - Delete current session (idempotent)
- POST /auth/logout-all               - Delete every session of the account
- POST /auth/forgot-password          - Email a one-hour reset link
- GET  /auth/reset-password/validate  - Check a reset link before showing the form
- POST /auth/reset-password           - Set a new password with a reset token
- POST /auth/change-password          - Change password while signed in
- GET  /auth/me                       - Current account
- GET  /auth/sessions                 - List active sessions

Session tokens are returned in the body and set as an http-only cookie.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from healthportal.auth.dependencies import (
    AuthenticatedAccount,
    get_auth_service,
    get_client_ip,
    get_current_account,
    get_db,
    get_session_token,
    get_user_agent,
)
from healthportal.auth import sessions as session_service
from healthportal.auth.schemas import (
    AccountResponse,
    ActiveSessionsResponse,
    AuthResponse,
    ChangePasswordRequest,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutResponse,
    MessageResponse,
    ResetPasswordRequest,
    ResetTokenStatus,
    SessionInfo,
    SignupRequest,
)
from healthportal.auth.service import AuthResult, AuthService
from healthportal.auth.tokens import hash_token
from healthportal.config import settings


router = APIRouter(prefix="/auth", tags=["authentication"])


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the session cookie: http-only, lax, secure in production."""
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def _auth_response(response: Response, result: AuthResult) -> AuthResponse:
    set_session_cookie(response, result.token)
    return AuthResponse(
        user=AccountResponse.from_account(result.account),
        session_token=result.token,
        expires_at=result.expires_at,
    )


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Register an organization account",
)
async def signup(
    request: Request,
    response: Response,
    body: SignupRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Create a hospital or lab account and sign it in.

    Returns:
        AuthResponse with the public account view and session token

    Raises:
        400: Missing fields, password mismatch, short password,
             or email already registered for this role
    """
    result = await service.signup(
        body,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    return _auth_response(response, result)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Authenticate and create session",
)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Authenticate with email, password and role.

    Raises:
        401: "Invalid email or password" for any credential failure
    """
    result = await service.login(
        credentials.email,
        credentials.password,
        credentials.role,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    return _auth_response(response, result)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Delete current session",
)
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service),
):
    """
    Delete the presented session and clear the cookie.

    Succeeds even when no session, or an already invalid one, is presented.
    """
    count = await service.logout(token)
    clear_session_cookie(response)
    return LogoutResponse(sessions_invalidated=count)


@router.post(
    "/logout-all",
    response_model=LogoutResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Delete every session of the current account",
)
async def logout_all(
    response: Response,
    current: AuthenticatedAccount = Depends(get_current_account),
    service: AuthService = Depends(get_auth_service),
):
    count = await service.logout_all(current.account)
    clear_session_cookie(response)
    return LogoutResponse(message="All sessions invalidated", sessions_invalidated=count)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Request a password reset link",
)
async def forgot_password(
    body: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Email a reset link if the account exists.

    The response is identical whether or not it does.
    """
    message = await service.forgot_password(body.email, body.role)
    return MessageResponse(message=message)


@router.get(
    "/reset-password/validate",
    response_model=ResetTokenStatus,
    responses={400: {"model": ErrorResponse}},
    summary="Check that a reset link is still usable",
)
async def validate_reset_token(
    token: str = Query(..., min_length=1),
    service: AuthService = Depends(get_auth_service),
):
    await service.validate_reset_token(token)
    return ResetTokenStatus(valid=True)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Set a new password with a reset token",
)
async def reset_password(
    body: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Consume a reset token and set the new password.

    Raises:
        400: Password mismatch / too short, or the generic
             "Invalid or expired reset token"
    """
    message = await service.reset_password(body.token, body.password, body.confirm_password)
    return MessageResponse(message=message)


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Change password while signed in",
)
async def change_password(
    body: ChangePasswordRequest,
    current: AuthenticatedAccount = Depends(get_current_account),
    service: AuthService = Depends(get_auth_service),
):
    """
    Change the password and sign out every other device.
    """
    revoked = await service.change_password(
        current.account,
        current.token,
        body.current_password,
        body.password,
        body.confirm_password,
    )
    return MessageResponse(
        message=f"Password changed; {revoked} other session(s) signed out",
    )


@router.get(
    "/me",
    response_model=AccountResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Get current account",
)
async def get_me(current: AuthenticatedAccount = Depends(get_current_account)):
    return AccountResponse.from_account(current.account)


@router.get(
    "/sessions",
    response_model=ActiveSessionsResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List active sessions",
)
async def list_sessions(
    current: AuthenticatedAccount = Depends(get_current_account),
    db=Depends(get_db),
):
    """
    List all unexpired sessions of the current account.
    """
    active_sessions = await session_service.get_active_sessions(db, current.account_id)
    current_hash = hash_token(current.token)

    session_list = [
        SessionInfo(
            created_at=s.created_at,
            last_seen=s.last_seen,
            expires_at=s.expires_at,
            ip_address=s.ip_address,
            user_agent=s.user_agent,
            is_current=(s.token_hash == current_hash),
        )
        for s in active_sessions
    ]

    return ActiveSessionsResponse(
        sessions=session_list,
        total=len(session_list),
    )
