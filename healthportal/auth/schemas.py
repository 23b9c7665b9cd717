"""
Healthcare Portal - Authentication Request/Response Schemas

Pydantic models for API request validation and response serialization.
Separates API contracts from database models.

Request bodies accept the frontend's camelCase names (confirmPassword,
organizationName, ...) as well as snake_case. Password policy (length,
confirmation) is checked by the service so the order of checks and the
error messages stay in one place.
"""

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, validator

from healthportal.auth.models import Account, Role


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")


def normalize_email(value: str) -> str:
    """Basic email format validation (allows .local for development)."""
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email format")
    return value.lower()


class _Request(BaseModel):
    class Config:
        populate_by_name = True


class SignupRequest(_Request):
    """Request body for POST /auth/signup."""
    email: str = Field(..., description="Organization login email")
    password: str = Field(..., description="New password")
    confirm_password: str = Field(..., alias="confirmPassword")
    role: Role = Field(..., description="hospital or lab")
    organization_name: str = Field(..., alias="organizationName", min_length=1, max_length=255)
    organization_type: Optional[str] = Field(None, alias="organizationType", max_length=100)
    contact_person: Optional[str] = Field(None, alias="contactPerson", max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=512)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, alias="postalCode", max_length=20)
    country: Optional[str] = Field(None, max_length=100)

    @validator("email")
    def email_format(cls, v):
        return normalize_email(v)

    @validator("organization_name")
    def organization_name_present(cls, v):
        if not v.strip():
            raise ValueError("Organization name is required")
        return v.strip()


class LoginRequest(_Request):
    """Request body for POST /auth/login."""
    email: str = Field(..., description="Organization login email")
    password: str = Field(..., min_length=1, description="Account password")
    role: Role = Field(..., description="hospital or lab")

    @validator("email")
    def email_format(cls, v):
        return normalize_email(v)


class ForgotPasswordRequest(_Request):
    """Request body for POST /auth/forgot-password."""
    email: str
    role: Role

    @validator("email")
    def email_format(cls, v):
        return normalize_email(v)


class ResetPasswordRequest(_Request):
    """Request body for POST /auth/reset-password."""
    token: str = Field(..., min_length=1, description="Token from the reset link")
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")


class ChangePasswordRequest(_Request):
    """Request body for POST /auth/change-password."""
    current_password: str = Field(..., alias="currentPassword")
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")


class AccountResponse(BaseModel):
    """Public view of an account. Never includes the password hash."""
    id: UUID
    email: str
    role: Role
    organization_name: str = Field(..., alias="organizationName")
    organization_type: Optional[str] = Field(None, alias="organizationType")
    contact_person: Optional[str] = Field(None, alias="contactPerson")
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = Field(None, alias="postalCode")
    country: Optional[str] = None
    created_at: datetime = Field(..., alias="createdAt")

    class Config:
        from_attributes = True
        populate_by_name = True

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls.model_validate(account)


class AuthResponse(BaseModel):
    """Response body for successful signup and login."""
    success: bool = True
    user: AccountResponse
    session_token: str = Field(..., description="Opaque session token (also set as cookie)")
    expires_at: datetime


class MessageResponse(BaseModel):
    """Generic success response."""
    success: bool = True
    message: str


class LogoutResponse(BaseModel):
    """Response body for logout."""
    success: bool = True
    message: str = Field(default="Logged out successfully")
    sessions_invalidated: int = Field(default=0)


class ResetTokenStatus(BaseModel):
    """Response body for GET /auth/reset-password/validate."""
    valid: bool = True


class SessionInfo(BaseModel):
    """Session information for account display."""
    created_at: datetime
    last_seen: datetime
    expires_at: datetime
    ip_address: Optional[str]
    user_agent: Optional[str]
    is_current: bool = False

    class Config:
        from_attributes = True


class ActiveSessionsResponse(BaseModel):
    """Response body for GET /auth/sessions."""
    sessions: list[SessionInfo]
    total: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
