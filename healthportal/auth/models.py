"""
Healthcare Portal - Authentication Database Models

SQLModel-based models for organization accounts, sessions and
password-reset tokens. Uses PostgreSQL for production, SQLite for local
development.

Security:
- Passwords stored as bcrypt hashes only
- Session and reset tokens stored as SHA-256 digests only
- All timestamps in UTC (naive, as stored by the database)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, String, DateTime, UniqueConstraint, Enum as SQLEnum


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching stored values."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, Enum):
    """
    Organization roles.

    The set is closed: every account is either a hospital or a lab.
    Role is validated once at the request boundary and passed as this
    enum everywhere downstream.
    """
    HOSPITAL = "hospital"
    LAB = "lab"


class Account(SQLModel, table=True):
    """
    One organization's login identity.

    Attributes:
        id: Unique identifier (UUIDv4); doubles as the organization id
        email: Login identifier, lower-cased, unique per role
        password_hash: bcrypt hash (never store plaintext)
        role: hospital or lab
        organization_name: Display name
        organization_type .. country: Contact metadata
        created_at: Account creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """
    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("email", "role", name="uq_accounts_email_role"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique account identifier"
    )
    email: str = Field(
        sa_column=Column(String(255), index=True, nullable=False),
        description="Login email, unique within a role"
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="bcrypt password hash"
    )
    role: Role = Field(
        sa_column=Column(SQLEnum(Role), nullable=False),
        description="Organization role"
    )
    organization_name: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Organization display name"
    )
    organization_type: Optional[str] = Field(default=None, max_length=100)
    contact_person: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=512)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False, default=utcnow),
        description="Account creation timestamp"
    )
    updated_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow),
        description="Last update timestamp"
    )

    # Relationships
    sessions: list["Session"] = Relationship(back_populates="account")


class Session(SQLModel, table=True):
    """
    Server-side session backing an opaque session token.

    Revoking (deleting) the row immediately invalidates the token.

    Attributes:
        token_hash: SHA-256 digest of the session token (primary key)
        account_id: Foreign key to account
        created_at: Session creation timestamp
        expires_at: Fixed expiry (creation + SESSION_EXPIRE_DAYS)
        last_seen: Last activity timestamp (updated on each validation)
        ip_address: Client IP for audit
        user_agent: Client user-agent for audit
    """
    __tablename__ = "sessions"

    token_hash: str = Field(
        sa_column=Column(String(64), primary_key=True),
        description="SHA-256 digest of the session token"
    )
    account_id: UUID = Field(
        foreign_key="accounts.id",
        nullable=False,
        index=True,
        description="Reference to account"
    )
    created_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False, default=utcnow),
        description="Session creation timestamp"
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False, index=True),
        description="Session expiration timestamp"
    )
    last_seen: datetime = Field(
        sa_column=Column(DateTime, nullable=False, default=utcnow),
        description="Last activity timestamp"
    )
    ip_address: Optional[str] = Field(
        sa_column=Column(String(45), nullable=True),
        description="Client IP address"
    )
    user_agent: Optional[str] = Field(
        sa_column=Column(String(512), nullable=True),
        description="Client user-agent string"
    )

    # Relationships
    account: Optional[Account] = Relationship(back_populates="sessions")


class ResetToken(SQLModel, table=True):
    """
    Pending password-reset request.

    Single use: the row is deleted by the reset that consumes it.

    Attributes:
        token_hash: SHA-256 digest of the emailed token (primary key)
        account_id: Account whose password the token may reset
        created_at: Token creation timestamp
        expires_at: Fixed expiry (creation + RESET_TOKEN_EXPIRE_MINUTES)
    """
    __tablename__ = "reset_tokens"

    token_hash: str = Field(
        sa_column=Column(String(64), primary_key=True),
        description="SHA-256 digest of the reset token"
    )
    account_id: UUID = Field(
        foreign_key="accounts.id",
        nullable=False,
        index=True,
        description="Reference to account"
    )
    created_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False, default=utcnow),
        description="Token creation timestamp"
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False),
        description="Token expiration timestamp"
    )
