"""
Healthcare Portal - Configuration Management

Centralized configuration using Pydantic Settings.
All secrets and connection strings are loaded from environment variables.

Security: No secrets are hardcoded. Use .env for local development.
"""

import logging
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    Attributes:
        DATABASE_URL: SQLAlchemy URL (PostgreSQL in production, SQLite locally)
        ENVIRONMENT: "development" or "production"; controls secure cookies
        APP_URL: Public frontend URL used to build reset links
        BCRYPT_ROUNDS: bcrypt work factor for credential hashing
        SESSION_EXPIRE_DAYS: Fixed session lifetime
        RESET_TOKEN_EXPIRE_MINUTES: Fixed reset-token lifetime
        REVOKE_SESSIONS_ON_RESET: Drop every session of an account after a reset
        MAIL_*: Outbound SMTP settings; mail is logged instead of sent
            when MAIL_SERVER is empty
    """
    
    # Runtime
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    APP_URL: str = "http://localhost:3000"
    
    # Database (PostgreSQL for production, SQLite for development)
    DATABASE_URL: str = "sqlite:///./healthportal.db"
    
    # Credentials
    BCRYPT_ROUNDS: int = 12
    
    # Sessions and reset tokens
    SESSION_EXPIRE_DAYS: int = 7
    SESSION_COOKIE_NAME: str = "session_token"
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    REVOKE_SESSIONS_ON_RESET: bool = True
    
    # Outbound email
    MAIL_SERVER: str = ""
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""  # Must be set via environment
    MAIL_FROM: str = "noreply@healthcareportal.local"
    MAIL_FROM_NAME: str = "Healthcare Portal"
    MAIL_STARTTLS: bool = True
    MAIL_SSL_TLS: bool = False
    MAIL_SUPPRESS_SEND: bool = False
    
    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]
    
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()


def configure_logging(level: str = None) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
