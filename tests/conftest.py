"""
Healthcare Portal - Test Configuration

Pytest fixtures for authentication and consultation testing.
Provides test database, client, mailer and account fixtures.
"""

import os

# Cheap bcrypt and no real mail server for the whole test session
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAIL_SERVER"] = ""

from typing import Generator
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from healthportal.app import app
from healthportal.auth.database import get_engine, get_session_factory, init_db
from healthportal.auth.models import Account, Role, utcnow
from healthportal.auth.password import hash_password
from healthportal.services.mailer import MailDeliveryError, Mailer


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite://"

HOSPITAL_PASSWORD = "HospitalPass123"
LAB_PASSWORD = "LabPass12345"


class RecordingMailer(Mailer):
    """Keeps every message in memory instead of sending it."""

    def __init__(self):
        super().__init__()
        self.sent = []
        self.reset_links = []

    async def deliver(self, to: str, subject: str, html: str) -> None:
        self.sent.append({"to": to, "subject": subject, "html": html})

    async def send_password_reset(self, to: str, reset_link: str, role: Role) -> None:
        self.reset_links.append(reset_link)
        await super().send_password_reset(to, reset_link, role)


class FailingMailer(Mailer):
    """Every send fails, as with an unreachable SMTP server."""

    async def deliver(self, to: str, subject: str, html: str) -> None:
        raise MailDeliveryError("SMTP unreachable")


@pytest.fixture(scope="function")
def test_engine():
    """Create a fresh test database engine for each test."""
    engine = get_engine(TEST_DATABASE_URL)

    init_db(engine)

    yield engine

    # Cleanup
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(scope="function")
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(scope="function")
def client(test_engine, mailer) -> Generator[TestClient, None, None]:
    """Create a test client with fresh database and recording mailer."""
    with TestClient(app) as c:
        # Startup has run; point the app at the test database and mailer
        app.state.db_engine = test_engine
        app.state.db_session_factory = get_session_factory(test_engine)
        app.state.mailer = mailer
        yield c


def _make_account(db_session, email: str, password: str, role: Role, name: str) -> Account:
    now = utcnow()
    account = Account(
        email=email,
        password_hash=hash_password(password),
        role=role,
        organization_name=name,
        created_at=now,
        updated_at=now,
    )
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture(scope="function")
def hospital_account(db_session) -> Account:
    """Create a test hospital account."""
    return _make_account(
        db_session, "admin@cityhospital.com", HOSPITAL_PASSWORD, Role.HOSPITAL, "City Hospital"
    )


@pytest.fixture(scope="function")
def other_hospital_account(db_session) -> Account:
    """Create a second hospital for cross-tenant checks."""
    return _make_account(
        db_session, "admin@riverside.org", "RiversidePass1", Role.HOSPITAL, "Riverside Clinic"
    )


@pytest.fixture(scope="function")
def lab_account(db_session) -> Account:
    """Create a test lab account."""
    return _make_account(
        db_session, "desk@pathlab.com", LAB_PASSWORD, Role.LAB, "Path Lab"
    )


def signup_payload(**overrides) -> dict:
    """Valid signup body, camelCase as sent by the frontend."""
    payload = {
        "email": "new@hospital.com",
        "password": "password1",
        "confirmPassword": "password1",
        "role": "hospital",
        "organizationName": "New Hospital",
    }
    payload.update(overrides)
    return payload


def login(client: TestClient, email: str, password: str, role: str):
    """Helper function to post a login request."""
    return client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password, "role": role},
    )


def login_token(client: TestClient, email: str, password: str, role: str) -> str:
    response = login(client, email, password, role)
    assert response.status_code == 200, response.text
    return response.json()["session_token"]


def auth_headers(session_token: str) -> dict:
    """Create authorization headers for authenticated requests."""
    return {"Authorization": f"Bearer {session_token}"}


def token_from_link(link: str) -> str:
    """Extract the reset token from an emailed reset link."""
    return parse_qs(urlparse(link).query)["token"][0]
