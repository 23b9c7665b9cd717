"""
Healthcare Portal - Authentication Test Suite

Tests for:
- Password hashing and opaque tokens
- Signup / login / logout
- Forgot-password and reset-password
- Change-password and session listing
- Account enumeration resistance

Run with: pytest tests/test_auth.py -v
"""

import hashlib
import logging
import os
from datetime import timedelta

import bcrypt
import pytest
from fastapi import BackgroundTasks
from sqlalchemy.exc import OperationalError
from sqlmodel import Session as DBSession, select

from healthportal.auth.models import Account, ResetToken, Role, Session, utcnow
from healthportal.auth.password import (
    dummy_password_hash,
    hash_password,
    needs_rehash,
    verify_password,
)
from healthportal.auth.service import AuthService
from healthportal.auth.tokens import hash_token, is_well_formed, new_token
from healthportal.exceptions import DependencyError
from healthportal.services.mailer import MailDeliveryError
from tests.conftest import (
    HOSPITAL_PASSWORD,
    FailingMailer,
    RecordingMailer,
    auth_headers,
    login,
    login_token,
    signup_payload,
    token_from_link,
)


def legacy_secret(password: str) -> str:
    """Secret in the previous portal's "<hex salt>:<hex pbkdf2>" format."""
    salt = os.urandom(16).hex()
    digest = hashlib.pbkdf2_hmac("sha512", password.encode(), salt.encode(), 1000, dklen=64)
    return f"{salt}:{digest.hex()}"


# =============================================================================
# PASSWORD HASHING TESTS
# =============================================================================

class TestPasswordHashing:
    """Unit tests for bcrypt password utilities."""

    def test_hash_password_creates_bcrypt_hash(self):
        hashed = hash_password("SecurePassword123")

        assert hashed.startswith("$2b$")
        assert len(hashed) == 60

    def test_verify_password_correct(self):
        hashed = hash_password("SecurePassword123")

        assert verify_password("SecurePassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("SecurePassword123")

        assert verify_password("WrongPassword", hashed) is False

    def test_verify_password_empty_string(self):
        hashed = hash_password("SecurePassword123")

        assert verify_password("", hashed) is False

    def test_different_passwords_different_hashes(self):
        """Same password generates different hashes (salted)."""
        hash1 = hash_password("SecurePassword123")
        hash2 = hash_password("SecurePassword123")

        assert hash1 != hash2
        assert verify_password("SecurePassword123", hash1) is True
        assert verify_password("SecurePassword123", hash2) is True

    def test_only_first_72_bytes_count(self):
        base = "a" * 72
        hashed = hash_password(base + "tail-one")

        assert verify_password(base + "tail-two", hashed) is True

    def test_corrupt_secret_does_not_raise(self):
        assert verify_password("password1", "$2b$04$not-a-real-hash") is False
        assert verify_password("password1", "garbage") is False
        assert verify_password("password1", "") is False

    def test_legacy_pbkdf2_secret_verifies(self):
        secret = legacy_secret("password1")

        assert verify_password("password1", secret) is True
        assert verify_password("password2", secret) is False

    def test_legacy_secret_needs_rehash(self):
        assert needs_rehash(legacy_secret("password1")) is True

    def test_needs_rehash_old_work_factor(self):
        old_hash = bcrypt.hashpw(b"password", bcrypt.gensalt(rounds=4)).decode()

        assert needs_rehash(old_hash, target_work_factor=12) is True

    def test_needs_rehash_current_factor(self):
        assert needs_rehash(hash_password("password")) is False

    def test_dummy_hash_is_cached(self):
        assert dummy_password_hash() is dummy_password_hash()


# =============================================================================
# OPAQUE TOKEN TESTS
# =============================================================================

class TestTokens:
    """Unit tests for session / reset token generation."""

    def test_new_token_is_64_hex_chars(self):
        token = new_token()

        assert len(token) == 64
        assert is_well_formed(token)

    def test_tokens_are_unique(self):
        assert len({new_token() for _ in range(200)}) == 200

    def test_hash_token_is_sha256(self):
        token = new_token()

        assert hash_token(token) == hashlib.sha256(token.encode()).hexdigest()
        assert hash_token(token) != token

    @pytest.mark.parametrize("value", [None, "", "abc", "G" * 64, "A" * 64, "a" * 65])
    def test_malformed_tokens_rejected(self, value):
        assert is_well_formed(value) is False


# =============================================================================
# SIGNUP TESTS
# =============================================================================

class TestSignupEndpoint:

    def test_signup_success(self, client, db_session):
        response = client.post("/api/v1/auth/signup", json=signup_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == "new@hospital.com"
        assert data["user"]["role"] == "hospital"
        assert data["user"]["organizationName"] == "New Hospital"
        assert "password_hash" not in data["user"]
        assert "passwordHash" not in data["user"]
        assert is_well_formed(data["session_token"])

        session = db_session.get(Session, hash_token(data["session_token"]))
        assert session is not None

    def test_signup_normalizes_email(self, client):
        response = client.post(
            "/api/v1/auth/signup", json=signup_payload(email="  New@Hospital.COM ")
        )

        assert response.status_code == 201
        assert response.json()["user"]["email"] == "new@hospital.com"

    def test_signup_stores_bcrypt_hash(self, client, db_session):
        client.post("/api/v1/auth/signup", json=signup_payload())

        account = db_session.exec(select(Account)).first()
        assert account.password_hash.startswith("$2b$")
        assert verify_password("password1", account.password_hash)

    def test_signup_sets_session_cookie(self, client):
        response = client.post("/api/v1/auth/signup", json=signup_payload())

        cookie = response.headers["set-cookie"].lower()
        assert cookie.startswith("session_token=")
        assert "httponly" in cookie
        assert "samesite=lax" in cookie
        assert "max-age=604800" in cookie
        assert "secure" not in cookie  # development

    def test_duplicate_email_same_role_rejected(self, client, hospital_account):
        response = client.post(
            "/api/v1/auth/signup", json=signup_payload(email=hospital_account.email)
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Email already registered"

    def test_same_email_other_role_allowed(self, client, hospital_account):
        response = client.post(
            "/api/v1/auth/signup",
            json=signup_payload(email=hospital_account.email, role="lab"),
        )

        assert response.status_code == 201
        assert response.json()["user"]["role"] == "lab"

    def test_password_mismatch_rejected(self, client, db_session):
        response = client.post(
            "/api/v1/auth/signup", json=signup_payload(confirmPassword="password2")
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Passwords do not match"
        assert db_session.exec(select(Account)).first() is None

    def test_short_password_rejected(self, client):
        response = client.post(
            "/api/v1/auth/signup",
            json=signup_payload(password="short", confirmPassword="short"),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Password must be at least 8 characters"

    def test_mismatch_reported_before_length(self, client):
        response = client.post(
            "/api/v1/auth/signup",
            json=signup_payload(password="short", confirmPassword="other"),
        )

        assert response.json()["detail"] == "Passwords do not match"

    def test_missing_fields_rejected(self, client):
        payload = signup_payload()
        del payload["organizationName"]

        response = client.post("/api/v1/auth/signup", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing or invalid fields"

    def test_unknown_role_rejected(self, client):
        response = client.post("/api/v1/auth/signup", json=signup_payload(role="admin"))

        assert response.status_code == 400

    def test_invalid_email_rejected(self, client):
        response = client.post("/api/v1/auth/signup", json=signup_payload(email="not-an-email"))

        assert response.status_code == 400

    def test_validation_errors_never_echo_password(self, client):
        payload = signup_payload(password="SuperSecret99", email="bad")

        response = client.post("/api/v1/auth/signup", json=payload)

        assert "SuperSecret99" not in response.text

    def test_welcome_email_sent(self, client, mailer):
        client.post("/api/v1/auth/signup", json=signup_payload())

        assert len(mailer.sent) == 1
        assert mailer.sent[0]["to"] == "new@hospital.com"
        assert "New Hospital" in mailer.sent[0]["html"]

    def test_signup_succeeds_when_mail_fails(self, client, caplog):
        client.app.state.mailer = FailingMailer()

        with caplog.at_level(logging.ERROR, logger="healthportal.auth.service"):
            response = client.post("/api/v1/auth/signup", json=signup_payload())

        assert response.status_code == 201
        assert "Welcome email failed" in caplog.text


# =============================================================================
# LOGIN TESTS
# =============================================================================

class TestLoginEndpoint:

    def test_login_success(self, client, hospital_account):
        response = login(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == str(hospital_account.id)
        assert is_well_formed(data["session_token"])
        assert "expires_at" in data

    def test_login_email_case_insensitive(self, client, hospital_account):
        response = login(client, "ADMIN@CityHospital.com", HOSPITAL_PASSWORD, "hospital")

        assert response.status_code == 200

    def test_login_invalid_password(self, client, hospital_account):
        response = login(client, hospital_account.email, "WrongPassword1", "hospital")

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_login_unknown_email(self, client):
        response = login(client, "nobody@nowhere.com", "whatever123", "hospital")

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_login_wrong_role(self, client, hospital_account):
        response = login(client, hospital_account.email, HOSPITAL_PASSWORD, "lab")

        assert response.status_code == 401

    def test_login_failures_are_indistinguishable(self, client, hospital_account):
        wrong_password = login(client, hospital_account.email, "WrongPassword1", "hospital")
        unknown_email = login(client, "nobody@nowhere.com", "WrongPassword1", "hospital")
        wrong_role = login(client, hospital_account.email, HOSPITAL_PASSWORD, "lab")

        assert wrong_password.status_code == unknown_email.status_code == wrong_role.status_code
        assert wrong_password.content == unknown_email.content == wrong_role.content

    def test_login_creates_distinct_sessions(self, client, hospital_account):
        first = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")
        second = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        assert first != second

    def test_login_upgrades_legacy_hash(self, client, db_session):
        now = utcnow()
        account = Account(
            email="old@hospital.com",
            password_hash=legacy_secret("password1"),
            role=Role.HOSPITAL,
            organization_name="Old Hospital",
            created_at=now,
            updated_at=now,
        )
        db_session.add(account)
        db_session.commit()

        response = login(client, "old@hospital.com", "password1", "hospital")

        assert response.status_code == 200
        db_session.refresh(account)
        assert account.password_hash.startswith("$2b$")
        assert verify_password("password1", account.password_hash)


# =============================================================================
# SESSION / LOGOUT TESTS
# =============================================================================

class TestSessionAuthentication:

    def test_me_with_bearer(self, client, hospital_account):
        token = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")
        client.cookies.clear()

        response = client.get("/api/v1/auth/me", headers=auth_headers(token))

        assert response.status_code == 200
        assert response.json()["email"] == hospital_account.email

    def test_me_with_cookie(self, client, hospital_account):
        login(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        response = client.get("/api/v1/auth/me")

        assert response.status_code == 200

    def test_missing_token_rejected(self, client):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    def test_unknown_token_rejected(self, client):
        response = client.get("/api/v1/auth/me", headers=auth_headers(new_token()))

        assert response.status_code == 401

    def test_bearer_overrides_cookie(self, client, hospital_account):
        login(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        response = client.get("/api/v1/auth/me", headers=auth_headers(new_token()))

        assert response.status_code == 401

    def test_expired_session_rejected_and_removed(self, client, db_session, hospital_account):
        token = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")
        session = db_session.get(Session, hash_token(token))
        session.expires_at = utcnow() - timedelta(seconds=1)
        db_session.add(session)
        db_session.commit()

        response = client.get("/api/v1/auth/me", headers=auth_headers(token))

        assert response.status_code == 401
        db_session.expire_all()
        assert db_session.get(Session, hash_token(token)) is None

    def test_sessions_listing_marks_current(self, client, hospital_account):
        first = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")
        login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        response = client.get("/api/v1/auth/sessions", headers=auth_headers(first))

        data = response.json()
        assert data["total"] == 2
        assert [s["is_current"] for s in data["sessions"]].count(True) == 1


class TestLogoutEndpoint:

    def test_logout_invalidates_session(self, client, hospital_account):
        token = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        response = client.post("/api/v1/auth/logout", headers=auth_headers(token))

        assert response.status_code == 200
        assert response.json()["sessions_invalidated"] == 1
        assert client.get("/api/v1/auth/me", headers=auth_headers(token)).status_code == 401

    def test_logout_clears_cookie(self, client, hospital_account):
        login(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        response = client.post("/api/v1/auth/logout")

        cookie = response.headers["set-cookie"].lower()
        assert cookie.startswith("session_token=")
        assert "max-age=0" in cookie

    def test_logout_without_session_succeeds(self, client):
        response = client.post("/api/v1/auth/logout")

        assert response.status_code == 200
        assert response.json()["sessions_invalidated"] == 0

    def test_logout_twice_succeeds(self, client, hospital_account):
        token = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        client.post("/api/v1/auth/logout", headers=auth_headers(token))
        response = client.post("/api/v1/auth/logout", headers=auth_headers(token))

        assert response.status_code == 200

    def test_logout_leaves_other_sessions(self, client, hospital_account):
        first = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")
        second = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        client.post("/api/v1/auth/logout", headers=auth_headers(first))

        assert client.get("/api/v1/auth/me", headers=auth_headers(second)).status_code == 200

    def test_logout_all_sessions(self, client, hospital_account):
        first = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")
        second = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        response = client.post("/api/v1/auth/logout-all", headers=auth_headers(first))

        assert response.json()["sessions_invalidated"] == 2
        assert client.get("/api/v1/auth/me", headers=auth_headers(first)).status_code == 401
        assert client.get("/api/v1/auth/me", headers=auth_headers(second)).status_code == 401


# =============================================================================
# PASSWORD RECOVERY TESTS
# =============================================================================

def request_reset(client, mailer, email: str, role: str = "hospital") -> str:
    response = client.post(
        "/api/v1/auth/forgot-password", json={"email": email, "role": role}
    )
    assert response.status_code == 200
    return token_from_link(mailer.reset_links[-1])


class TestForgotPassword:

    def test_known_account_gets_link(self, client, mailer, hospital_account):
        response = client.post(
            "/api/v1/auth/forgot-password",
            json={"email": hospital_account.email, "role": "hospital"},
        )

        assert response.json()["message"] == "If this email exists, a reset link will be sent"
        assert len(mailer.reset_links) == 1
        link = mailer.reset_links[0]
        assert link.startswith("http://localhost:3000/hospital/reset-password?token=")
        assert link.endswith("&role=hospital")
        assert is_well_formed(token_from_link(link))

    def test_unknown_account_same_response(self, client, mailer, db_session, hospital_account):
        known = client.post(
            "/api/v1/auth/forgot-password",
            json={"email": hospital_account.email, "role": "hospital"},
        )
        unknown = client.post(
            "/api/v1/auth/forgot-password",
            json={"email": "nobody@nowhere.com", "role": "hospital"},
        )
        wrong_role = client.post(
            "/api/v1/auth/forgot-password",
            json={"email": hospital_account.email, "role": "lab"},
        )

        assert known.status_code == unknown.status_code == wrong_role.status_code == 200
        assert known.content == unknown.content == wrong_role.content
        assert len(mailer.reset_links) == 1
        stored = db_session.exec(select(ResetToken)).all()
        assert [record.account_id for record in stored] == [hospital_account.id]

    @pytest.mark.parametrize(
        "email, role",
        [("nobody@nowhere.com", "hospital"), ("admin@cityhospital.com", "lab")],
    )
    def test_no_token_stored_without_matching_account(
        self, client, mailer, db_session, hospital_account, email, role
    ):
        response = client.post("/api/v1/auth/forgot-password", json={"email": email, "role": role})

        assert response.status_code == 200
        assert mailer.sent == []
        assert db_session.exec(select(ResetToken)).all() == []

    def test_only_digest_is_stored(self, client, mailer, db_session, hospital_account):
        token = request_reset(client, mailer, hospital_account.email)

        record = db_session.exec(select(ResetToken)).one()
        assert record.token_hash == hash_token(token)
        assert record.account_id == hospital_account.id
        lifetime = record.expires_at - record.created_at
        assert lifetime == timedelta(minutes=60)

    def test_mail_failure_still_succeeds(self, client, hospital_account):
        client.app.state.mailer = FailingMailer()

        response = client.post(
            "/api/v1/auth/forgot-password",
            json={"email": hospital_account.email, "role": "hospital"},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "If this email exists, a reset link will be sent"

    def test_invalid_email_rejected(self, client):
        response = client.post(
            "/api/v1/auth/forgot-password", json={"email": "nope", "role": "hospital"}
        )

        assert response.status_code == 400


class TestEmailDelivery:
    """Emails are queued behind the response, not sent inline."""

    @pytest.mark.asyncio
    async def test_reset_email_sent_after_response(self, db_session, hospital_account):
        mailer = RecordingMailer()
        tasks = BackgroundTasks()
        service = AuthService(db_session, mailer, background_tasks=tasks)

        await service.forgot_password(hospital_account.email, Role.HOSPITAL)

        assert mailer.reset_links == []
        assert len(tasks.tasks) == 1

        await tasks()

        assert len(mailer.reset_links) == 1

    @pytest.mark.asyncio
    async def test_unknown_account_queues_nothing(self, db_session):
        tasks = BackgroundTasks()
        service = AuthService(db_session, RecordingMailer(), background_tasks=tasks)

        await service.forgot_password("nobody@nowhere.com", Role.HOSPITAL)

        assert tasks.tasks == []

    @pytest.mark.asyncio
    async def test_queued_failure_is_logged(self, db_session, hospital_account, caplog):
        tasks = BackgroundTasks()
        service = AuthService(db_session, FailingMailer(), background_tasks=tasks)

        await service.forgot_password(hospital_account.email, Role.HOSPITAL)
        with caplog.at_level(logging.ERROR, logger="healthportal.auth.service"):
            await tasks()

        assert f"Reset email failed for account {hospital_account.id}" in caplog.text

    @pytest.mark.asyncio
    async def test_without_background_tasks_sends_inline(self, db_session, hospital_account):
        mailer = RecordingMailer()
        service = AuthService(db_session, mailer)

        await service.forgot_password(hospital_account.email, Role.HOSPITAL)

        assert len(mailer.reset_links) == 1


class TestResetPassword:

    def reset(self, client, token, password="NewPassword1", confirm=None):
        return client.post(
            "/api/v1/auth/reset-password",
            json={
                "token": token,
                "password": password,
                "confirmPassword": confirm if confirm is not None else password,
            },
        )

    def test_full_reset_flow(self, client, mailer, hospital_account):
        token = request_reset(client, mailer, hospital_account.email)

        response = self.reset(client, token)

        assert response.status_code == 200
        assert response.json()["message"] == "Password reset successfully"
        assert login(client, hospital_account.email, "NewPassword1", "hospital").status_code == 200
        assert login(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital").status_code == 401

    def test_token_is_single_use(self, client, mailer, hospital_account):
        token = request_reset(client, mailer, hospital_account.email)
        self.reset(client, token)

        response = self.reset(client, token, password="Another123")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired reset token"

    def test_validate_endpoint(self, client, mailer, hospital_account):
        token = request_reset(client, mailer, hospital_account.email)

        before = client.get("/api/v1/auth/reset-password/validate", params={"token": token})
        self.reset(client, token)
        after = client.get("/api/v1/auth/reset-password/validate", params={"token": token})

        assert before.status_code == 200
        assert before.json() == {"valid": True}
        assert after.status_code == 400
        assert after.json()["detail"] == "Invalid or expired reset token"

    def test_expired_token_rejected(self, client, mailer, db_session, hospital_account):
        token = request_reset(client, mailer, hospital_account.email)
        record = db_session.get(ResetToken, hash_token(token))
        record.expires_at = utcnow() - timedelta(minutes=1)
        db_session.add(record)
        db_session.commit()

        response = self.reset(client, token)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired reset token"

    @pytest.mark.parametrize("token", ["garbage", "0" * 64])
    def test_unknown_token_rejected(self, client, token):
        response = self.reset(client, token)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired reset token"

    def test_mismatch_does_not_consume_token(self, client, mailer, hospital_account):
        token = request_reset(client, mailer, hospital_account.email)

        mismatch = self.reset(client, token, password="NewPassword1", confirm="NewPassword2")
        retry = self.reset(client, token)

        assert mismatch.status_code == 400
        assert mismatch.json()["detail"] == "Passwords do not match"
        assert retry.status_code == 200

    def test_short_password_rejected(self, client, mailer, hospital_account):
        token = request_reset(client, mailer, hospital_account.email)

        response = self.reset(client, token, password="short")

        assert response.json()["detail"] == "Password must be at least 8 characters"

    def test_reset_revokes_sessions(self, client, mailer, hospital_account):
        session_token = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")
        token = request_reset(client, mailer, hospital_account.email)

        self.reset(client, token)

        response = client.get("/api/v1/auth/me", headers=auth_headers(session_token))
        assert response.status_code == 401

    def test_reset_discards_older_links(self, client, mailer, hospital_account):
        first = request_reset(client, mailer, hospital_account.email)
        second = request_reset(client, mailer, hospital_account.email)

        assert self.reset(client, second).status_code == 200
        assert self.reset(client, first, password="Another123").status_code == 400

    def test_reset_sends_notification(self, client, mailer, hospital_account):
        token = request_reset(client, mailer, hospital_account.email)
        sent_before = len(mailer.sent)

        self.reset(client, token)

        assert len(mailer.sent) == sent_before + 1
        assert mailer.sent[-1]["to"] == hospital_account.email


# =============================================================================
# CHANGE PASSWORD TESTS
# =============================================================================

class TestChangePassword:

    def change(self, client, token, current, new="ChangedPass1"):
        return client.post(
            "/api/v1/auth/change-password",
            headers=auth_headers(token),
            json={"currentPassword": current, "password": new, "confirmPassword": new},
        )

    def test_change_password_keeps_current_session(self, client, hospital_account):
        current = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")
        other = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        response = self.change(client, current, HOSPITAL_PASSWORD)

        assert response.status_code == 200
        assert client.get("/api/v1/auth/me", headers=auth_headers(current)).status_code == 200
        assert client.get("/api/v1/auth/me", headers=auth_headers(other)).status_code == 401
        assert login(client, hospital_account.email, "ChangedPass1", "hospital").status_code == 200

    def test_wrong_current_password(self, client, hospital_account):
        token = login_token(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital")

        response = self.change(client, token, "NotMyPassword1")

        assert response.status_code == 400
        assert response.json()["detail"] == "Current password is incorrect"
        assert login(client, hospital_account.email, HOSPITAL_PASSWORD, "hospital").status_code == 200

    def test_requires_authentication(self, client):
        response = client.post(
            "/api/v1/auth/change-password",
            json={"currentPassword": "x", "password": "ChangedPass1", "confirmPassword": "ChangedPass1"},
        )

        assert response.status_code == 401


# =============================================================================
# APPLICATION TESTS
# =============================================================================

class TestApplication:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["services"]["database"] is True

    def test_unknown_route_uses_not_found_body(self, client):
        response = client.get("/api/v1/nowhere")

        assert response.status_code == 404
        assert response.json() == {"detail": "Not found"}

    def test_mail_failure_is_a_dependency_error(self):
        error = MailDeliveryError("SMTP unreachable")

        assert isinstance(error, DependencyError)
        assert error.status_code == 500

    def test_store_failure_returns_opaque_500(self, client, db_session, monkeypatch):
        def failing_commit(self):
            raise OperationalError("INSERT INTO accounts", {}, Exception("database is locked"))

        monkeypatch.setattr(DBSession, "commit", failing_commit)

        response = client.post("/api/v1/auth/signup", json=signup_payload())

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        assert "locked" not in response.text
        monkeypatch.undo()
        assert db_session.exec(select(Account)).all() == []

    def test_security_headers(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Referrer-Policy"] == "no-referrer"
