"""
Tests for authentication endpoints, JWT handling and session lifecycle.

Tests cover:
- JWT token creation and signature verification
- POST /auth/login - staff and student login, rate limiting
- Bearer token resolution (missing, invalid, unknown, expired, orphaned)
- POST /auth/logout - session revocation
- GET /auth/me
- POST /auth/register - admin only staff creation
- PUT /auth/change-password
- PUT /auth/profile
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.jwt_handler import (
    ALGORITHM,
    create_access_token,
    verify_token,
)
from auth.passwords import hash_password, verify_password
from auth.sessions import issue_session
from constants import utc_now
from models import AuthSession, User
from services import accounts
from conftest import DEFAULT_PASSWORD


# ============================================================================
# JWT Token Unit Tests
# ============================================================================

class TestCreateAccessToken:
    """Tests for JWT token creation."""

    def test_creates_valid_token(self):
        """Token should be decodable and contain payload."""
        payload = {"sub": "123", "email": "test@example.com", "role": "TEACHER"}
        token = create_access_token(payload)

        decoded = verify_token(token)
        assert decoded is not None
        assert decoded["sub"] == "123"
        assert decoded["email"] == "test@example.com"
        assert decoded["role"] == "TEACHER"

    def test_token_has_expiry_and_nonce(self):
        decoded = verify_token(create_access_token({"sub": "123"}))
        assert "exp" in decoded
        assert "iat" in decoded
        assert "nonce" in decoded

    def test_same_payload_gives_distinct_tokens(self):
        """Two tokens for the same identity in the same instant must differ."""
        payload = {"sub": "1", "email": "a@example.com"}
        assert create_access_token(payload) != create_access_token(payload)

    def test_explicit_expiry_is_respected(self):
        expires_at = utc_now() + timedelta(hours=1)
        token = create_access_token({"sub": "1"}, expires_at=expires_at)
        exp = verify_token(token)["exp"]
        assert exp == int(expires_at.replace(tzinfo=timezone.utc).timestamp())


class TestVerifyToken:
    """Tests for JWT token verification."""

    def test_wrong_signature_rejected(self):
        token = jwt.encode({"sub": "1"}, "some-other-secret", algorithm=ALGORITHM)
        assert verify_token(token) is None

    def test_garbage_rejected(self):
        assert verify_token("not-a-jwt") is None

    def test_expired_token_still_decodes(self):
        """Expiry is enforced by the session row, not at decode time."""
        token = create_access_token({"sub": "1"}, expires_at=utc_now() - timedelta(days=1))
        decoded = verify_token(token)
        assert decoded is not None
        assert decoded["exp"] < datetime.now(timezone.utc).timestamp()


class TestPasswords:
    """Tests for bcrypt hashing helpers."""

    def test_hash_and_verify(self):
        hashed = hash_password("hunter22")
        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("wrong", hashed)

    def test_missing_hash_never_verifies(self):
        assert not verify_password("anything", None)

    def test_malformed_hash_never_verifies(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


# ============================================================================
# Login
# ============================================================================

class TestLogin:
    """Tests for POST /api/auth/login."""

    def test_staff_login(self, client, admin):
        response = client.post("/api/auth/login", json={"email": admin.email, "password": DEFAULT_PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["token"]
        assert body["expiresAt"]
        assert body["user"]["email"] == admin.email
        assert body["user"]["role"] == "ADMIN"
        assert "password" not in body["user"]

    def test_email_is_case_insensitive(self, client, teacher):
        response = client.post(
            "/api/auth/login",
            json={"email": teacher.email.upper(), "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 200

    def test_student_login_reports_student_role(self, client, student):
        response = client.post("/api/auth/login", json={"email": student.email, "password": DEFAULT_PASSWORD})

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["role"] == "STUDENT"
        assert user["teacher_id"] == student.teacher_id

    def test_student_without_password_cannot_log_in(self, client, teacher, make_student):
        make_student(teacher, name="No Login", email="nologin@example.com")
        response = client.post("/api/auth/login", json={"email": "nologin@example.com", "password": "whatever"})
        assert response.status_code == 401

    def test_wrong_password(self, client, teacher):
        response = client.post("/api/auth/login", json={"email": teacher.email, "password": "wrong-password"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    def test_unknown_email(self, client):
        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "x"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    def test_unknown_email_still_checks_a_hash(self, client, monkeypatch):
        checked = []

        async def recording_verify(password, hashed):
            checked.append(hashed)
            return False

        monkeypatch.setattr(accounts, "verify_password_async", recording_verify)
        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "x"})

        assert response.status_code == 401
        assert len(checked) == 1
        assert checked[0].startswith("$2")

    def test_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"email": "a@example.com"})
        assert response.status_code == 400
        assert "password" in response.json()["error"]

    def test_each_login_creates_independent_session(self, client, db_session, teacher, login):
        first = login(teacher.email)
        second = login(teacher.email)

        assert first != second
        assert db_session.query(AuthSession).filter(AuthSession.user_id == teacher.id).count() == 2

        client.post("/api/auth/logout", headers=first)
        assert client.get("/api/auth/me", headers=second).status_code == 200

    def test_rate_limited(self, client, teacher):
        for _ in range(10):
            client.post("/api/auth/login", json={"email": teacher.email, "password": "wrong"})

        response = client.post("/api/auth/login", json={"email": teacher.email, "password": DEFAULT_PASSWORD})
        assert response.status_code == 429
        assert "Retry-After" in response.headers

    def test_forwarded_header_does_not_reset_the_limit(self, client, teacher):
        for i in range(10):
            client.post(
                "/api/auth/login",
                json={"email": teacher.email, "password": "wrong"},
                headers={"X-Forwarded-For": f"10.0.0.{i}"},
            )

        response = client.post(
            "/api/auth/login",
            json={"email": teacher.email, "password": DEFAULT_PASSWORD},
            headers={"X-Forwarded-For": "10.0.0.250"},
        )
        assert response.status_code == 429


# ============================================================================
# Bearer Token Resolution
# ============================================================================

class TestTokenResolution:
    """Tests for the authentication dependency on a protected route."""

    def test_missing_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {"error": "Access token required"}
        assert response.headers.get("WWW-Authenticate") == "Bearer"

    def test_invalid_signature(self, client):
        token = jwt.encode({"sub": "1"}, "some-other-secret", algorithm=ALGORITHM)
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}

    def test_signed_token_without_session(self, client, teacher):
        token = create_access_token({"sub": str(teacher.id)})
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json() == {"error": "Session not found"}

    def test_expired_session_is_deleted(self, client, db_session, teacher):
        token, session = issue_session(db_session, teacher, ttl=timedelta(seconds=-1))
        session_id = session.id

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json() == {"error": "Session expired"}

        db_session.expire_all()
        assert db_session.query(AuthSession).filter(AuthSession.id == session_id).first() is None

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.json() == {"error": "Session not found"}

    def test_session_without_owner(self, client, db_session):
        token = create_access_token({"sub": "999"})
        db_session.add(AuthSession(token=token, user_id=999, expires_at=utc_now() + timedelta(days=1)))
        db_session.commit()

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid session"}


# ============================================================================
# Logout / Me
# ============================================================================

class TestLogout:
    """Tests for POST /api/auth/logout."""

    def test_logout_revokes_token(self, client, teacher_headers):
        response = client.post("/api/auth/logout", headers=teacher_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"

        response = client.get("/api/auth/me", headers=teacher_headers)
        assert response.status_code == 401
        assert response.json() == {"error": "Session not found"}

    def test_logout_requires_token(self, client):
        assert client.post("/api/auth/logout").status_code == 401


class TestMe:
    """Tests for GET /api/auth/me."""

    def test_staff_me(self, client, teacher, teacher_headers):
        response = client.get("/api/auth/me", headers=teacher_headers)
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["id"] == teacher.id
        assert user["role"] == "TEACHER"

    def test_student_me(self, client, student, student_headers):
        user = client.get("/api/auth/me", headers=student_headers).json()["user"]
        assert user["id"] == student.id
        assert user["role"] == "STUDENT"


# ============================================================================
# Register
# ============================================================================

class TestRegister:
    """Tests for POST /api/auth/register."""

    def test_admin_creates_teacher(self, client, db_session, admin_headers):
        response = client.post(
            "/api/auth/register",
            json={"email": "New.Teacher@Example.com", "password": "abcdef", "name": "New Teacher"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["email"] == "new.teacher@example.com"
        assert user["role"] == "TEACHER"
        assert user["primary_color"] == "#0ea5e9"

        stored = db_session.query(User).filter(User.email == "new.teacher@example.com").one()
        assert stored.password != "abcdef"
        assert verify_password("abcdef", stored.password)

    def test_admin_creates_admin(self, client, admin_headers):
        response = client.post(
            "/api/auth/register",
            json={"email": "boss@example.com", "password": "abcdef", "name": "Boss", "role": "admin"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["user"]["role"] == "ADMIN"

    def test_student_role_rejected(self, client, admin_headers):
        response = client.post(
            "/api/auth/register",
            json={"email": "s@example.com", "password": "abcdef", "name": "S", "role": "STUDENT"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_teacher_cannot_register(self, client, teacher_headers):
        response = client.post(
            "/api/auth/register",
            json={"email": "x@example.com", "password": "abcdef", "name": "X"},
            headers=teacher_headers,
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}

    def test_duplicate_email_across_tables(self, client, admin_headers, student):
        response = client.post(
            "/api/auth/register",
            json={"email": student.email, "password": "abcdef", "name": "Clash"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Email already in use"}

    def test_short_password(self, client, admin_headers):
        response = client.post(
            "/api/auth/register",
            json={"email": "short@example.com", "password": "123", "name": "Short"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert "at least 6" in response.json()["error"]

    def test_malformed_email(self, client, admin_headers):
        response = client.post(
            "/api/auth/register",
            json={"email": "not-an-email", "password": "abcdef", "name": "Bad"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("email", ["a b@@example..com", "x@y@z.w", "<script>@a.b"])
    def test_invalid_email_shapes_rejected(self, client, db_session, admin_headers, email):
        response = client.post(
            "/api/auth/register",
            json={"email": email, "password": "abcdef", "name": "Bad"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("email: ")
        assert db_session.query(User).filter(User.name == "Bad").count() == 0


# ============================================================================
# Change Password / Profile
# ============================================================================

class TestChangePassword:
    """Tests for PUT /api/auth/change-password."""

    def test_change_password(self, client, teacher, teacher_headers):
        response = client.put(
            "/api/auth/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "brand-new"},
            headers=teacher_headers,
        )
        assert response.status_code == 200

        old = client.post("/api/auth/login", json={"email": teacher.email, "password": DEFAULT_PASSWORD})
        new = client.post("/api/auth/login", json={"email": teacher.email, "password": "brand-new"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_camel_case_body(self, client, student_headers):
        response = client.put(
            "/api/auth/change-password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "student-new"},
            headers=student_headers,
        )
        assert response.status_code == 200

    def test_wrong_current_password(self, client, teacher_headers):
        response = client.put(
            "/api/auth/change-password",
            json={"current_password": "nope", "new_password": "brand-new"},
            headers=teacher_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Current password is incorrect"}

    def test_new_password_too_short(self, client, teacher_headers):
        response = client.put(
            "/api/auth/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "abc"},
            headers=teacher_headers,
        )
        assert response.status_code == 400


class TestProfile:
    """Tests for PUT /api/auth/profile."""

    def test_staff_updates_theming(self, client, teacher_headers):
        response = client.put(
            "/api/auth/profile",
            json={"name": "Renamed", "primaryColor": "#123456", "logo_url": "https://cdn.example.com/logo.png"},
            headers=teacher_headers,
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["name"] == "Renamed"
        assert user["primary_color"] == "#123456"
        assert user["logo_url"] == "https://cdn.example.com/logo.png"

    def test_student_updates_phone_but_not_theming(self, client, db_session, student, student_headers):
        response = client.put(
            "/api/auth/profile",
            json={"phone": "11 99999-0000", "primary_color": "#ffffff"},
            headers=student_headers,
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["phone"] == "11 99999-0000"
        assert user["role"] == "STUDENT"
        assert user["primary_color"] is None

    def test_email_taken_by_other_account(self, client, teacher_headers, other_teacher):
        response = client.put(
            "/api/auth/profile",
            json={"email": other_teacher.email},
            headers=teacher_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Email already in use"}

    def test_password_change_via_profile(self, client, teacher, teacher_headers):
        client.put("/api/auth/profile", json={"password": "via-profile"}, headers=teacher_headers)
        response = client.post("/api/auth/login", json={"email": teacher.email, "password": "via-profile"})
        assert response.status_code == 200
