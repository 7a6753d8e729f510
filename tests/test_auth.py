"""Auth module test suite — password login, JWT sessions, logout, /me,
admin registration rules and the login rate limit.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from argon2 import PasswordHasher
from jose import jwt
from sqlalchemy import select

from hrms.auth.models import UserSession
from hrms.auth.passwords import needs_rehash, verify_password
from hrms.auth.service import create_access_token, hash_token
from hrms.common.audit import AuditTrail
from hrms.common.constants import PERMISSIONS, PositionKind, UserRole
from hrms.config import settings
from hrms.org.models import Employee
from tests.conftest import TEST_PASSWORD, TestSessionFactory, auth_headers_for, reload


async def _login(client, email: str, password: str = TEST_PASSWORD):
    return await client.post(
        "/api/v1/auth/login", json={"email": email, "password": password},
    )


# ═════════════════════════════════════════════════════════════════════
# 1. LOGIN
# ═════════════════════════════════════════════════════════════════════


class TestLogin:
    async def test_valid_credentials(self, client, org):
        """Correct email + password → 200 with a bearer token."""
        resp = await _login(client, "erin@company.com")
        assert resp.status_code == 200
        data = resp.json()
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == settings.JWT_EXPIRY_HOURS * 3600
        assert data["user"]["email"] == "erin@company.com"
        assert data["user"]["position"] == PositionKind.individual_contributor.value

    async def test_token_claims(self, client, org):
        resp = await _login(client, "alice@company.com")
        payload = jwt.decode(
            resp.json()["access_token"],
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
        assert payload["sub"] == str(org.alice.id)
        assert payload["role"] == UserRole.admin.value
        assert payload["type"] == "access"

    async def test_login_persists_session_and_audit(self, client, org):
        resp = await _login(client, "erin@company.com")
        token_hash = hash_token(resp.json()["access_token"])

        async with TestSessionFactory() as session:
            result = await session.execute(
                select(UserSession).where(UserSession.token_hash == token_hash),
            )
            stored = result.scalars().first()
            assert stored is not None
            assert stored.employee_id == org.erin.id
            assert stored.is_revoked is False

            result = await session.execute(
                select(AuditTrail).where(
                    AuditTrail.action == "login", AuditTrail.actor_id == org.erin.id,
                ),
            )
            assert result.scalars().first() is not None

    async def test_wrong_password(self, client, org):
        resp = await _login(client, "erin@company.com", "not-the-password")
        assert resp.status_code == 401
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert resp.json()["detail"] == "Invalid email or password."

    async def test_unknown_email_same_error(self, client, org):
        resp = await _login(client, "nobody@company.com")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid email or password."

    async def test_outdated_hash_upgraded_on_login(self, client, org):
        weak = PasswordHasher(time_cost=1, memory_cost=512, parallelism=1).hash(TEST_PASSWORD)
        async with TestSessionFactory() as session:
            erin = await session.get(Employee, org.erin.id)
            erin.password_hash = weak
            await session.commit()

        resp = await _login(client, "erin@company.com")
        assert resp.status_code == 200

        stored = (await reload(Employee, org.erin.id)).password_hash
        assert stored != weak
        assert not needs_rehash(stored)
        assert verify_password(TEST_PASSWORD, stored)

    async def test_malformed_body(self, client, org):
        resp = await client.post("/api/v1/auth/login", json={"email": "not-an-email"})
        assert resp.status_code == 422


# ═════════════════════════════════════════════════════════════════════
# 2. TOKENS AND SESSIONS
# ═════════════════════════════════════════════════════════════════════


class TestSessions:
    async def test_missing_header(self, client, org):
        resp = await client.get("/api/v1/auth/me")
        assert resp.status_code == 401

    async def test_garbage_token(self, client, org):
        resp = await client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token."

    async def test_expired_token(self, client, org):
        token = jwt.encode(
            {
                "sub": str(org.erin.id),
                "role": UserRole.employee.value,
                "type": "access",
                "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
            },
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        resp = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has expired."

    async def test_token_without_session(self, client, org):
        """A validly signed token is useless unless a session row backs it."""
        token, _ = create_access_token(org.erin.id, org.erin.role)
        resp = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Session invalid or expired."

    async def test_logout_revokes_session(self, client, org):
        resp = await _login(client, "erin@company.com")
        headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

        assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 200

        resp = await client.post("/api/v1/auth/logout", headers=headers)
        assert resp.status_code == 200

        resp = await client.get("/api/v1/auth/me", headers=headers)
        assert resp.status_code == 401

    async def test_logout_leaves_other_sessions(self, client, org):
        first = await _login(client, "erin@company.com")
        second = await _login(client, "erin@company.com")
        first_headers = {"Authorization": f"Bearer {first.json()['access_token']}"}
        second_headers = {"Authorization": f"Bearer {second.json()['access_token']}"}

        await client.post("/api/v1/auth/logout", headers=first_headers)
        assert (await client.get("/api/v1/auth/me", headers=second_headers)).status_code == 200


# ═════════════════════════════════════════════════════════════════════
# 3. /me
# ═════════════════════════════════════════════════════════════════════


class TestMe:
    async def test_me_for_employee(self, client, org):
        headers = await auth_headers_for(org.erin)
        resp = await client.get("/api/v1/auth/me", headers=headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == str(org.erin.id)
        assert data["role"] == UserRole.employee.value
        assert data["permissions"] == PERMISSIONS[UserRole.employee]
        assert data["department"]["name"] == "Engineering"
        assert data["manager_id"] == str(org.alice.id)
        assert data["direct_reports_count"] == 0

    async def test_me_for_ceo(self, client, org, ceo_headers):
        resp = await client.get("/api/v1/auth/me", headers=ceo_headers)
        data = resp.json()
        assert data["position"] == PositionKind.ceo.value
        assert data["department"] is None
        assert data["manager_id"] is None
        assert data["direct_reports_count"] == 3
        assert "department:create" in data["permissions"]


# ═════════════════════════════════════════════════════════════════════
# 4. REGISTRATION
# ═════════════════════════════════════════════════════════════════════


class TestRegister:
    def _payload(self, org, **overrides) -> dict:
        payload = {
            "name": "Hank",
            "email": "hank@company.com",
            "password": "s3cret-pass",
            "department_id": str(org.engineering.id),
            "manager_id": str(org.alice.id),
        }
        payload.update(overrides)
        return payload

    async def test_head_registers_team_member(self, client, org):
        headers = await auth_headers_for(org.alice)
        resp = await client.post(
            "/api/v1/auth/register", json=self._payload(org), headers=headers,
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["manager_id"] == str(org.alice.id)
        assert data["role"] == UserRole.employee.value

        login = await _login(client, "hank@company.com", "s3cret-pass")
        assert login.status_code == 200

    async def test_requires_admin_role(self, client, org):
        headers = await auth_headers_for(org.erin)
        resp = await client.post(
            "/api/v1/auth/register", json=self._payload(org), headers=headers,
        )
        assert resp.status_code == 403

    async def test_department_and_manager_required(self, client, org, ceo_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            json=self._payload(org, manager_id=None),
            headers=ceo_headers,
        )
        assert resp.status_code == 422
        assert "cannot be null" in resp.json()["detail"]

    async def test_admin_role_reserved_for_heads(self, client, org, ceo_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            json=self._payload(org, role=UserRole.admin.value),
            headers=ceo_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["errors"]["role"]

    async def test_department_already_headed(self, client, org, ceo_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            json=self._payload(
                org, role=UserRole.admin.value, is_dept_head=True,
                manager_id=str(org.ceo.id),
            ),
            headers=ceo_headers,
        )
        assert resp.status_code == 422
        assert "already has a head" in resp.json()["detail"]

    async def test_duplicate_email(self, client, org, ceo_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            json=self._payload(org, email="dave@company.com"),
            headers=ceo_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["errors"]["email"]

    async def test_unknown_department(self, client, org, ceo_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            json=self._payload(org, department_id=str(uuid.uuid4())),
            headers=ceo_headers,
        )
        assert resp.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# 5. RATE LIMITING
# ═════════════════════════════════════════════════════════════════════


class TestRateLimiting:
    """POST /auth/login allows 5 requests/minute per client."""

    @pytest.fixture(autouse=True)
    def _enable_limiter(self):
        from hrms.common.rate_limit import limiter

        original = limiter.enabled
        limiter.enabled = True
        yield
        limiter.enabled = original

    async def test_login_rate_limited_at_5_per_minute(self, client, org):
        """Failed attempts count too; the 6th request is rejected before the handler."""
        for i in range(5):
            resp = await _login(client, "erin@company.com", f"wrong-{i}")
            assert resp.status_code == 401, f"Request {i + 1} should reach the handler"

        resp = await _login(client, "erin@company.com")
        assert resp.status_code == 429
