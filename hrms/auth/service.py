"""Auth service — password login, JWT management, session lifecycle, registration."""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import UserSession
from hrms.auth.passwords import hash_password, needs_rehash, verify_password
from hrms.common.audit import create_audit_entry
from hrms.common.constants import UserRole
from hrms.common.exceptions import AuthenticationException, ValidationException
from hrms.config import settings
from hrms.org.models import Employee
from hrms.org.schemas import EmployeeCreate, EmployeeResponse
from hrms.org.service import EmployeeService
from hrms.org.store import DirectoryStore

logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS = "Invalid email or password."


# ── JWT helpers ─────────────────────────────────────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def create_access_token(employee_id: uuid.UUID, role: UserRole) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": str(employee_id),
        "role": role.value,
        "type": "access",
        "jti": uuid.uuid4().hex,  # distinct token (and session hash) per login
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


# ── Login ───────────────────────────────────────────────────────────

async def authenticate(db: AsyncSession, email: str, password: str) -> Employee:
    """Return the employee for valid credentials, else raise 401.

    Unknown email and wrong password yield the same error.  Hashes made with
    outdated cost parameters are upgraded in place.
    """
    employee = await DirectoryStore(db).find_employee_by_email(email)
    if employee is None or not verify_password(password, employee.password_hash):
        logger.warning("Rejected login for %s", email)
        raise AuthenticationException(_INVALID_CREDENTIALS)
    if needs_rehash(employee.password_hash):
        employee.password_hash = hash_password(password)
        await db.flush()
    return employee


async def create_session(
    db: AsyncSession,
    employee: Employee,
    ip: Optional[str],
    user_agent: Optional[str],
) -> tuple[str, int]:
    """Issue an access token and persist its session.  Returns (token, expires_in)."""
    access_token, expires_in = create_access_token(employee.id, employee.role)

    session = UserSession(
        employee_id=employee.id,
        token_hash=hash_token(access_token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    )
    db.add(session)
    await db.flush()

    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=session.id,
        actor_id=employee.id,
        ip_address=ip,
        user_agent=user_agent,
    )
    logger.info("Employee %s logged in", employee.id)

    return access_token, expires_in


# ── Revoke ──────────────────────────────────────────────────────────

async def revoke_session(
    db: AsyncSession,
    token_hash: str,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> None:
    """Mark a session as revoked by its token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()
        await create_audit_entry(
            db,
            action="logout",
            entity_type="user_session",
            entity_id=session.id,
            actor_id=actor_id,
        )


# ── Registration ────────────────────────────────────────────────────

async def register_employee(
    db: AsyncSession,
    data: EmployeeCreate,
    *,
    actor: Employee,
) -> EmployeeResponse:
    """Admin registration: stricter intake rules, then the regular creation path."""
    store = DirectoryStore(db)

    if await store.find_employee_by_email(data.email) is not None:
        raise ValidationException("Email already exists", field="email")

    if data.is_ceo and await store.exists_ceo():
        raise ValidationException("CEO already exists", field="is_ceo")

    if data.department_id is None or data.manager_id is None:
        raise ValidationException("Department ID and Manager ID cannot be null")

    department = await store.get_department(data.department_id)
    await store.get_employee(data.manager_id, "Manager")

    if data.is_dept_head and (
        department.head_employee_id is not None
        or await store.find_dept_head_in_department(department.id) is not None
    ):
        raise ValidationException(
            "This department already has a head assigned", field="department_id",
        )

    if not data.is_dept_head and data.role == UserRole.admin:
        raise ValidationException(
            "User is not department head, hence role cannot be ADMIN", field="role",
        )

    return await EmployeeService.create_employee(db, data, actor=actor)
