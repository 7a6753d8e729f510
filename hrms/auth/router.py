"""Auth router — password login, registration, logout, current user profile."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import extract_bearer, get_current_user, require_role
from hrms.auth.schemas import (
    DeptBrief,
    LoginRequest,
    MeResponse,
    TokenResponse,
    UserInfo,
)
from hrms.auth.service import (
    authenticate,
    create_session,
    hash_token,
    register_employee,
    revoke_session,
)
from hrms.common.constants import PERMISSIONS, UserRole
from hrms.common.rate_limit import limiter
from hrms.config import settings
from hrms.database import get_db
from hrms.org.models import Employee
from hrms.org.schemas import EmployeeCreate
from hrms.org.store import DirectoryStore

router = APIRouter(prefix="", tags=["auth"])


# ── POST /login — Email + password ──────────────────────────────────

@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    employee = await authenticate(db, body.email, body.password)

    ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    access_token, expires_in = await create_session(db, employee, ip, user_agent)

    return TokenResponse(
        access_token=access_token,
        expires_in=expires_in,
        user=UserInfo(
            id=employee.id,
            name=employee.name,
            email=employee.email,
            role=employee.role.value,
            position=employee.position_kind,
        ),
    )


# ── POST /register — Admin-only account creation ───────────────────

@router.post("/register", status_code=201)
async def register(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.admin)),
):
    employee = await register_employee(db, body, actor=current_user)
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Employee registered",
    }


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await revoke_session(db, hash_token(extract_bearer(request)), actor_id=employee.id)
    return {"message": "Logged out successfully"}


# ── GET /me — Current user profile ─────────────────────────────────

@router.get("/me", response_model=MeResponse)
async def me(
    request: Request,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    role: UserRole = request.state.user_role
    store = DirectoryStore(db)

    dept = None
    if employee.department_id is not None:
        department = await store.find_department_by_id(employee.department_id)
        if department is not None:
            dept = DeptBrief(id=department.id, name=department.name)

    return MeResponse(
        id=employee.id,
        name=employee.name,
        email=employee.email,
        role=role.value,
        position=employee.position_kind,
        permissions=PERMISSIONS.get(role, []),
        department=dept,
        manager_id=employee.manager_id,
        direct_reports_count=await store.count_direct_reports(employee.id),
    )
