"""Org router — Employee and Department API endpoints.

Routes:
    /employees                          — List (CEO), create
    /employees/profile                  — Current user's projection
    /employees/reportings               — Current user's direct reports
    /employees/org-chart                — Reporting tree
    /employees/department/{id}          — Members of a department
    /employees/manager/{id}             — Direct reports of a manager
    /employees/department-heads/{id}/move — Move a department head
    /employees/{id}                     — Get, update, patch, delete
    /employees/{id}/manager/{mid}       — Assign manager
    /employees/{id}/move                — Move to another department
    /departments                        — List, create
    /departments/{id}                   — Get, update, patch, delete (unsupported)
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_role
from hrms.common.constants import UserRole
from hrms.common.pagination import PaginationParams
from hrms.database import get_db
from hrms.org.models import Employee
from hrms.org.schemas import (
    DepartmentCreate,
    DepartmentHeadMoveRequest,
    DepartmentPatch,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeMoveRequest,
    EmployeePatch,
    EmployeeUpdate,
)
from hrms.org.service import DepartmentService, EmployeeService


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

employees_router = APIRouter(prefix="", tags=["employees"])
departments_router = APIRouter(prefix="", tags=["departments"])

_require_admin = require_role(UserRole.admin)


# ═════════════════════════════════════════════════════════════════════
# Employee Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /employees — CEO directory ──────────────────────────────────

@employees_router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name or email"),
):
    """List every employee. Only the CEO may call this."""
    items, meta = await EmployeeService.list_employees(
        db, pagination, actor=current_user, search=search,
    )
    return {
        "data": [item.model_dump(mode="json") for item in items],
        "meta": meta.model_dump(),
    }


# ── POST /employees — Create employee ──────────────────────────────

@employees_router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    """Create an employee. Requires **ADMIN**; hierarchy rules apply."""
    employee = await EmployeeService.create_employee(db, body, actor=current_user)
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Employee created successfully.",
    }


# NOTE: the fixed paths below MUST be defined before /{employee_id} to
# avoid path parameter conflicts.

# ── GET /employees/profile — Current user ───────────────────────────

@employees_router.get("/profile")
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    profile = await EmployeeService.get_current_profile(db, actor=current_user)
    return {
        "data": profile.model_dump(mode="json"),
        "message": "Profile retrieved successfully.",
    }


# ── GET /employees/reportings — Own direct reports ──────────────────

@employees_router.get("/reportings")
async def get_my_direct_reports(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    reports = await EmployeeService.get_my_direct_reports(db, actor=current_user)
    return {
        "data": [r.model_dump(mode="json") for r in reports],
        "message": "Direct reports retrieved successfully.",
    }


# ── GET /employees/org-chart — Reporting tree ───────────────────────

@employees_router.get("/org-chart")
async def get_org_chart(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    root_id: Optional[uuid.UUID] = Query(None, description="Start from this employee; omit for full tree (CEO only)"),
    max_depth: int = Query(5, ge=1, le=10, description="Maximum tree depth"),
):
    """Build the organisational hierarchy tree.

    Returns a recursive tree of ``OrgChartNode`` objects.
    """
    nodes = await EmployeeService.build_org_chart(
        db, actor=current_user, root_id=root_id, max_depth=max_depth,
    )
    return {
        "data": [node.model_dump(mode="json") for node in nodes],
        "message": "Organisation chart retrieved successfully.",
    }


# ── GET /employees/department/{id} ──────────────────────────────────

@employees_router.get("/department/{department_id}")
async def get_employees_by_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Members of a department. CEO or that department's head."""
    employees = await EmployeeService.get_employees_by_department(
        db, department_id, actor=current_user,
    )
    return {
        "data": [e.model_dump(mode="json") for e in employees],
        "message": "Department employees retrieved successfully.",
    }


# ── GET /employees/manager/{id} ─────────────────────────────────────

@employees_router.get("/manager/{manager_id}")
async def get_employees_by_manager(
    manager_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    employees = await EmployeeService.get_employees_by_manager(
        db, manager_id, actor=current_user,
    )
    return {
        "data": [e.model_dump(mode="json") for e in employees],
        "message": "Direct reports retrieved successfully.",
    }


# ── PUT /employees/department-heads/{id}/move ───────────────────────

@employees_router.put("/department-heads/{head_id}/move")
async def move_department_head(
    head_id: uuid.UUID,
    body: DepartmentHeadMoveRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    """Move a department head (CEO only).

    With ``replacement_head_employee_id`` the replacement takes over the
    source department; without it the source department is left headless.
    """
    if body.replacement_head_employee_id is not None:
        employee = await EmployeeService.move_department_head_with_replacement(
            db,
            head_id,
            body.new_department_id,
            body.replacement_head_employee_id,
            actor=current_user,
        )
    else:
        employee = await EmployeeService.move_department_head(
            db, head_id, body.new_department_id, actor=current_user,
        )
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Department head moved successfully.",
    }


# ── GET /employees/{id} ─────────────────────────────────────────────

@employees_router.get("/{employee_id}")
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Retrieve an employee.

    Access rules: CEO, the employee themself, or the head of the
    employee's department.
    """
    employee = await EmployeeService.get_employee(db, employee_id, actor=current_user)
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Employee retrieved successfully.",
    }


# ── PUT /employees/{id} — Full update ───────────────────────────────

@employees_router.put("/{employee_id}")
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    employee = await EmployeeService.update_employee(
        db, employee_id, body, actor=current_user,
    )
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Employee updated successfully.",
    }


# ── PATCH /employees/{id} — Partial update ──────────────────────────

@employees_router.patch("/{employee_id}")
async def patch_employee(
    employee_id: uuid.UUID,
    body: EmployeePatch,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    employee = await EmployeeService.patch_employee(
        db, employee_id, body, actor=current_user,
    )
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Employee updated successfully.",
    }


# ── DELETE /employees/{id} ──────────────────────────────────────────

@employees_router.delete("/{employee_id}")
async def delete_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    await EmployeeService.delete_employee(db, employee_id, actor=current_user)
    return {"message": "Employee deleted successfully."}


# ── PUT /employees/{id}/manager/{manager_id} ────────────────────────

@employees_router.put("/{employee_id}/manager/{manager_id}")
async def assign_manager(
    employee_id: uuid.UUID,
    manager_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    employee = await EmployeeService.assign_manager(
        db, employee_id, manager_id, actor=current_user,
    )
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Manager assigned successfully.",
    }


# ── PUT /employees/{id}/move ────────────────────────────────────────

@employees_router.put("/{employee_id}/move")
async def move_employee(
    employee_id: uuid.UUID,
    body: EmployeeMoveRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    employee = await EmployeeService.move_employee(
        db, employee_id, body, actor=current_user,
    )
    return {
        "data": employee.model_dump(mode="json"),
        "message": "Employee moved successfully.",
    }


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


@departments_router.get("")
async def list_departments(
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    departments = await DepartmentService.list_departments(db)
    return {
        "data": [d.model_dump(mode="json") for d in departments],
        "message": "Departments retrieved successfully.",
    }


@departments_router.post("", status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    department = await DepartmentService.create_department(db, body, actor=current_user)
    return {
        "data": department.model_dump(mode="json"),
        "message": "Department created successfully.",
    }


@departments_router.get("/{department_id}")
async def get_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    department = await DepartmentService.get_department(db, department_id)
    return {
        "data": department.model_dump(mode="json"),
        "message": "Department retrieved successfully.",
    }


@departments_router.put("/{department_id}")
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    department = await DepartmentService.update_department(
        db, department_id, body, actor=current_user,
    )
    return {
        "data": department.model_dump(mode="json"),
        "message": "Department updated successfully.",
    }


@departments_router.patch("/{department_id}")
async def patch_department(
    department_id: uuid.UUID,
    body: DepartmentPatch,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    department = await DepartmentService.patch_department(
        db, department_id, body, actor=current_user,
    )
    return {
        "data": department.model_dump(mode="json"),
        "message": "Department updated successfully.",
    }


@departments_router.delete("/{department_id}")
async def delete_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(_require_admin),
):
    """Always answers 405: departments are never deleted."""
    await DepartmentService.delete_department(db, department_id, actor=current_user)
