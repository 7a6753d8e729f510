"""Org service layer — employee/department CRUD and the hierarchy rules.

Every operation takes the acting ``Employee`` explicitly and runs inside
the caller's ``AsyncSession`` transaction; ``get_db`` commits on success
and rolls back when any exception below propagates, so a rejected
structural change never leaves a partial write behind.

Uses:
  - ``DirectoryStore`` from hrms.org.store
  - ``can_modify / can_view`` and the actor predicates from hrms.org.permissions
  - ``create_audit_entry`` from hrms.common.audit
  - ``paginate / apply_search`` from hrms.common
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.passwords import hash_password
from hrms.common.audit import create_audit_entry
from hrms.common.constants import PositionKind
from hrms.common.exceptions import (
    ForbiddenException,
    UnsupportedOperationException,
    ValidationException,
)
from hrms.common.filters import apply_search
from hrms.common.pagination import PaginationMeta, PaginationParams, paginate
from hrms.org.models import Department, Employee
from hrms.org.permissions import (
    can_modify,
    can_view,
    heads_department,
    is_ceo_actor,
    is_dept_head_actor,
)
from hrms.org.position import Position
from hrms.org.schemas import (
    DepartmentCreate,
    DepartmentPatch,
    DepartmentResponse,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeMoveRequest,
    EmployeePatch,
    EmployeeResponse,
    EmployeeUpdate,
    OrgChartNode,
)
from hrms.org.store import DirectoryStore

logger = logging.getLogger(__name__)


# ── Shared helpers ──────────────────────────────────────────────────

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _str(value: Optional[uuid.UUID]) -> Optional[str]:
    return str(value) if value is not None else None


def _employee_snapshot(employee: Employee) -> dict[str, Any]:
    """JSON-safe view of the fields audited on employee mutations."""
    return {
        "name": employee.name,
        "email": employee.email,
        "role": employee.role.value if employee.role else None,
        "position": employee.position_kind.value if employee.position_kind else None,
        "department_id": _str(employee.department_id),
        "manager_id": _str(employee.manager_id),
    }


def _department_snapshot(department: Department) -> dict[str, Any]:
    return {
        "name": department.name,
        "description": department.description,
        "head_employee_id": _str(department.head_employee_id),
    }


def _require_ceo(actor: Employee, detail: str) -> None:
    if not is_ceo_actor(actor):
        raise ForbiddenException(detail)


async def _project_employees(
    store: DirectoryStore, employees: Sequence[Employee],
) -> list[EmployeeResponse]:
    """Batch-enrich employees with department/manager names and report counts."""
    if not employees:
        return []

    dept_names = await store.department_names(e.department_id for e in employees)
    manager_names = await store.employee_names(e.manager_id for e in employees)
    report_counts = await store.direct_report_counts(e.id for e in employees)

    return [
        EmployeeResponse(
            id=e.id,
            name=e.name,
            email=e.email,
            role=e.role,
            position=e.position_kind,
            department_id=e.department_id,
            department_name=dept_names.get(e.department_id),
            manager_id=e.manager_id,
            manager_name=manager_names.get(e.manager_id),
            is_ceo=e.is_ceo,
            is_dept_head=e.is_dept_head,
            direct_reports_count=report_counts.get(e.id, 0),
            created_at=e.created_at,
            updated_at=e.updated_at,
        )
        for e in employees
    ]


async def project_employee(store: DirectoryStore, employee: Employee) -> EmployeeResponse:
    return (await _project_employees(store, [employee]))[0]


async def _project_departments(
    store: DirectoryStore, departments: Sequence[Department],
) -> list[DepartmentResponse]:
    if not departments:
        return []

    head_names = await store.employee_names(d.head_employee_id for d in departments)
    member_counts = await store.department_member_counts()

    return [
        DepartmentResponse(
            id=d.id,
            name=d.name,
            description=d.description,
            head_id=d.head_employee_id,
            head_name=head_names.get(d.head_employee_id),
            employee_count=member_counts.get(d.id, 0),
        )
        for d in departments
    ]


# ── Hierarchy rules ─────────────────────────────────────────────────

async def _check_ceo_direct_report_cap(
    store: DirectoryStore,
    employee: Employee,
    ceo: Employee,
    department_id: Optional[uuid.UUID],
) -> None:
    """At most one non-head employee per department may report to the CEO."""
    if department_id is None or employee.is_dept_head:
        return
    existing = await store.count_ceo_reports_in_department(
        department_id, ceo.id, exclude_id=employee.id,
    )
    if existing >= 1:
        raise ValidationException(
            "Only one employee per department can report directly to CEO",
            field="manager_id",
        )


async def _check_no_reporting_cycle(
    store: DirectoryStore, employee: Employee, manager: Employee,
) -> None:
    """Reject *manager* when it sits below *employee* in the reporting chain."""
    if employee.id is None:
        return
    seen: set[uuid.UUID] = set()
    cursor: Optional[Employee] = manager
    while cursor is not None and cursor.manager_id is not None:
        if cursor.manager_id == employee.id:
            raise ValidationException(
                "Manager assignment would create a reporting cycle",
                field="manager_id",
            )
        if cursor.manager_id in seen:
            break
        seen.add(cursor.manager_id)
        cursor = await store.find_employee_by_id(cursor.manager_id)


async def _check_manager_assignment(
    store: DirectoryStore,
    employee: Employee,
    manager: Employee,
    *,
    department_id: Optional[uuid.UUID],
) -> None:
    """Rules shared by creation, manager assignment and employee moves.

    *department_id* is the department the employee will be in once the
    change is applied.
    """
    if employee.is_ceo:
        raise ValidationException("CEO cannot have a manager", field="manager_id")

    if employee.id is not None and employee.id == manager.id:
        raise ValidationException(
            "Employee cannot be their own manager", field="manager_id",
        )

    if employee.is_dept_head and not manager.is_ceo:
        raise ValidationException(
            "Department head must report to CEO", field="manager_id",
        )

    if (
        department_id is not None
        and manager.department_id is not None
        and department_id != manager.department_id
    ):
        raise ValidationException(
            "Employee and manager must be in same department", field="manager_id",
        )

    if manager.is_ceo:
        await _check_ceo_direct_report_cap(store, employee, manager, department_id)

    await _check_no_reporting_cycle(store, employee, manager)


def _reject_structural_fields(data: EmployeeUpdate | EmployeePatch, verb: str) -> None:
    if data.manager_id is not None or data.department_id is not None:
        raise ValidationException(
            f"Cannot change manager or department via {verb}. Use dedicated endpoints.",
        )


def _reject_position_flags(data: EmployeeUpdate | EmployeePatch, verb: str) -> None:
    if data.is_ceo is not None:
        raise ValidationException(
            f"Cannot change CEO flag via {verb}. Use dedicated operations.",
            field="is_ceo",
        )
    if data.is_dept_head is not None:
        raise ValidationException(
            f"Cannot change Department Head flag via {verb}. Use dedicated operations.",
            field="is_dept_head",
        )


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Employee CRUD plus the structural hierarchy operations."""

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        *,
        actor: Employee,
    ) -> EmployeeResponse:
        """Create an employee, enforcing the hierarchy rules in order."""
        store = DirectoryStore(db)

        try:
            kind = Position.from_flags(is_ceo=data.is_ceo, is_dept_head=data.is_dept_head)
        except ValueError as exc:
            raise ValidationException(str(exc), field="is_dept_head") from exc

        if await store.find_employee_by_email(data.email) is not None:
            raise ValidationException("Email already exists", field="email")

        if kind == PositionKind.ceo:
            if await store.exists_ceo():
                raise ValidationException("CEO already exists", field="is_ceo")
        elif data.manager_id is None:
            raise ValidationException(
                "Non-CEO employees must have a manager", field="manager_id",
            )

        if kind == PositionKind.department_head and data.department_id is None:
            raise ValidationException(
                "Department head must belong to a department", field="department_id",
            )

        if is_dept_head_actor(actor) and not heads_department(actor, data.department_id):
            raise ForbiddenException(
                "Department head can create employees only in their department",
            )

        department: Optional[Department] = None
        manager: Optional[Employee] = None
        if kind != PositionKind.ceo:
            if data.department_id is not None:
                department = await store.get_department(data.department_id)
            manager = await store.get_employee(data.manager_id, "Manager")

        if (
            is_dept_head_actor(actor)
            and manager is not None
            and not manager.is_ceo
            and not heads_department(actor, manager.department_id)
        ):
            raise ValidationException(
                "Manager must be from the same department or be the CEO",
                field="manager_id",
            )

        if kind == PositionKind.department_head:
            if department.head_employee_id is not None:
                raise ValidationException(
                    "Department already has a head. Remove current head first.",
                    field="department_id",
                )
            if not manager.is_ceo:
                raise ValidationException(
                    "Department head must report to CEO", field="manager_id",
                )

        employee = Employee(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
            role=data.role,
            position_kind=kind,
            department_id=department.id if department else None,
            manager_id=manager.id if manager else None,
        )

        if manager is not None:
            await _check_manager_assignment(
                store, employee, manager, department_id=employee.department_id,
            )

        await store.save_employee(employee)

        if kind == PositionKind.department_head:
            department.head_employee_id = employee.id
            department.updated_at = _now()
            await store.flush(field="head_employee_id", value=employee.id)

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor.id,
            new_values=_employee_snapshot(employee),
        )
        logger.info(
            "Created employee %s (%s) as %s",
            employee.id, employee.email, kind.value,
        )

        return await project_employee(store, employee)

    # ── Update / patch ──────────────────────────────────────────────

    @staticmethod
    async def _apply_changes(
        store: DirectoryStore,
        employee: Employee,
        changes: dict[str, Any],
        *,
        actor: Employee,
    ) -> EmployeeResponse:
        old_values = _employee_snapshot(employee)

        password = changes.pop("password", None)
        if password is not None and password.strip():
            employee.password_hash = hash_password(password)

        for field in ("name", "email", "role"):
            if changes.get(field) is not None:
                setattr(employee, field, changes[field])

        employee.updated_at = _now()
        await store.flush(field="email", value=employee.email)

        await create_audit_entry(
            store.db,
            action="update",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_employee_snapshot(employee),
        )
        return await project_employee(store, employee)

    @staticmethod
    async def _authorize_edit(
        store: DirectoryStore,
        employee_id: uuid.UUID,
        actor: Employee,
    ) -> Employee:
        employee = await store.get_employee(employee_id)
        if not can_modify(actor, employee):
            raise ForbiddenException(
                "Only the employee's manager, department head or CEO can modify this employee",
            )
        if actor.id == employee.id:
            raise ForbiddenException("You cannot modify your own details.")
        return employee

    @staticmethod
    async def _check_email_free(
        store: DirectoryStore, employee: Employee, email: Optional[str],
    ) -> None:
        if email is None or email == employee.email:
            return
        if await store.find_employee_by_email(email) is not None:
            raise ValidationException("Email already exists", field="email")

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
        *,
        actor: Employee,
    ) -> EmployeeResponse:
        """Full update of name, email and role; a blank password is left unchanged."""
        store = DirectoryStore(db)
        employee = await EmployeeService._authorize_edit(store, employee_id, actor)

        _reject_structural_fields(data, "update")
        await EmployeeService._check_email_free(store, employee, data.email)
        _reject_position_flags(data, "update")

        changes = data.model_dump(include={"name", "email", "role", "password"})
        return await EmployeeService._apply_changes(store, employee, changes, actor=actor)

    @staticmethod
    async def patch_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeePatch,
        *,
        actor: Employee,
    ) -> EmployeeResponse:
        """Partial update; only provided fields change."""
        store = DirectoryStore(db)
        employee = await EmployeeService._authorize_edit(store, employee_id, actor)

        _reject_structural_fields(data, "patch")
        await EmployeeService._check_email_free(store, employee, data.email)
        _reject_position_flags(data, "patch")

        changes = data.model_dump(
            include={"name", "email", "role", "password"}, exclude_unset=True,
        )
        return await EmployeeService._apply_changes(store, employee, changes, actor=actor)

    # ── Manager assignment ──────────────────────────────────────────

    @staticmethod
    async def assign_manager(
        db: AsyncSession,
        employee_id: uuid.UUID,
        manager_id: uuid.UUID,
        *,
        actor: Employee,
    ) -> EmployeeResponse:
        store = DirectoryStore(db)
        employee = await store.get_employee(employee_id)
        manager = await store.get_employee(manager_id, "Manager")

        if actor.id == employee.id:
            raise ForbiddenException("You cannot change your own manager.")
        if not can_modify(actor, employee):
            raise ForbiddenException(
                "Only the employee's manager, department head or CEO can reassign this employee",
            )

        await _check_manager_assignment(
            store, employee, manager, department_id=employee.department_id,
        )

        old_values = _employee_snapshot(employee)
        employee.manager_id = manager.id
        employee.updated_at = _now()
        await store.flush(field="manager_id", value=manager.id)

        await create_audit_entry(
            db,
            action="assign_manager",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_employee_snapshot(employee),
        )
        logger.info("Employee %s now reports to %s", employee.id, manager.id)

        return await project_employee(store, employee)

    # ── Move employee ───────────────────────────────────────────────

    @staticmethod
    async def move_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeeMoveRequest,
        *,
        actor: Employee,
    ) -> EmployeeResponse:
        """Move a non-head employee to another department under a new manager."""
        if not (is_ceo_actor(actor) or is_dept_head_actor(actor)):
            raise ForbiddenException("Only CEO or Department Head can move employees")

        store = DirectoryStore(db)
        employee = await store.get_employee(employee_id)
        if employee.is_ceo:
            raise ValidationException("Cannot move CEO")
        if employee.is_dept_head:
            raise ValidationException(
                "Use the department head move operation for moving a department head",
            )

        if is_dept_head_actor(actor) and not heads_department(actor, employee.department_id):
            raise ForbiddenException(
                "Department head can move only employees from their department",
            )

        new_department = await store.get_department(data.department_id)
        new_manager = await store.get_employee(data.manager_id, "Manager")

        if new_manager.id == employee.id:
            raise ValidationException(
                "Employee cannot be their own manager", field="manager_id",
            )

        if new_manager.is_ceo:
            await _check_ceo_direct_report_cap(
                store, employee, new_manager, new_department.id,
            )
        elif new_manager.department_id != new_department.id:
            raise ValidationException(
                "Manager must belong to the new department or be CEO",
                field="manager_id",
            )

        await _check_no_reporting_cycle(store, employee, new_manager)

        old_values = _employee_snapshot(employee)
        employee.department_id = new_department.id
        employee.manager_id = new_manager.id
        employee.updated_at = _now()
        await store.flush(field="department_id", value=new_department.id)

        await create_audit_entry(
            db,
            action="move",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_employee_snapshot(employee),
        )
        logger.info(
            "Moved employee %s to department %s under %s",
            employee.id, new_department.id, new_manager.id,
        )

        return await project_employee(store, employee)

    # ── Move department head ────────────────────────────────────────

    @staticmethod
    async def _demote_target_head(
        store: DirectoryStore, target: Department, incoming_head: Employee,
    ) -> None:
        """Existing head of *target* becomes a report of *incoming_head*."""
        if target.head_employee_id is None:
            return
        existing = await store.get_employee(target.head_employee_id, "Department head")
        existing.make_individual_contributor()
        existing.manager_id = incoming_head.id
        existing.updated_at = _now()
        logger.info(
            "Demoted head %s of department %s under incoming head %s",
            existing.id, target.id, incoming_head.id,
        )

    @staticmethod
    async def _load_moving_head(
        store: DirectoryStore,
        head_id: uuid.UUID,
        new_department_id: uuid.UUID,
    ) -> tuple[Employee, Optional[Department], Department]:
        moving_head = await store.get_employee(head_id)
        if not moving_head.is_dept_head:
            raise ValidationException("Specified employee is not a department head")

        target = await store.get_department(new_department_id)
        if moving_head.department_id == target.id:
            raise ValidationException(
                "Department head already leads the target department",
                field="new_department_id",
            )

        source = None
        if moving_head.department_id is not None:
            source = await store.find_department_by_id(moving_head.department_id)
        return moving_head, source, target

    @staticmethod
    async def _audit_head_move(
        db: AsyncSession,
        moving_head: Employee,
        old_values: dict[str, Any],
        actor: Employee,
    ) -> None:
        await create_audit_entry(
            db,
            action="move_head",
            entity_type="employee",
            entity_id=moving_head.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_employee_snapshot(moving_head),
        )

    @staticmethod
    async def move_department_head(
        db: AsyncSession,
        head_id: uuid.UUID,
        new_department_id: uuid.UUID,
        *,
        actor: Employee,
    ) -> EmployeeResponse:
        """Move a head into another department, leaving the source headless."""
        _require_ceo(actor, "Only CEO can move a department head")

        store = DirectoryStore(db)
        moving_head, source, target = await EmployeeService._load_moving_head(
            store, head_id, new_department_id,
        )
        old_values = _employee_snapshot(moving_head)

        await EmployeeService._demote_target_head(store, target, moving_head)

        # unique head pointer: clear the source before re-pointing the target
        if source is not None:
            source.head_employee_id = None
            source.updated_at = _now()
            await store.flush(field="head_employee_id", value=None)

        moving_head.make_head_of(target.id, actor.id)
        moving_head.updated_at = _now()
        target.head_employee_id = moving_head.id
        target.updated_at = _now()
        await store.flush(field="head_employee_id", value=moving_head.id)

        if source is not None:
            left_behind = [
                e for e in await store.find_employees_by_manager(moving_head.id)
                if e.department_id == source.id
            ]
            if left_behind:
                logger.warning(
                    "Department %s left headless; %d employee(s) still report to "
                    "former head %s",
                    source.id, len(left_behind), moving_head.id,
                )

        await EmployeeService._audit_head_move(db, moving_head, old_values, actor)
        logger.info(
            "Moved department head %s to department %s",
            moving_head.id, target.id,
        )

        return await project_employee(store, moving_head)

    @staticmethod
    async def move_department_head_with_replacement(
        db: AsyncSession,
        head_id: uuid.UUID,
        new_department_id: uuid.UUID,
        replacement_id: uuid.UUID,
        *,
        actor: Employee,
    ) -> EmployeeResponse:
        """Move a head and promote *replacement_id* to lead the source department."""
        _require_ceo(actor, "Only CEO can move a department head")

        store = DirectoryStore(db)
        moving_head, source, target = await EmployeeService._load_moving_head(
            store, head_id, new_department_id,
        )
        if source is None:
            raise ValidationException("Department head must belong to a department")

        replacement = await store.get_employee(replacement_id, "Replacement head")
        if replacement.is_ceo:
            raise ValidationException(
                "CEO cannot be a department head",
                field="replacement_head_employee_id",
            )
        if replacement.is_dept_head:
            raise ValidationException(
                "Replacement is already a department head",
                field="replacement_head_employee_id",
            )
        if replacement.department_id != source.id:
            raise ValidationException(
                "Replacement must belong to the source department",
                field="replacement_head_employee_id",
            )

        old_values = _employee_snapshot(moving_head)

        await EmployeeService._demote_target_head(store, target, moving_head)

        source.head_employee_id = None
        source.updated_at = _now()
        await store.flush(field="head_employee_id", value=None)

        replacement.make_head_of(source.id, actor.id)
        replacement.updated_at = _now()
        source.head_employee_id = replacement.id
        source.updated_at = _now()
        await store.flush(field="head_employee_id", value=replacement.id)

        # the outgoing head's team in the source department follows the new head
        for report in await store.find_employees_by_manager(moving_head.id):
            if report.department_id == source.id and report.id != replacement.id:
                report.manager_id = replacement.id
                report.updated_at = _now()

        moving_head.make_head_of(target.id, actor.id)
        moving_head.updated_at = _now()
        target.head_employee_id = moving_head.id
        target.updated_at = _now()
        await store.flush(field="head_employee_id", value=moving_head.id)

        await EmployeeService._audit_head_move(db, moving_head, old_values, actor)
        await create_audit_entry(
            db,
            action="promote_head",
            entity_type="employee",
            entity_id=replacement.id,
            actor_id=actor.id,
            new_values=_employee_snapshot(replacement),
        )
        logger.info(
            "Moved department head %s to department %s; %s now heads %s",
            moving_head.id, target.id, replacement.id, source.id,
        )

        return await project_employee(store, moving_head)

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        actor: Employee,
    ) -> None:
        store = DirectoryStore(db)
        employee = await store.get_employee(employee_id)

        if actor.id == employee.id:
            raise ForbiddenException(
                "You cannot delete yourself. Only your superiors can do this.",
            )
        if employee.is_ceo:
            raise ValidationException("Cannot delete CEO")
        if employee.is_dept_head:
            raise ValidationException("Cannot delete department head directly")
        if not can_modify(actor, employee):
            raise ForbiddenException(
                "Only the employee's manager, department head or CEO can delete this employee",
            )

        old_values = _employee_snapshot(employee)
        await store.delete_employee(employee)

        await create_audit_entry(
            db,
            action="delete",
            entity_type="employee",
            entity_id=employee_id,
            actor_id=actor.id,
            old_values=old_values,
        )
        logger.info("Deleted employee %s (%s)", employee_id, old_values["email"])

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        actor: Employee,
    ) -> EmployeeResponse:
        store = DirectoryStore(db)
        employee = await store.get_employee(employee_id)
        if not can_view(actor, employee):
            raise ForbiddenException("You are not authorized to view this employee")
        return await project_employee(store, employee)

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        actor: Employee,
        search: Optional[str] = None,
    ) -> tuple[list[EmployeeResponse], PaginationMeta]:
        """CEO-only paginated directory, searchable by name or email."""
        _require_ceo(actor, "Only CEO can view all employees")

        query = select(Employee)
        query = apply_search(query, Employee, search, ["name", "email"])
        if not pagination.sort:
            query = query.order_by(Employee.name)

        rows, meta = await paginate(db, query, pagination, model=Employee)
        return await _project_employees(DirectoryStore(db), rows), meta

    @staticmethod
    async def get_employees_by_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        actor: Employee,
    ) -> list[EmployeeResponse]:
        store = DirectoryStore(db)
        department = await store.get_department(department_id)
        if not (is_ceo_actor(actor) or heads_department(actor, department.id)):
            raise ForbiddenException(
                "Only CEO or the department head can view employees in this department",
            )
        employees = await store.find_employees_by_department(department.id)
        return await _project_employees(store, employees)

    @staticmethod
    async def get_employees_by_manager(
        db: AsyncSession,
        manager_id: uuid.UUID,
        *,
        actor: Employee,
    ) -> list[EmployeeResponse]:
        store = DirectoryStore(db)
        manager = await store.get_employee(manager_id, "Manager")
        if not can_view(actor, manager):
            raise ForbiddenException(
                "You are not authorized to view this manager's reports",
            )
        employees = await store.find_employees_by_manager(manager.id)
        return await _project_employees(store, employees)

    @staticmethod
    async def get_my_direct_reports(
        db: AsyncSession, *, actor: Employee,
    ) -> list[EmployeeResponse]:
        store = DirectoryStore(db)
        return await _project_employees(
            store, await store.find_employees_by_manager(actor.id),
        )

    @staticmethod
    async def get_current_profile(
        db: AsyncSession, *, actor: Employee,
    ) -> EmployeeResponse:
        return await project_employee(DirectoryStore(db), actor)

    # ── Org chart ───────────────────────────────────────────────────

    @staticmethod
    async def build_org_chart(
        db: AsyncSession,
        *,
        actor: Employee,
        root_id: Optional[uuid.UUID] = None,
        max_depth: int = 5,
    ) -> list[OrgChartNode]:
        """Build the reporting tree.

        Without *root_id* the whole organisation is returned (CEO only);
        otherwise the subtree under an employee the actor can view.
        """
        store = DirectoryStore(db)

        root: Optional[Employee] = None
        if root_id is None:
            _require_ceo(actor, "Only CEO can view the full organisation chart")
        else:
            root = await store.get_employee(root_id)
            if not can_view(actor, root):
                raise ForbiddenException("You are not authorized to view this employee")

        all_employees = await store.find_all_employees()
        dept_names = await store.department_names(e.department_id for e in all_employees)

        # Children lookup: manager_id → [employee, ...]
        children_map: dict[Optional[uuid.UUID], list[Employee]] = {}
        for emp in all_employees:
            children_map.setdefault(emp.manager_id, []).append(emp)

        def _build_node(emp: Employee, depth: int) -> OrgChartNode:
            node = OrgChartNode(
                id=emp.id,
                name=emp.name,
                position=emp.position_kind,
                department=dept_names.get(emp.department_id),
            )
            if depth < max_depth:
                for child in children_map.get(emp.id, []):
                    node.children.append(_build_node(child, depth + 1))
            return node

        if root is not None:
            return [_build_node(root, 0)]

        return [_build_node(r, 0) for r in children_map.get(None, [])]


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:
    """Department CRUD; all writes are CEO-only."""

    @staticmethod
    async def list_departments(db: AsyncSession) -> list[DepartmentResponse]:
        store = DirectoryStore(db)
        return await _project_departments(store, await store.find_all_departments())

    @staticmethod
    async def get_department(
        db: AsyncSession, department_id: uuid.UUID,
    ) -> DepartmentResponse:
        store = DirectoryStore(db)
        department = await store.get_department(department_id)
        return (await _project_departments(store, [department]))[0]

    @staticmethod
    async def _check_name_free(
        store: DirectoryStore, name: str, current: Optional[Department] = None,
    ) -> None:
        if current is not None and current.name == name:
            return
        if await store.find_department_by_name(name) is not None:
            raise ValidationException("Department name already exists", field="name")

    @staticmethod
    async def _save_and_audit(
        store: DirectoryStore,
        department: Department,
        *,
        action: str,
        actor: Employee,
        old_values: Optional[dict[str, Any]] = None,
    ) -> DepartmentResponse:
        department.updated_at = _now()
        await store.save_department(department)
        await create_audit_entry(
            store.db,
            action=action,
            entity_type="department",
            entity_id=department.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_department_snapshot(department),
        )
        return (await _project_departments(store, [department]))[0]

    @staticmethod
    async def create_department(
        db: AsyncSession,
        data: DepartmentCreate,
        *,
        actor: Employee,
    ) -> DepartmentResponse:
        _require_ceo(actor, "Only CEO can create departments")
        store = DirectoryStore(db)
        await DepartmentService._check_name_free(store, data.name)

        department = Department(name=data.name, description=data.description)
        response = await DepartmentService._save_and_audit(
            store, department, action="create", actor=actor,
        )
        logger.info("Created department %s (%s)", department.id, department.name)
        return response

    @staticmethod
    async def update_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        data: DepartmentUpdate,
        *,
        actor: Employee,
    ) -> DepartmentResponse:
        _require_ceo(actor, "Only CEO can update departments")
        store = DirectoryStore(db)
        department = await store.get_department(department_id)
        await DepartmentService._check_name_free(store, data.name, department)

        old_values = _department_snapshot(department)
        department.name = data.name
        department.description = data.description
        return await DepartmentService._save_and_audit(
            store, department, action="update", actor=actor, old_values=old_values,
        )

    @staticmethod
    async def patch_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        data: DepartmentPatch,
        *,
        actor: Employee,
    ) -> DepartmentResponse:
        _require_ceo(actor, "Only CEO can update departments")
        store = DirectoryStore(db)
        department = await store.get_department(department_id)

        changes = data.model_dump(exclude_unset=True)
        if changes.get("name") is not None:
            await DepartmentService._check_name_free(store, changes["name"], department)

        old_values = _department_snapshot(department)
        for field, value in changes.items():
            if field == "name" and value is None:
                continue
            setattr(department, field, value)
        return await DepartmentService._save_and_audit(
            store, department, action="update", actor=actor, old_values=old_values,
        )

    @staticmethod
    async def delete_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        actor: Employee,
    ) -> None:
        """Departments are never removed; heads and staff are moved instead."""
        raise UnsupportedOperationException(
            "Departments cannot be deleted. Move their employees instead.",
        )
