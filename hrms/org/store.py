"""Directory store — async lookups and writes over employees/departments.

Thin query layer the hierarchy services run against. Every lookup goes
through the session's identity map, so objects returned twice within one
request are the same instance and in-flight mutations stay visible.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import PositionKind
from hrms.common.exceptions import ConflictError, NotFoundException
from hrms.org.models import Department, Employee


class DirectoryStore:
    """Employee/Department persistence bound to one ``AsyncSession``."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Employees ───────────────────────────────────────────────────

    async def find_employee_by_id(self, employee_id: uuid.UUID) -> Optional[Employee]:
        return await self.db.get(Employee, employee_id)

    async def get_employee(
        self, employee_id: uuid.UUID, entity_type: str = "Employee",
    ) -> Employee:
        """Like ``find_employee_by_id`` but raises 404 when missing."""
        employee = await self.find_employee_by_id(employee_id)
        if employee is None:
            raise NotFoundException(entity_type, str(employee_id))
        return employee

    async def find_employee_by_email(self, email: str) -> Optional[Employee]:
        result = await self.db.execute(
            select(Employee).where(Employee.email == email),
        )
        return result.scalars().first()

    async def find_employees_by_department(
        self, department_id: uuid.UUID,
    ) -> Sequence[Employee]:
        result = await self.db.execute(
            select(Employee)
            .where(Employee.department_id == department_id)
            .order_by(Employee.name),
        )
        return result.scalars().all()

    async def find_employees_by_manager(
        self, manager_id: uuid.UUID,
    ) -> Sequence[Employee]:
        result = await self.db.execute(
            select(Employee)
            .where(Employee.manager_id == manager_id)
            .order_by(Employee.name),
        )
        return result.scalars().all()

    async def find_all_employees(self) -> Sequence[Employee]:
        result = await self.db.execute(select(Employee).order_by(Employee.name))
        return result.scalars().all()

    async def exists_ceo(self) -> bool:
        return await self.find_ceo() is not None

    async def find_ceo(self) -> Optional[Employee]:
        result = await self.db.execute(
            select(Employee).where(Employee.position_kind == PositionKind.ceo),
        )
        return result.scalars().first()

    async def find_dept_head_in_department(
        self, department_id: uuid.UUID,
    ) -> Optional[Employee]:
        result = await self.db.execute(
            select(Employee).where(
                Employee.department_id == department_id,
                Employee.position_kind == PositionKind.department_head,
            ),
        )
        return result.scalars().first()

    async def count_direct_reports(self, manager_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Employee)
            .where(Employee.manager_id == manager_id),
        )
        return result.scalar() or 0

    async def count_ceo_reports_in_department(
        self,
        department_id: uuid.UUID,
        ceo_id: uuid.UUID,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Individual contributors in *department_id* reporting straight to the CEO.

        Department heads are not counted.
        """
        query = (
            select(func.count())
            .select_from(Employee)
            .where(
                Employee.department_id == department_id,
                Employee.manager_id == ceo_id,
                Employee.position_kind == PositionKind.individual_contributor,
            )
        )
        if exclude_id is not None:
            query = query.where(Employee.id != exclude_id)
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def direct_report_counts(
        self, manager_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, int]:
        ids = {i for i in manager_ids if i is not None}
        if not ids:
            return {}
        result = await self.db.execute(
            select(Employee.manager_id, func.count(Employee.id))
            .where(Employee.manager_id.in_(ids))
            .group_by(Employee.manager_id),
        )
        return {row[0]: row[1] for row in result.all()}

    async def employee_names(
        self, employee_ids: Iterable[Optional[uuid.UUID]],
    ) -> dict[uuid.UUID, str]:
        ids = {i for i in employee_ids if i is not None}
        if not ids:
            return {}
        result = await self.db.execute(
            select(Employee.id, Employee.name).where(Employee.id.in_(ids)),
        )
        return {row[0]: row[1] for row in result.all()}

    async def save_employee(self, employee: Employee) -> Employee:
        self.db.add(employee)
        await self.flush(field="email", value=employee.email)
        return employee

    async def delete_employee(self, employee: Employee) -> None:
        await self.db.delete(employee)
        await self.flush(
            field="id",
            value=employee.id,
            detail="Employee is still referenced (direct reports or department head).",
        )

    # ── Departments ─────────────────────────────────────────────────

    async def find_department_by_id(
        self, department_id: uuid.UUID,
    ) -> Optional[Department]:
        return await self.db.get(Department, department_id)

    async def get_department(self, department_id: uuid.UUID) -> Department:
        department = await self.find_department_by_id(department_id)
        if department is None:
            raise NotFoundException("Department", str(department_id))
        return department

    async def find_department_by_name(self, name: str) -> Optional[Department]:
        result = await self.db.execute(
            select(Department).where(Department.name == name),
        )
        return result.scalars().first()

    async def find_all_departments(self) -> Sequence[Department]:
        result = await self.db.execute(select(Department).order_by(Department.name))
        return result.scalars().all()

    async def department_names(
        self, department_ids: Iterable[Optional[uuid.UUID]],
    ) -> dict[uuid.UUID, str]:
        ids = {i for i in department_ids if i is not None}
        if not ids:
            return {}
        result = await self.db.execute(
            select(Department.id, Department.name).where(Department.id.in_(ids)),
        )
        return {row[0]: row[1] for row in result.all()}

    async def department_member_counts(self) -> dict[uuid.UUID, int]:
        result = await self.db.execute(
            select(Employee.department_id, func.count(Employee.id))
            .where(Employee.department_id.is_not(None))
            .group_by(Employee.department_id),
        )
        return {row[0]: row[1] for row in result.all()}

    async def save_department(self, department: Department) -> Department:
        self.db.add(department)
        await self.flush(field="name", value=department.name)
        return department

    # ── Unit of work ────────────────────────────────────────────────

    async def flush(
        self,
        *,
        field: str = "id",
        value: object = None,
        detail: Optional[str] = None,
    ) -> None:
        """Flush pending writes; constraint violations become 409 Conflict.

        The caller's transaction is rolled back by ``get_db`` once the
        ConflictError propagates.
        """
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise ConflictError(
                field, value, detail or f"Store rejected the change: {exc.orig}",
            ) from exc
