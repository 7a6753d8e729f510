"""Org ORM models: Department, Employee.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
Back-references (department members, direct reports) are not mapped as
relationships; ``DirectoryStore`` answers them with explicit queries.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from hrms.common.constants import PositionKind, UserRole
from hrms.database import Base
from hrms.org.position import Position, PositionVariant


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class Department(Base):
    """Organisational department with at most one head."""

    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    # unique: one employee can head at most one department
    head_employee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid,
        sa.ForeignKey("employees.id", name="fk_dept_head", use_alter=True),
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Department {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base):
    """Employee record — a node of the reporting tree."""

    __tablename__ = "employees"
    __table_args__ = (
        # At most one CEO system-wide.
        sa.Index(
            "uq_employees_single_ceo",
            "position",
            unique=True,
            postgresql_where=sa.text("position = 'ceo'"),
            sqlite_where=sa.text("position = 'ceo'"),
        ),
        sa.CheckConstraint(
            "manager_id IS NULL OR manager_id <> id",
            name="ck_employees_not_own_manager",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.employee,
    )

    # ── Org hierarchy ───────────────────────────────────────────────
    position_kind: Mapped[PositionKind] = mapped_column(
        "position",
        sa.Enum(
            PositionKind,
            name="position_kind",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=PositionKind.individual_contributor,
    )
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("departments.id"), index=True,
    )
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("employees.id"), index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )

    # ── Position helpers ────────────────────────────────────────────

    @property
    def position(self) -> PositionVariant:
        return Position.of(self.position_kind, self.department_id)

    @property
    def is_ceo(self) -> bool:
        return self.position_kind == PositionKind.ceo

    @property
    def is_dept_head(self) -> bool:
        return self.position_kind == PositionKind.department_head

    def make_head_of(self, department_id: uuid.UUID, ceo_id: uuid.UUID) -> None:
        self.position_kind = PositionKind.department_head
        self.department_id = department_id
        self.manager_id = ceo_id

    def make_individual_contributor(self) -> None:
        self.position_kind = PositionKind.individual_contributor

    def __repr__(self) -> str:
        return f"<Employee {self.email} {self.position_kind.value}>"
