"""Org Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update / *Patch → request bodies (write)
  - *Request                   → structural operations (moves)
  - *Response                  → response bodies (read)
"""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from hrms.common.constants import PositionKind, UserRole


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentCreate(BaseModel):
    """Payload for creating a department."""

    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None


class DepartmentUpdate(BaseModel):
    """Full-update payload; ``description`` is overwritten even when null."""

    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None


class DepartmentPatch(BaseModel):
    """Partial-update payload (only provided fields change)."""

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None


class DepartmentResponse(BaseModel):
    """Department representation with head and head-count enrichment."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    head_id: Optional[uuid.UUID] = None
    head_name: Optional[str] = None
    employee_count: int = 0


# ═════════════════════════════════════════════════════════════════════
# Employee — write schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(BaseModel):
    """Payload for creating a new employee."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole = UserRole.employee
    department_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    is_ceo: bool = False
    is_dept_head: bool = False

    @model_validator(mode="after")
    def _single_position(self) -> "EmployeeCreate":
        if self.is_ceo and self.is_dept_head:
            raise ValueError("An employee cannot be both CEO and department head")
        return self


class EmployeeUpdate(BaseModel):
    """Full-update payload.

    ``department_id``, ``manager_id``, ``is_ceo`` and ``is_dept_head`` are
    accepted only so that supplying them can be rejected with a clear
    message; structural changes go through the move/assign endpoints.
    """

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    role: UserRole
    password: Optional[str] = Field(None, max_length=128)
    department_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    is_ceo: Optional[bool] = None
    is_dept_head: Optional[bool] = None


class EmployeePatch(BaseModel):
    """Partial-update payload (all fields optional)."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    password: Optional[str] = Field(None, max_length=128)
    department_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    is_ceo: Optional[bool] = None
    is_dept_head: Optional[bool] = None


class EmployeeMoveRequest(BaseModel):
    department_id: uuid.UUID
    manager_id: uuid.UUID


class DepartmentHeadMoveRequest(BaseModel):
    """Move a head to another department, optionally naming a replacement."""

    new_department_id: uuid.UUID
    replacement_head_employee_id: Optional[uuid.UUID] = None


# ═════════════════════════════════════════════════════════════════════
# Employee — read schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeResponse(BaseModel):
    """Employee projection; the credential hash is never included."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    position: PositionKind
    department_id: Optional[uuid.UUID] = None
    department_name: Optional[str] = None
    manager_id: Optional[uuid.UUID] = None
    manager_name: Optional[str] = None
    is_ceo: bool = False
    is_dept_head: bool = False
    direct_reports_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ═════════════════════════════════════════════════════════════════════
# Org chart
# ═════════════════════════════════════════════════════════════════════


class OrgChartNode(BaseModel):
    """Recursive node for org-chart tree rendering."""

    id: uuid.UUID
    name: str
    position: PositionKind
    department: Optional[str] = None
    children: list["OrgChartNode"] = Field(default_factory=list)


# Rebuild model to support recursive reference
OrgChartNode.model_rebuild()
