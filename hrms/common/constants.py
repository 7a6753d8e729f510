"""Enums and constants for the HRMS backend — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "ADMIN"
    employee = "EMPLOYEE"


# ── Organisational position ─────────────────────────────────────────

class PositionKind(str, enum.Enum):
    ceo = "ceo"
    department_head = "department_head"
    individual_contributor = "individual_contributor"


# ── Role-based permissions ──────────────────────────────────────────

PERMISSIONS: dict[UserRole, list[str]] = {
    UserRole.employee: [
        "profile:read_own",
        "employee:read",
        "department:read",
    ],
    UserRole.admin: [
        "profile:read_own",
        "employee:read",
        "employee:create",
        "employee:update",
        "employee:delete",
        "employee:move",
        "department:read",
        "department:create",
        "department:update",
    ],
}

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
