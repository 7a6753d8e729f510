"""Sample organisation: a CEO, three departments with heads, and staff.

Used by ``scripts/seed_data.py`` and, when ``SEED_SAMPLE_DATA`` is set, by
the application lifespan. Rows are written directly (there is no acting
user yet), following the same shape the hierarchy rules produce.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.passwords import hash_password
from hrms.common.constants import PositionKind, UserRole
from hrms.org.models import Department, Employee
from hrms.org.store import DirectoryStore

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "password"

CEO = {"name": "John CEO", "email": "ceo@company.com"}

# (name, description, head, staff)
DEPARTMENTS = [
    (
        "Engineering",
        "Software Development Team",
        {"name": "Alice Engineering", "email": "eng.head@company.com"},
        [
            {"name": "David Developer", "email": "dev1@company.com"},
            {"name": "Eve Engineer", "email": "dev2@company.com"},
        ],
    ),
    (
        "Marketing",
        "Marketing and Sales Team",
        {"name": "Bob Marketing", "email": "marketing.head@company.com"},
        [{"name": "Frank Marketer", "email": "marketer1@company.com"}],
    ),
    (
        "Human Resources",
        "HR and Recruitment Team",
        {"name": "Carol HR", "email": "hr.head@company.com"},
        [{"name": "Grace HR", "email": "hr.staff@company.com"}],
    ),
]


async def seed_sample_data(
    db: AsyncSession,
    *,
    password: Optional[str] = None,
) -> bool:
    """Insert the sample organisation; returns False when a CEO already exists."""
    store = DirectoryStore(db)
    if await store.exists_ceo():
        logger.info("CEO already present; skipping sample data")
        return False

    password_hash = hash_password(password or DEFAULT_PASSWORD)

    ceo = Employee(
        name=CEO["name"],
        email=CEO["email"],
        password_hash=password_hash,
        role=UserRole.admin,
        position_kind=PositionKind.ceo,
    )
    await store.save_employee(ceo)

    for name, description, head_info, staff in DEPARTMENTS:
        department = Department(name=name, description=description)
        await store.save_department(department)

        head = Employee(
            name=head_info["name"],
            email=head_info["email"],
            password_hash=password_hash,
            role=UserRole.admin,
        )
        head.make_head_of(department.id, ceo.id)
        await store.save_employee(head)

        department.head_employee_id = head.id
        await store.flush(field="head_employee_id", value=head.id)

        for member in staff:
            await store.save_employee(
                Employee(
                    name=member["name"],
                    email=member["email"],
                    password_hash=password_hash,
                    role=UserRole.employee,
                    position_kind=PositionKind.individual_contributor,
                    department_id=department.id,
                    manager_id=head.id,
                ),
            )

    logger.info(
        "Seeded sample organisation: %d departments, CEO %s",
        len(DEPARTMENTS), CEO["email"],
    )
    return True
