"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, employees, departments, moves).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("PASSWORD_HASH_TIME_COST", "1")
os.environ.setdefault("PASSWORD_HASH_MEMORY_COST", "1024")

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrms.auth.passwords import hash_password
from hrms.auth.service import create_access_token, hash_token
from hrms.common.constants import PositionKind, UserRole
from hrms.config import settings
from hrms.database import Base, get_db
from hrms.main import create_app

# Import ALL model modules so every table lands on Base.metadata
import hrms.auth.models  # noqa: F401
import hrms.common.audit  # noqa: F401
import hrms.org.models  # noqa: F401

from hrms.auth.models import UserSession
from hrms.org.models import Department, Employee

TEST_PASSWORD = "password123"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Register PG-compatible functions for SQLite
@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() as a SQLite custom function."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from hrms.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


async def reload(model, obj_id: uuid.UUID):
    """Fetch a fresh copy of a row through a new session."""
    async with TestSessionFactory() as session:
        return await session.get(model, obj_id)


# ── Model factories ─────────────────────────────────────────────────

_PASSWORD_HASH: Optional[str] = None


def _password_hash() -> str:
    global _PASSWORD_HASH
    if _PASSWORD_HASH is None:
        _PASSWORD_HASH = hash_password(TEST_PASSWORD)
    return _PASSWORD_HASH


async def make_department(db: AsyncSession, name: str, **kwargs) -> Department:
    department = Department(name=name, description=kwargs.pop("description", None), **kwargs)
    db.add(department)
    await db.flush()
    return department


async def make_employee(
    db: AsyncSession,
    name: str,
    *,
    email: Optional[str] = None,
    role: UserRole = UserRole.employee,
    position: PositionKind = PositionKind.individual_contributor,
    department: Optional[Department] = None,
    manager: Optional[Employee] = None,
) -> Employee:
    employee = Employee(
        name=name,
        email=email or f"{name.lower().replace(' ', '.')}@company.com",
        password_hash=_password_hash(),
        role=role,
        position_kind=position,
        department_id=department.id if department else None,
        manager_id=manager.id if manager else None,
    )
    db.add(employee)
    await db.flush()
    if position == PositionKind.department_head and department is not None:
        department.head_employee_id = employee.id
        await db.flush()
    return employee


@dataclass
class Org:
    """Sample organisation used by most tests.

    CEO → Alice (head, Engineering) → Dave, Erin
              Dave → Ivan
    CEO → Bob (head, Marketing) → Frank
    CEO → Carol (head, Sales) → Grace
    """

    ceo: Employee
    engineering: Department
    marketing: Department
    sales: Department
    alice: Employee
    bob: Employee
    carol: Employee
    dave: Employee
    erin: Employee
    ivan: Employee
    frank: Employee
    grace: Employee
    extra: dict = field(default_factory=dict)


@pytest.fixture
async def org(db) -> Org:
    """Insert the sample organisation and commit it."""
    ceo = await make_employee(db, "Chief Exec", email="ceo@company.com",
                              role=UserRole.admin, position=PositionKind.ceo)
    engineering = await make_department(db, "Engineering", description="Builds things")
    marketing = await make_department(db, "Marketing")
    sales = await make_department(db, "Sales")

    head = PositionKind.department_head
    alice = await make_employee(db, "Alice", role=UserRole.admin, position=head,
                                department=engineering, manager=ceo)
    bob = await make_employee(db, "Bob", role=UserRole.admin, position=head,
                              department=marketing, manager=ceo)
    carol = await make_employee(db, "Carol", role=UserRole.admin, position=head,
                                department=sales, manager=ceo)

    dave = await make_employee(db, "Dave", role=UserRole.admin,
                               department=engineering, manager=alice)
    erin = await make_employee(db, "Erin", department=engineering, manager=alice)
    ivan = await make_employee(db, "Ivan", department=engineering, manager=dave)
    frank = await make_employee(db, "Frank", department=marketing, manager=bob)
    grace = await make_employee(db, "Grace", department=sales, manager=carol)

    await db.commit()
    return Org(
        ceo=ceo, engineering=engineering, marketing=marketing, sales=sales,
        alice=alice, bob=bob, carol=carol,
        dave=dave, erin=erin, ivan=ivan, frank=frank, grace=grace,
    )


# ── Auth helpers ────────────────────────────────────────────────────

async def auth_headers_for(employee: Employee) -> dict[str, str]:
    """Return Bearer auth headers with a valid session persisted in the DB."""
    token, _ = create_access_token(employee.id, employee.role)

    async with TestSessionFactory() as session:
        session.add(
            UserSession(
                id=uuid.uuid4(),
                employee_id=employee.id,
                token_hash=hash_token(token),
                expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
                is_revoked=False,
            ),
        )
        await session.commit()

    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def ceo_headers(org) -> dict[str, str]:
    return await auth_headers_for(org.ceo)
