"""Pytest fixtures for HR workflow tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from hr_workflow.database import make_session_factory
from hr_workflow.identity import Actor, Role, StaticIdentity
from hr_workflow.models import Base, Employee, Project, User
from hr_workflow.services.orchestrator import WorkflowOrchestrator

# Use in-memory SQLite for tests (with async support); StaticPool keeps the
# single connection, and therefore the database, alive across sessions
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def _persist(session_factory, *objects):
    """Commit objects in their own transaction so every session sees them."""
    async with session_factory() as session:
        async with session.begin():
            session.add_all(objects)
    return objects


def make_user(name: str, role: Role = Role.EMPLOYEE) -> User:
    slug = name.lower().replace(" ", ".")
    return User(user_id=uuid4(), name=name, email=f"{slug}@example.com", role=role.value)


def make_employee(user: User, code: str, basic_salary: str = "3000.00", is_active: bool = True) -> Employee:
    return Employee(
        employee_id=uuid4(),
        user=user,
        employee_code=code,
        employment_date=date(2023, 1, 9),
        basic_salary=Decimal(basic_salary),
        is_active=is_active,
    )


def actor_for(user: User) -> Actor:
    return Actor(id=user.user_id, role=Role(user.role), name=user.name)


@pytest.fixture
async def admin_user(session_factory) -> User:
    """Create a test admin."""
    (user,) = await _persist(session_factory, make_user("Alice Admin", Role.ADMIN))
    return user


@pytest.fixture
async def second_admin(session_factory, admin_user: User) -> User:
    (user,) = await _persist(session_factory, make_user("Bob Admin", Role.ADMIN))
    return user


@pytest.fixture
async def test_employee(session_factory) -> Employee:
    """Create an active employee with a user account."""
    employee = make_employee(make_user("Eve Employee"), "100001")
    await _persist(session_factory, employee)
    return employee


@pytest.fixture
async def other_employee(session_factory) -> Employee:
    employee = make_employee(make_user("Oscar Other"), "100002", basic_salary="4200.00")
    await _persist(session_factory, employee)
    return employee


@pytest.fixture
async def test_project(session_factory) -> Project:
    """Create an unarchived project."""
    project = Project(project_id=uuid4(), name="Website Redesign", description="Q3 refresh")
    await _persist(session_factory, project)
    return project


@pytest.fixture
def orchestrator_for(session_factory):
    """Build an orchestrator acting as the given user (or as nobody)."""

    def build(user: User | None, dispatcher=None) -> WorkflowOrchestrator:
        actor = actor_for(user) if user is not None else None
        return WorkflowOrchestrator(session_factory, StaticIdentity(actor), dispatcher=dispatcher)

    return build


@pytest.fixture
def add_employee(session_factory):
    """Persist an extra employee: ``await add_employee("Ian Inactive", "100009", is_active=False)``."""

    async def add(name: str, code: str, basic_salary: str = "3000.00", is_active: bool = True) -> Employee:
        employee = make_employee(make_user(name), code, basic_salary, is_active)
        await _persist(session_factory, employee)
        return employee

    return add
