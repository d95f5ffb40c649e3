"""
Pytest configuration and fixtures.
Provides an in-memory database, an API client bound to it and small factories.
"""
from datetime import date
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from worktime.db.base import Base
from worktime.core.companies.models import Company
from worktime.core.rbac.models import Role, User
from worktime.core.rbac.permissions import DEFAULT_ROLE_PERMISSIONS
from worktime.core.auth.models import RefreshToken  # noqa
from worktime.core.audit.models import AuditLog  # noqa
from worktime.core.processes.models import Process
from worktime.core.timesheets.models import TimesheetRecord, TimesheetRecordItem, ApprovalHistory  # noqa

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    from worktime.dependencies import get_db
    from worktime.main import app

    async def override_get_db():
        async with session_factory() as session:
            async with session.begin():
                yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def company(db):
    c = Company(name="Acme Assembly")
    db.add(c)
    await db.flush()
    return c


@pytest.fixture
async def roles(db):
    created = {}
    for code, permissions in DEFAULT_ROLE_PERMISSIONS.items():
        role = Role(name=code.replace("_", " ").title(), code=code, permissions=list(permissions))
        db.add(role)
        created[code] = role
    await db.flush()
    return created


@pytest.fixture
def make_user(db, company, roles):
    counter = iter(range(1, 10_000))

    async def _make(name, role="employee", line="L1", *, company_id=None, is_active=True,
                    is_superadmin=False, password_hash=None):
        user = User(
            company_id=company_id or company.id,
            phone=f"1380000{next(counter):04d}",
            name=name,
            hashed_password=password_hash,
            role_id=roles[role].id,
            production_line=line,
            is_active=is_active,
            is_superadmin=is_superadmin,
        )
        user.role = roles[role]
        db.add(user)
        await db.flush()
        return user

    return _make


@pytest.fixture
async def process(db, company):
    p = Process(
        company_id=company.id,
        production_line="L1",
        production_category="Housings",
        product_name="Pump housing",
        product_process="Deburr",
        unit_price=Decimal("2.50"),
    )
    db.add(p)
    await db.flush()
    return p


@pytest.fixture
def make_record(db, process):
    """Creates a record through the service so snapshots and totals are real."""
    from worktime.core.timesheets import service
    from worktime.core.timesheets.schemas import ItemInput, RecordCreate

    async def _make(employee, supervisor, section_chief, *, submit=True, quantity="10", work_date=None):
        data = RecordCreate(
            work_date=work_date or date(2026, 3, 2),
            supervisor_id=supervisor.id,
            section_chief_id=section_chief.id,
            items=[ItemInput(process_id=process.id, quantity=Decimal(quantity))],
            submit=submit,
        )
        return await service.create_record(db, employee, data)

    return _make
