"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import pytest
import pytest_asyncio
from datetime import date, datetime
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from invoicing.main import app
from invoicing.models import Base
from invoicing.db.session import get_db, enable_sqlite_foreign_keys
from invoicing.services.ledger import InvoiceLedger
from tests.factories import CompanyFactory, ClientFactory


# Test database URL
# WHY: Using SQLite for tests eliminates external database dependencies
# and makes tests faster.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "now" for ledger timestamps (sent_at, paid_at, reconciled_at)
FIXED_NOW = datetime(2024, 3, 15, 9, 30, 0)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state,
    preventing test pollution and ensuring test isolation. StaticPool keeps
    the single in-memory database alive across connections.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    WHY: Each test gets its own session that is rolled back after the test.

    Yields:
        AsyncSession: Database session for the test
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server, making tests faster and more reliable.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        """Override database dependency with test session."""
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def ledger() -> InvoiceLedger:
    """Ledger with a fixed clock."""
    return InvoiceLedger(clock=lambda: FIXED_NOW)


@pytest.fixture
def today() -> date:
    return FIXED_NOW.date()


@pytest_asyncio.fixture
async def test_company(db_session: AsyncSession):
    """
    Create a test company.

    WHY: Everything is scoped to a company; most tests need one.
    """
    return await CompanyFactory.create(db_session)


@pytest_asyncio.fixture
async def test_client_record(db_session: AsyncSession, test_company):
    """Create a client of test_company with 30 day payment terms."""
    return await ClientFactory.create(db_session, company=test_company)


@pytest.fixture
def sample_company_data() -> dict:
    """
    Sample company payload for API tests.

    WHY: Centralizing test data ensures consistency across tests
    and makes it easy to update test data in one place.
    """
    return {
        "name": "Acme Trading (Pty) Ltd",
        "trading_name": "Acme",
        "registration_number": "2020/123456/07",
        "vat_number": "4123456789",
        "vat_registered": True,
        "email": "accounts@acme.co.za",
        "phone_number": "0211234567",
        "city": "Cape Town",
        "province": "Western Cape",
        "bank_name": "FNB",
        "bank_account_number": "62812345678",
        "bank_branch_code": "250655",
    }
