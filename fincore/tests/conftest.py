"""
Centralized Test Configuration.
"""

import uuid
import pytest
from decimal import Decimal
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from fincore.app.main import app
from fincore.app.db.session import get_db, Base
from fincore.app.core.jwt import create_access_token
from fincore.app.core.redis_client import get_redis
from fincore.app.domain.actor import Actor
from fincore.app.domain.approvals.payout_gateway import PayoutResult, get_payout_gateway
from fincore.app.models.account import Account
from fincore.app.models.ledger_entry import LedgerEntry
from fincore.app.models.withdrawal_request import WithdrawalRequest
from fincore.app.models.enums import UserRole
from fincore.app.models.finance_enums import LedgerEntryType, WithdrawalChannel, WithdrawalStatus
import fincore.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None, nx=False):
        if self._closed:
            return False
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


class FakePayoutGateway:
    """Records transfers and answers with a canned result."""

    def __init__(self, result: PayoutResult = None):
        self.result = result or PayoutResult(accepted=True, transaction_reference="ZP-TX-0001")
        self.calls = []

    async def initiate_transfer(self, withdrawal_id, msisdn, amount):
        self.calls.append((withdrawal_id, msisdn, amount))
        return self.result


@pytest.fixture
def redis():
    return MockRedis()


@pytest.fixture
def payout_gateway():
    return FakePayoutGateway()


@pytest.fixture(autouse=True)
def apply_overrides(redis, payout_gateway):
    """Point the app at the in-memory database, fake Redis and fake gateway."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_payout_gateway] = lambda: payout_gateway
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def account_factory(db_session):
    """Create accounts: `await account_factory(role=UserRole.ADMIN)`."""
    async def _create(
        role: UserRole = UserRole.EMPLOYEE,
        monthly_salary: Decimal = Decimal("0"),
        department: str = None,
        is_active: bool = True,
        name: str = None
    ) -> Account:
        username = name or f"{role.value.lower()}_{uuid.uuid4().hex[:6]}"
        account = Account(
            email=f"{username}@example.com",
            username=username,
            full_name=username.replace("_", " ").title(),
            role=role,
            department=department or role.value.title(),
            monthly_salary=monthly_salary,
            phone_number="256700000001",
            is_active=is_active,
        )
        db_session.add(account)
        await db_session.commit()
        await db_session.refresh(account)
        return account
    return _create


@pytest.fixture
async def employee(account_factory):
    return await account_factory(UserRole.EMPLOYEE, Decimal("1000000"), department="Operations", name="amina_employee")


@pytest.fixture
async def admin(account_factory):
    return await account_factory(UserRole.ADMIN, name="brian_admin")


@pytest.fixture
async def finance(account_factory):
    return await account_factory(UserRole.FINANCE, name="carol_finance")


@pytest.fixture
def actor_of():
    def _actor(account: Account, role: UserRole = None) -> Actor:
        return Actor(
            id=account.id,
            name=account.full_name,
            role=role or account.role,
            department=account.department,
        )
    return _actor


@pytest.fixture
def auth_headers():
    def _headers(account: Account) -> dict:
        token = create_access_token(data={
            "sub": account.username,
            "user_id": account.id,
            "role": account.role.value,
        })
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def post_entry(db_session):
    """Insert a signed ledger entry directly."""
    async def _post(account_id: int, amount, reference: str = None, created_at=None) -> LedgerEntry:
        value = Decimal(str(amount))
        entry = LedgerEntry(
            account_id=account_id,
            entry_type=LedgerEntryType.CREDIT if value >= 0 else LedgerEntryType.DEBIT,
            source="TEST",
            reference=reference or f"TEST-{uuid.uuid4().hex[:10]}",
            amount=value,
        )
        if created_at is not None:
            entry.created_at = created_at
        db_session.add(entry)
        await db_session.commit()
        return entry
    return _post


@pytest.fixture
def insert_withdrawal(db_session):
    """Insert a withdrawal row directly, bypassing submission checks."""
    async def _insert(
        account_id: int,
        amount,
        status: WithdrawalStatus = WithdrawalStatus.PENDING,
        channel: WithdrawalChannel = WithdrawalChannel.CASH,
        phone_number: str = None
    ) -> WithdrawalRequest:
        withdrawal = WithdrawalRequest(
            user_id=account_id,
            request_ref=f"WR-TEST-{uuid.uuid4().hex[:6].upper()}",
            amount=Decimal(str(amount)),
            channel=channel,
            phone_number=phone_number,
            status=status,
        )
        db_session.add(withdrawal)
        await db_session.commit()
        return withdrawal
    return _insert
