"""Pytest configuration and fixtures for TokenVest backend tests"""
import os
import pytest
import pytest_asyncio
from typing import AsyncGenerator
from dotenv import load_dotenv

# Load environment variables
load_dotenv()
# The application engine is never connected in tests; keep it off PostgreSQL anyway
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./tokenvest_app.db")

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from tokenvest.main import app
from tokenvest.api.deps import get_clock, get_guard, get_ledger
from tokenvest.config import get_settings
from tokenvest.models.database import Base, get_db
from tokenvest.services.asset_ledger import InMemoryAssetLedger
from tokenvest.services.engine_guard import EngineGuard
from tokenvest.services.vesting_engine import VestingEngine

settings = get_settings()

ADMIN = settings.admin_address
CUSTODY = settings.custody_address
BENEFICIARY = "0xBeneficiary"
OTHER = "0xSomeoneElse"
ASSET = "VEST"

DAY = 24 * 60 * 60
START = 1_700_000_000
ADMIN_FUNDS = 1_000_000


class FakeClock:
    """Settable engine clock"""

    def __init__(self, now: int = START):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def set(self, now: int) -> None:
        self.now = now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Fresh SQLite database per test"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tokenvest.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def guard():
    return EngineGuard()


@pytest.fixture
def ledger():
    """Ledger where the administrator holds ASSET and has approved custody for all of it"""
    ledger = InMemoryAssetLedger(default_decimals=18)
    ledger.mint(ASSET, ADMIN, ADMIN_FUNDS)
    ledger.approve(ASSET, ADMIN, CUSTODY, ADMIN_FUNDS)
    return ledger


@pytest.fixture
def make_engine(ledger, guard, clock):
    """Build an engine over any session, sharing ledger, guard and clock"""

    def _make(session: AsyncSession, **overrides) -> VestingEngine:
        kwargs = {"guard": guard, "clock": clock, "settings": settings}
        kwargs.update(overrides)
        return VestingEngine(session, ledger, **kwargs)

    return _make


@pytest.fixture
def engine(db_session, make_engine) -> VestingEngine:
    return make_engine(db_session)


@pytest_asyncio.fixture
async def supported_engine(engine) -> VestingEngine:
    """Engine with ASSET already on the allow-list"""
    await engine.add_supported_asset(ADMIN, ASSET)
    return engine


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, ledger, guard, clock) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client"""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_guard] = lambda: guard
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def as_admin() -> dict:
    return {"X-Caller-Address": ADMIN}


def as_caller(address: str) -> dict:
    return {"X-Caller-Address": address}
