"""
Centralized Test Configuration.
"""

import asyncio
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from freight_backend.app.main import app
from freight_backend.app.db.session import get_db, Base
from freight_backend.app.core.jwt import create_access_token
from freight_backend.app.models.enums import UserRole
from freight_backend.app.models.user import User
from freight_backend.app.services.cache import RateCache
import freight_backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", set_sqlite_pragma)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self, fail_publish: bool = False, hang_publish: bool = False):
        self.store = {}
        self.published = []
        self.fail_publish = fail_publish
        self.hang_publish = hang_publish
        self._closed = False

    async def ping(self):
        return not self._closed

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def publish(self, channel, message):
        if self.hang_publish:
            await asyncio.sleep(3600)
        if self.fail_publish or self._closed:
            raise ConnectionError("redis unavailable")
        self.published.append((channel, message))
        return 1

    async def flushdb(self):
        self.store = {}
        self.published = []

    async def aclose(self):
        self._closed = True


@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    """Patch the global redis client used by the status broadcaster."""
    client = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", client)
    return client


@pytest.fixture
def rate_cache():
    cache = RateCache(ttl_seconds=300)
    cache.initialize()
    yield cache
    cache.teardown()


@pytest.fixture
async def client(session_factory, rate_cache):
    """Async client for testing. The lifespan does not run under ASGITransport."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_cache = rate_cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


async def _make_user(db_session, username: str, role: UserRole, is_active: bool = True) -> User:
    user = User(
        email=f"{username}@freight.test",
        username=username,
        role=role,
        is_active=is_active,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    # Detach so a service-side rollback on this session cannot expire the
    # fixture's loaded attributes (which would force a lazy load outside the greenlet).
    db_session.expunge(user)
    return user


def _auth_headers(user: User) -> dict:
    token = create_access_token(
        data={"sub": user.username, "user_id": user.id, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_user(db_session):
    return await _make_user(db_session, "admin", UserRole.ADMIN)


@pytest.fixture
async def staff_user(db_session):
    return await _make_user(db_session, "warehouse", UserRole.STAFF)


@pytest.fixture
async def customer(db_session):
    return await _make_user(db_session, "customer", UserRole.CUSTOMER)


@pytest.fixture
async def other_customer(db_session):
    return await _make_user(db_session, "other_customer", UserRole.CUSTOMER)


@pytest.fixture
def auth_headers():
    """Bearer headers for a user row."""
    return _auth_headers


@pytest.fixture
def make_user(db_session):
    async def factory(username: str, role: UserRole = UserRole.CUSTOMER, is_active: bool = True) -> User:
        return await _make_user(db_session, username, role, is_active)
    return factory
