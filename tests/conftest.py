"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite; StaticPool makes every session share
  the single connection that holds the in-memory database.
- Foreign keys are switched on for that connection so comment and post
  deletes cascade the same way they do on PostgreSQL.
- The app's get_db dependency is overridden so every request uses the
  test session factory.
- All tables are created before each test and dropped after it.
- Refresh-token cookies are passed explicitly as a ``Cookie`` header
  rather than through the client's cookie jar, so each request states
  exactly which session it presents.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog_api.config import Settings
from blog_api.database import Base, enable_sqlite_foreign_keys, get_db
from blog_api.main import app
from blog_api.middleware import install_query_counter
from tests.helpers import refresh_cookie_from

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)
enable_sqlite_foreign_keys(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live AsyncSession for service-level tests."""
    async with async_session_test() as session:
        yield session


@pytest.fixture
def session_factory():
    """Factory for short-lived sessions used to inspect rows written over HTTP."""
    return async_session_test


@pytest.fixture
def config() -> Settings:
    """Settings for service-level tests, independent of the environment."""
    return Settings(
        ACCESS_TOKEN_SECRET="test-access-secret",
        REFRESH_TOKEN_SECRET="test-refresh-secret",
        MAX_LOGGED_DEVICES=3,
    )


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def login_as(async_client: AsyncClient):
    """
    Factory fixture: sign a user up (unless it exists) and log in.

    Returns a dict with ``id``, ``token``, ``refresh`` and ready-to-use
    ``headers`` (bearer token + refresh cookie).
    """

    async def _login(
        user_name: str,
        role: str = "User",
        ip: str = "10.0.0.1",
        password: str = "secret123",
    ) -> dict:
        await async_client.post("/auth/signup", json={
            "firstName": "Test",
            "userName": user_name,
            "email": f"{user_name.lower()}@example.com",
            "password": password,
            "role": role,
        })
        resp = await async_client.post(
            "/auth/login",
            json={"userName": user_name, "password": password},
            headers={"X-Forwarded-For": ip},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        refresh = refresh_cookie_from(resp)
        async_client.cookies.clear()
        return {
            "id": body["userData"]["id"],
            "token": body["token"],
            "refresh": refresh,
            "headers": {
                "Authorization": f"Bearer {body['token']}",
                "Cookie": f"jwt={refresh}",
                "X-Forwarded-For": ip,
            },
        }

    return _login
