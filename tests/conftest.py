"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-at-least-32-bytes")
os.environ.setdefault("APP_ENV", "test")

from collections.abc import AsyncGenerator, Callable  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from langchain_core.language_models import BaseChatModel  # noqa: E402
from langchain_core.messages import AIMessage  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from chat_memory.core.config import settings  # noqa: E402
from chat_memory.core.database import Base  # noqa: E402
from chat_memory.core.rate_limit import limiter  # noqa: E402
from chat_memory.models.chat_session import ChatSession  # noqa: E402, F401
from chat_memory.repositories.record_store import SqlRecordStore  # noqa: E402
from tests.fakes import InMemoryRecordStore  # noqa: E402

# --- Test DB (SQLite in-memory) ---

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(autouse=True)
async def setup_db() -> AsyncGenerator[None, None]:
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    """Start every test with empty rate limit counters."""
    limiter.reset()


async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session."""
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# --- Token helpers ---


def make_token(owner_id: str, expires_in: timedelta = timedelta(minutes=30)) -> str:
    """Sign an access token the way the identity provider would."""
    now = datetime.now(UTC)
    payload = {"sub": owner_id, "iat": now, "exp": now + expires_in}
    return jwt.encode(
        payload,
        settings.auth.secret_key.get_secret_value(),
        algorithm=settings.auth.algorithm,
    )


@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Expose ``make_token`` to tests that need custom expiry."""
    return make_token


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Factory producing Authorization headers for an owner id."""

    def _headers(owner_id: str = "owner-1") -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(owner_id)}"}

    return _headers


# --- App override & client fixtures ---


def _get_app():  # type: ignore[no-untyped-def]
    """Import app lazily and apply overrides."""
    from chat_memory.core.database import get_async_session as original_dep
    from chat_memory.main import app

    app.dependency_overrides[original_dep] = override_get_async_session
    return app


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client without credentials."""
    application = _get_app()
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def authed_client(
    auth_headers: Callable[[str], dict[str, str]],
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client authenticated as ``owner-1``."""
    application = _get_app()
    transport = ASGITransport(app=application)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers=auth_headers("owner-1")
    ) as ac:
        yield ac


# --- Stores for service tests ---


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return test_session_factory


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a raw async session for store tests."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def sql_store(db_session: AsyncSession) -> SqlRecordStore:
    """SqlRecordStore bound to the test DB session."""
    return SqlRecordStore(db_session)


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    """Fresh in-memory RecordStore."""
    return InMemoryRecordStore()


# --- Mock LLM ---


@pytest.fixture
def mock_llm() -> MagicMock:
    """Create a mock LLM for testing."""
    mock = MagicMock(spec=BaseChatModel)
    mock.ainvoke = AsyncMock(return_value=AIMessage(content="Test response"))
    return mock

