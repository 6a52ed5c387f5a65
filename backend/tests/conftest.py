"""
Shared pytest configuration for backend tests.

By default every test gets a fresh SQLite database file (``sqlite+aiosqlite``)
in its temporary directory. Set TEST_DATABASE_URL to run against PostgreSQL
instead.

SAFETY: a non-SQLite TEST_DATABASE_URL is REFUSED unless its database name
contains the substring "test", because tables are dropped after each test.
"""

import os

# Must be set before the application modules are imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("ENABLE_EMAIL", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from backend.database.db import Base, get_db_session  # noqa: E402
from backend.database.models import UserRole  # noqa: E402
from backend.services.live_game_manager import LiveGameManager  # noqa: E402
from backend.services import live_game_manager  # noqa: E402
from backend.tests.factories import create_user  # noqa: E402


def _resolve_test_database_url(tmp_path) -> str:
    """Build the test database URL with safety checks.

    Raises ``RuntimeError`` if a server database URL does not point to a
    database whose name contains "test".
    """
    url = os.getenv("TEST_DATABASE_URL", "")
    if not url:
        return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"

    # ── Safety gate: database name MUST contain "test" ──────────────────
    db_name = url.rsplit("/", 1)[-1].split("?")[0]  # strip query params
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n"
            f"{'=' * 70}"
        )
    return url


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine with all tables for one test."""
    # NullPool: each session gets its own connection, like separate requests
    engine = create_async_engine(_resolve_test_database_url(tmp_path), poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(test_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker):
    """A session for calling services directly."""
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture(autouse=True)
def fresh_live_game_manager(monkeypatch):
    """Give every test its own live game manager."""
    manager = LiveGameManager()
    monkeypatch.setattr(live_game_manager, "_live_game_manager", manager)
    return manager


@pytest_asyncio.fixture
async def client(session_maker):
    """HTTP client driving the app against the test database."""
    from backend.api.main import app

    async def _override_get_db_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_get_db_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def moderator(session_maker):
    return await create_user(session_maker, "moderator1", UserRole.MODERATOR)


@pytest_asyncio.fixture
async def admin(session_maker):
    return await create_user(session_maker, "admin1", UserRole.ADMIN)


@pytest_asyncio.fixture
async def regular_user(session_maker):
    return await create_user(session_maker, "player1", UserRole.USER)
