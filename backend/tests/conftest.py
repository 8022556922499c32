"""Shared test fixtures."""

from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import app.models  # noqa: F401
from app.core.database import Base, build_engine, build_session_factory
from app.generation.client import GenerationClient
from app.schemas.roadmap import Roadmap, TrackableItem
from app.services.change_feed import ChangeFeed
from app.services.local_cache import LocalCache
from app.services.persistence_coordinator import DualStorePersistence


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite database in a temporary file with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(db_engine)


@pytest_asyncio.fixture
async def test_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def local_cache(tmp_path) -> LocalCache:
    return LocalCache(tmp_path / "cache")


@pytest.fixture
def change_feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def remote_persistence(
    session_factory: async_sessionmaker[AsyncSession],
    local_cache: LocalCache,
    change_feed: ChangeFeed,
) -> DualStorePersistence:
    """Persistence for an authenticated user (id 1)."""
    return DualStorePersistence(
        user_id=1,
        local_cache=local_cache,
        session_factory=session_factory,
        feed=change_feed,
    )


@pytest.fixture
def local_persistence(local_cache: LocalCache, change_feed: ChangeFeed) -> DualStorePersistence:
    """Persistence for an anonymous caller."""
    return DualStorePersistence(user_id=None, local_cache=local_cache, feed=change_feed)


@pytest.fixture
def make_roadmap() -> Callable[..., Roadmap]:
    """Build a step roadmap with the first ``completed`` steps done."""

    def _make(total: int = 4, completed: int = 0, title: str = "Backend Developer") -> Roadmap:
        return Roadmap(
            title=title,
            category="engineering",
            items=[
                TrackableItem(
                    label=f"Step {i + 1}",
                    order=i + 1,
                    est_time="1 week",
                    completed=i < completed,
                )
                for i in range(total)
            ],
        )

    return _make


@pytest.fixture
def make_generation_client() -> Callable[[str], GenerationClient]:
    """Build a client whose service always answers with the given text."""

    def _make(text: str = "") -> GenerationClient:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]}
            )

        async def no_sleep(delay: float) -> None:
            pass

        return GenerationClient(
            api_key="test-key",
            base_url="https://generation.test/v1beta",
            model="gemini-test",
            transport=httpx.MockTransport(handler),
            sleep=no_sleep,
        )

    return _make
