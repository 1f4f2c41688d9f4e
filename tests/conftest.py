"""
Test infrastructure for the Article API.

Strategy
--------
- SQLite in-memory via aiosqlite replaces Postgres, so the suite needs no
  running database.  StaticPool keeps every session on the one connection
  that owns the in-memory database.
- A fresh engine (and schema) is built for each test and disposed after,
  so tests never share rows.
- The cache is the in-process ``InMemoryCacheService``; the repository
  only sees the ``CacheService`` interface, so no Redis is needed.
- The app's repository, session and cache dependencies are overridden;
  the lifespan (which would connect to Redis) is never run by
  ``ASGITransport``.
"""
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from article_api.cache import InMemoryCacheService
from article_api.database import Base, get_db
from article_api.dependencies import get_article_repository, get_cache
from article_api.main import app
from article_api.middleware import install_query_counter
from article_api.models import Author
from article_api.repositories import ArticleRepository

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    engine_test = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    install_query_counter(engine_test)
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine_test
    await engine_test.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def authors(session_factory):
    """Preload the two authors the scenarios refer to."""
    async with session_factory() as session:
        session.add_all([Author(id="a1", name="Ada"), Author(id="a2", name="Grace")])
        await session.commit()
    return {"a1": "Ada", "a2": "Grace"}


# ---------------------------------------------------------------------------
# Cache + repository
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def memory_cache():
    cache = InMemoryCacheService()
    yield cache
    await cache.close()


@pytest_asyncio.fixture
async def repository(session_factory, memory_cache) -> ArticleRepository:
    return ArticleRepository(session_factory, memory_cache)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def async_client(session_factory, repository, memory_cache):
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport,
    with every dependency pointing at this test's database and cache.
    """
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_article_repository] = lambda: repository
    app.dependency_overrides[get_cache] = lambda: memory_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
