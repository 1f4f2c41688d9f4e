import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from article_api import __version__
from article_api.cache import create_cache_service
from article_api.config import settings
from article_api.database import async_session, engine
from article_api.middleware import TimingMiddleware, install_query_counter
from article_api.migrations import run_migrations
from article_api.repositories import ArticleRepository
from article_api.routers import articles, authors, metrics

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging()
    if settings.RUN_MIGRATIONS:
        # alembic's env.py drives its own event loop.
        await asyncio.to_thread(run_migrations)
    cache = await create_cache_service(settings)
    app.state.cache = cache
    app.state.article_repository = ArticleRepository(
        async_session, cache, article_ttl=settings.ARTICLE_CACHE_TTL
    )
    logger.info("%s started (env=%s)", settings.APP_NAME, settings.APP_ENV)
    yield
    # Shutdown
    await cache.close()
    await engine.dispose()
    logger.info("%s stopped", settings.APP_NAME)

app = FastAPI(
    title="Article API",
    description="Article listing and creation over a cache-aside repository",
    version=__version__,
    lifespan=lifespan,
)

# Middleware
install_query_counter(engine)
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(articles.router)
app.include_router(authors.router)
app.include_router(metrics.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": __version__}
