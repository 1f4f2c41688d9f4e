from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.cache import CacheService
from article_api.database import get_db
from article_api.dependencies import get_cache
from article_api.models import Article, Author
from article_api.schemas import MetricsResponse

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    total_articles = (await db.execute(select(func.count()).select_from(Article))).scalar_one()

    total_authors = (await db.execute(select(func.count()).select_from(Author))).scalar_one()

    return MetricsResponse(
        total_articles=total_articles,
        total_authors=total_authors,
        cache_info=cache.stats,
    )
