import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Response

from article_api.dependencies import ArticleListQuery, get_article_repository
from article_api.errors import AuthorNotFound, StoreError
from article_api.repositories import ArticleRepository
from article_api.schemas import Article, CreateArticleRequest, ListResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])

@router.get("", response_model=ListResult)
async def list_articles(
    response: Response,
    query: ArticleListQuery = Depends(),
    repo: ArticleRepository = Depends(get_article_repository),
):
    try:
        result = await repo.list_articles(query.to_params())
    except StoreError as exc:
        logger.error("List articles failed: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to list articles")

    response.headers["X-Total-Count"] = str(result.total)
    response.headers["X-Page"] = str(result.page)
    response.headers["X-Limit"] = str(result.limit)
    response.headers["X-Total-Pages"] = str(math.ceil(result.total / result.limit))
    return result

@router.post("", status_code=201, response_model=Article)
async def create_article(
    data: CreateArticleRequest,
    repo: ArticleRepository = Depends(get_article_repository),
):
    try:
        return await repo.create_article(data)
    except AuthorNotFound:
        raise HTTPException(status_code=400, detail="Author not found")
    except StoreError as exc:
        logger.error("Create article failed: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to create article")
