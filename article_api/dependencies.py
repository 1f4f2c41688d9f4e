from fastapi import Query, Request

from article_api.cache import CacheService
from article_api.repositories import ArticleRepository
from article_api.schemas import DEFAULT_LIMIT, ListParams


class ArticleListQuery:
    """
    FastAPI dependency that parses the listing query string.

    Usage in a router::

        @router.get("/articles")
        async def list_articles(query: ArticleListQuery = Depends()):
            ...

    Attributes
    ----------
    search:
        Case-insensitive substring matched against title or body.
    author:
        Case-insensitive substring matched against the author's name.
    page, limit:
        Passed through as given; out-of-range values are coerced by the
        repository rather than rejected here.
    """

    def __init__(
        self,
        search: str = Query("", description="Substring to find in title or body."),
        author: str = Query("", description="Substring to find in the author's name."),
        page: int = Query(1, description="Page number (1-based)."),
        limit: int = Query(
            DEFAULT_LIMIT,
            description="Items per page (coerced to 1..100, default 10).",
        ),
    ) -> None:
        self.search = search
        self.author = author
        self.page = page
        self.limit = limit

    def to_params(self) -> ListParams:
        return ListParams(
            search=self.search,
            author_name=self.author,
            page=self.page,
            limit=self.limit,
        )


def get_article_repository(request: Request) -> ArticleRepository:
    """Return the repository built during application startup."""
    return request.app.state.article_repository


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache
