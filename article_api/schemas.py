from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


# --- Author ---

class Author(BaseModel):
    id: str
    name: str
    model_config = ConfigDict(from_attributes=True)


# --- Article ---

class CreateArticleRequest(BaseModel):
    author_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)


class ArticleListItem(BaseModel):
    """Listing projection of an article; ``body`` is left out to bound payload size."""

    id: str
    author_id: str
    title: str
    created_at: datetime
    author: Author | None = None
    model_config = ConfigDict(from_attributes=True)


class Article(ArticleListItem):
    body: str


# --- Listing ---

class ListParams(BaseModel):
    search: str = ""
    author_name: str = ""
    page: int = 1
    limit: int = DEFAULT_LIMIT

    def normalized(self) -> "ListParams":
        """
        Return a copy with *page* coerced to >= 1 and *limit* coerced to
        ``[1, MAX_LIMIT]`` (``DEFAULT_LIMIT`` when unset or <= 0).
        """
        page = self.page if self.page >= 1 else 1
        if self.limit <= 0:
            limit = DEFAULT_LIMIT
        else:
            limit = min(self.limit, MAX_LIMIT)
        return self.model_copy(update={"page": page, "limit": limit})

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ListResult(BaseModel):
    articles: list[ArticleListItem]
    total: int
    page: int
    limit: int


# --- Metrics ---

class MetricsResponse(BaseModel):
    # cache_info: backend, writes, invalidations, hits, misses, hit_rate.
    # Articles are cached on create and never read back, so hits/misses stay 0.
    total_articles: int
    total_authors: int
    cache_info: dict = {}
