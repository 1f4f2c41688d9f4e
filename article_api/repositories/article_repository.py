"""
Article repository: cache-aside orchestration over the article store.

Design notes
------------
- Reads never touch the cache.  ``list_articles`` always reaches the
  store; only ``create_article`` writes to the cache (per-article entry)
  and invalidates the ``articles:list`` sentinel.
- Filter values are always bound parameters (``ilike`` with a bound
  ``%needle%`` whose own ``%``, ``_`` and ``\\`` are escaped); user
  input never becomes SQL text or a wildcard.
- The count and page queries run in separate statements without an
  enclosing transaction, so under concurrent inserts ``total`` and the
  page may come from different snapshots.  Acceptable for a listing.
- ``create_article`` commits the insert before the author re-fetch and
  the cache writes.  Cache population is best-effort: a ``CacheError``
  is logged and dropped, never surfaced to the caller.
"""
import logging
import uuid
from collections.abc import Awaitable
from datetime import datetime, timezone

from sqlalchemy import and_, func, insert, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from article_api import models
from article_api.cache import DEFAULT_TTL_SECONDS, CacheService
from article_api.errors import AuthorNotFound, CacheError, StoreError
from article_api.schemas import (
    Article,
    ArticleListItem,
    Author,
    CreateArticleRequest,
    ListParams,
    ListResult,
)

logger = logging.getLogger(__name__)

ARTICLE_KEY_PREFIX = "article:"
LIST_SENTINEL_KEY = "articles:list"
LIKE_ESCAPE = "\\"


def article_cache_key(article_id: str) -> str:
    return f"{ARTICLE_KEY_PREFIX}{article_id}"


def new_article_id() -> str:
    """Return a collision-resistant identifier for a new article."""
    return str(uuid.uuid4())


def contains_pattern(needle: str) -> str:
    """Return a LIKE pattern matching *needle* literally anywhere in the value."""
    escaped = (
        needle.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def build_filters(params: ListParams) -> list:
    """
    Return the WHERE predicates for *params*, one per non-empty filter.

    Both filters are case-insensitive substring matches; ``search`` looks
    at title or body, ``author_name`` at the joined author's name.
    """
    predicates = []
    if params.search:
        needle = contains_pattern(params.search)
        predicates.append(
            or_(
                models.Article.title.ilike(needle, escape=LIKE_ESCAPE),
                models.Article.body.ilike(needle, escape=LIKE_ESCAPE),
            )
        )
    if params.author_name:
        predicates.append(
            models.Author.name.ilike(contains_pattern(params.author_name), escape=LIKE_ESCAPE)
        )
    return predicates


def _with_filters(stmt, predicates: list):
    if predicates:
        stmt = stmt.where(and_(*predicates))
    return stmt


class ArticleRepository:
    """
    Stateless repository over a pooled session factory and a cache.

    Depends only on the ``CacheService`` interface; which backend sits
    behind it is decided at construction time.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: CacheService,
        article_ttl: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache
        self._article_ttl = article_ttl

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_articles(self, params: ListParams) -> ListResult:
        """
        Return one page of articles matching *params*, newest first.

        Two statements are issued: a COUNT over the filtered join, then the
        page itself with LIMIT/OFFSET.  ``body`` is not selected.
        """
        params = params.normalized()
        predicates = build_filters(params)

        count_q = _with_filters(
            select(func.count())
            .select_from(models.Article)
            .outerjoin(models.Author, models.Article.author_id == models.Author.id),
            predicates,
        )
        page_q = (
            _with_filters(
                select(
                    models.Article.id,
                    models.Article.author_id,
                    models.Article.title,
                    models.Article.created_at,
                    models.Author.id.label("author_ref"),
                    models.Author.name.label("author_name"),
                )
                .select_from(models.Article)
                .outerjoin(models.Author, models.Article.author_id == models.Author.id),
                predicates,
            )
            .order_by(models.Article.created_at.desc())
            .limit(params.limit)
            .offset(params.offset)
        )

        try:
            async with self._session_factory() as session:
                total: int = (await session.execute(count_q)).scalar_one()
                rows = (await session.execute(page_q)).all()
                articles = [_row_to_list_item(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to list articles: {exc}") from exc

        return ListResult(
            articles=articles,
            total=total,
            page=params.page,
            limit=params.limit,
        )

    async def get_author_by_id(self, author_id: str) -> Author:
        """Return the author with *author_id* or raise ``AuthorNotFound``."""
        try:
            async with self._session_factory() as session:
                return await self._fetch_author(session, author_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to get author: {exc}") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_article(self, request: CreateArticleRequest) -> Article:
        """
        Persist a new article and return it with its author embedded.

        Raises ``AuthorNotFound`` (nothing written) when ``author_id`` does
        not exist.  After the insert commits, the article is cached under
        ``article:<id>`` and the list sentinel is deleted; failures there
        are logged only.
        """
        try:
            async with self._session_factory() as session:
                await self._fetch_author(session, request.author_id)

                stmt = (
                    insert(models.Article)
                    .values(
                        id=new_article_id(),
                        author_id=request.author_id,
                        title=request.title,
                        body=request.body,
                        created_at=datetime.now(timezone.utc),
                    )
                    .returning(
                        models.Article.id,
                        models.Article.author_id,
                        models.Article.title,
                        models.Article.body,
                        models.Article.created_at,
                    )
                )
                row = (await session.execute(stmt)).one()
                await session.commit()

                author = await self._fetch_author(session, request.author_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to create article: {exc}") from exc

        article = Article(
            id=row.id,
            author_id=row.author_id,
            title=row.title,
            body=row.body,
            created_at=row.created_at,
            author=author,
        )

        key = article_cache_key(article.id)
        await _best_effort(
            "set", key, self._cache.set_with_ttl(key, article, self._article_ttl)
        )
        await _best_effort("delete", LIST_SENTINEL_KEY, self._cache.delete(LIST_SENTINEL_KEY))
        return article

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _fetch_author(session: AsyncSession, author_id: str) -> Author:
        result = await session.execute(
            select(models.Author.id, models.Author.name).where(models.Author.id == author_id)
        )
        row = result.one_or_none()
        if row is None:
            raise AuthorNotFound(author_id)
        return Author(id=row.id, name=row.name)


def _row_to_list_item(row) -> ArticleListItem:
    author = None
    if row.author_ref is not None:
        author = Author(id=row.author_ref, name=row.author_name)
    return ArticleListItem(
        id=row.id,
        author_id=row.author_id,
        title=row.title,
        created_at=row.created_at,
        author=author,
    )


async def _best_effort(action: str, key: str, op: Awaitable[None]) -> None:
    """Await a cache side-effect, logging and discarding any ``CacheError``."""
    try:
        await op
    except CacheError as exc:
        logger.warning("Cache %s failed for key=%r: %s", action, key, exc)
