# Repositories package.
#
# article_repository: filtered/paginated article listing, article
#                      creation with cache population, author lookup.
#
# Repositories own their sessions (one per operation) and receive the
# session factory and cache at construction, so the same instance is
# shared by every request.
from article_api.repositories.article_repository import ArticleRepository

__all__ = ["ArticleRepository"]
