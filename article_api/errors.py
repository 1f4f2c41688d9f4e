"""
Error taxonomy shared by the repository, cache and transport layers.

``AuthorNotFound`` and ``StoreError`` cross the repository boundary so the
router can pick a response class.  ``CacheError`` and its subclasses never
leave the repository: cache failures are logged where they happen.
Malformed request payloads are rejected by pydantic before reaching any of
this code.
"""


class ArticleAPIError(Exception):
    """Base class for every error raised by this package."""


class AuthorNotFound(ArticleAPIError):
    def __init__(self, author_id: str) -> None:
        super().__init__(f"author not found: {author_id!r}")
        self.author_id = author_id


class StoreError(ArticleAPIError):
    """Any relational-store failure: connection, query or row decoding."""


class CacheError(ArticleAPIError):
    """Any cache failure."""


class CacheMiss(CacheError):
    """The key is absent or has expired."""

    def __init__(self, key: str) -> None:
        super().__init__(f"key not found: {key!r}")
        self.key = key


class CacheDecodeError(CacheError):
    """The stored payload cannot be decoded into the requested shape."""
