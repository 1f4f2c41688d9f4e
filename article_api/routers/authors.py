from fastapi import APIRouter, Depends, HTTPException

from article_api.dependencies import get_article_repository
from article_api.errors import AuthorNotFound, StoreError
from article_api.repositories import ArticleRepository
from article_api.schemas import Author

router = APIRouter(prefix="/api/v1/authors", tags=["authors"])

@router.get("/{author_id}", response_model=Author)
async def get_author(author_id: str, repo: ArticleRepository = Depends(get_article_repository)):
    try:
        return await repo.get_author_by_id(author_id)
    except AuthorNotFound:
        raise HTTPException(status_code=404, detail="Author not found")
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to get author")
