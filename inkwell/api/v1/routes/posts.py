from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inkwell.api.v1 import dependencies
from inkwell.config import Settings
from inkwell.core.errors import InvalidInputError, PostNotFoundError
from inkwell.database import get_db, get_session_factory
from inkwell.models.user import User
from inkwell.schemas.post import Post, PostCreate, PostUpdate, SuccessMessage
from inkwell.schemas.search import SearchQuery
from inkwell.services.post import PostService, record_view
from inkwell.services.search import SearchService

router = APIRouter()

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def get_search_query(request: Request) -> SearchQuery:
    """Read the search query from either a JSON or a form-encoded body."""
    if request.headers.get("content-type", "").startswith(FORM_CONTENT_TYPES):
        data = dict(await request.form())
    else:
        try:
            data = await request.json()
        except ValueError:
            raise InvalidInputError("Request body must be JSON or form data")
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be an object with a query field")
    try:
        return SearchQuery.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors())


# Public Endpoints

@router.get("/", response_model=List[Post])
async def read_posts(service: PostService = Depends(dependencies.get_post_service)) -> Any:
    """
    List published posts, newest first.
    """
    return await service.get_all(published_only=True)


@router.post("/search", response_model=List[Post])
async def search_posts(
    search: SearchQuery = Depends(get_search_query),
    settings: Settings = Depends(dependencies.get_settings),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Fuzzy search published posts by title and content.
    """
    service = SearchService(db, threshold=settings.SEARCH_SIMILARITY_THRESHOLD)
    result = await service.search(search.query)
    return result.posts


@router.get("/{slug}", response_model=Post)
async def read_post(
    slug: str,
    background_tasks: BackgroundTasks,
    service: PostService = Depends(dependencies.get_post_service),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    user: Optional[User] = Depends(dependencies.get_optional_user)
) -> Any:
    """
    Get a post by slug. Drafts are only visible to their author.
    """
    if slug == "new":
        raise InvalidInputError("There can't be a post called 'new'.")
    post = await service.get(slug)
    if not post.is_published and (user is None or user.id != post.author_id):
        raise PostNotFoundError()
    background_tasks.add_task(record_view, session_factory, post.slug)
    return post


# Author Endpoints

@router.post("/", response_model=Post)
async def create_post(
    post_in: PostCreate,
    service: PostService = Depends(dependencies.get_post_service),
    user: User = Depends(dependencies.get_current_user)
) -> Any:
    """
    Create a new, unpublished post.
    """
    return await service.insert(user, post_in)


@router.put("/{slug}", response_model=Post)
async def update_post(
    slug: str,
    post_in: PostUpdate,
    service: PostService = Depends(dependencies.get_post_service),
    user: User = Depends(dependencies.get_current_user)
) -> Any:
    """
    Update a post's title or content.
    """
    post = await service.get(slug)
    return await service.update(user, post, post_in)


@router.post("/{slug}/publish", response_model=SuccessMessage)
async def publish_post(
    slug: str,
    service: PostService = Depends(dependencies.get_post_service),
    user: User = Depends(dependencies.get_current_user)
) -> Any:
    """
    Publish a post, making it appear in listings and search.
    """
    post = await service.get(slug)
    await service.publish(user, post)
    return {"success": "Post published"}


@router.post("/{slug}/unpublish", response_model=SuccessMessage)
async def unpublish_post(
    slug: str,
    service: PostService = Depends(dependencies.get_post_service),
    user: User = Depends(dependencies.get_current_user)
) -> Any:
    """
    Unpublish a post, removing it from listings and search.
    """
    post = await service.get(slug)
    await service.unpublish(user, post)
    return {"success": "Post unpublished"}


@router.delete("/{slug}", response_model=SuccessMessage)
async def delete_post(
    slug: str,
    service: PostService = Depends(dependencies.get_post_service),
    user: User = Depends(dependencies.get_current_user)
) -> Any:
    """
    Delete a post.
    """
    post = await service.get(slug)
    await service.delete(user, post)
    return {"success": "Post deleted"}
