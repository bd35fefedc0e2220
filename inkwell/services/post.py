import re
import unicodedata
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inkwell.core.errors import InternalError, PostNotFoundError, UnauthorizedError
from inkwell.core.logging import get_logger
from inkwell.models.post import Post
from inkwell.models.user import User
from inkwell.schemas.post import PostCreate, PostUpdate
from inkwell.services.rendering import excerpt, render_markdown

logger = get_logger(__name__)

RESERVED_SLUGS = frozenset({"new", "search"})
EXCERPT_LENGTH = 150


def slugify(title: str) -> str:
    """URL-safe slug derived from a post title."""
    value = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^\w\s-]", "", value.lower())
    value = re.sub(r"[\s_-]+", "-", value).strip("-")
    return value or "post"


class PostService:
    def __init__(self, db: AsyncSession, excerpt_length: int = EXCERPT_LENGTH):
        self.db = db
        self.excerpt_length = excerpt_length

    async def get_all(self, published_only: bool = False) -> Sequence[Post]:
        query = select(Post).order_by(Post.created_at.desc())
        if published_only:
            query = query.where(Post.is_published == True)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("failed to load posts", error=str(e))
            raise InternalError() from e
        return result.scalars().all()

    async def get_by_author(self, user: User) -> Sequence[Post]:
        query = select(Post).where(Post.author_id == user.id).order_by(Post.created_at.desc())
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("failed to load posts", author=user.username, error=str(e))
            raise InternalError() from e
        return result.scalars().all()

    async def get(self, slug: str) -> Post:
        try:
            result = await self.db.execute(select(Post).where(Post.slug == slug))
        except SQLAlchemyError as e:
            logger.error("failed to load post", slug=slug, error=str(e))
            raise InternalError() from e
        post = result.scalar_one_or_none()
        if post is None:
            raise PostNotFoundError()
        return post

    async def insert(self, user: User, post_in: PostCreate) -> Post:
        """Create an unpublished post owned by user."""
        content = render_markdown(post_in.markdown)
        post = Post(
            title=post_in.title,
            slug=await self._unique_slug(slugify(post_in.title)),
            markdown=post_in.markdown,
            content=content,
            excerpt=excerpt(content, self.excerpt_length),
            is_published=False,
            view_count=0,
            author_id=user.id,
        )
        self.db.add(post)
        await self._commit(post)
        logger.info("post created", slug=post.slug, author=user.username)
        return post

    async def update(self, user: User, post: Post, post_in: PostUpdate) -> Post:
        self.authorize(user, post)
        update_data = post_in.model_dump(exclude_unset=True, exclude_none=True)
        if "markdown" in update_data:
            post.content = render_markdown(update_data["markdown"])
            post.excerpt = excerpt(post.content, self.excerpt_length)
        for field, value in update_data.items():
            setattr(post, field, value)
        await self._commit(post)
        return post

    async def publish(self, user: User, post: Post) -> Post:
        return await self._set_published(user, post, True)

    async def unpublish(self, user: User, post: Post) -> Post:
        return await self._set_published(user, post, False)

    async def delete(self, user: User, post: Post) -> None:
        self.authorize(user, post)
        slug = post.slug
        try:
            await self.db.delete(post)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("failed to delete post", slug=slug, error=str(e))
            raise InternalError() from e
        logger.info("post deleted", slug=slug, author=user.username)

    async def increment_view_count(self, slug: str) -> None:
        await self.db.execute(
            update(Post)
            .where(Post.slug == slug)
            .values(view_count=Post.view_count + 1)
        )
        await self.db.commit()

    async def _set_published(self, user: User, post: Post, published: bool) -> Post:
        self.authorize(user, post)
        post.is_published = published
        await self._commit(post)
        logger.info("post publish state changed", slug=post.slug, published=published)
        return post

    @staticmethod
    def authorize(user: User, post: Post) -> None:
        if post.author_id != user.id:
            raise UnauthorizedError()

    async def _unique_slug(self, base: str) -> str:
        result = await self.db.execute(
            select(Post.slug).where((Post.slug == base) | Post.slug.like(f"{base}-%"))
        )
        taken = set(result.scalars().all()) | RESERVED_SLUGS
        slug, suffix = base, 2
        while slug in taken:
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    async def _commit(self, post: Post) -> None:
        slug = post.slug
        try:
            await self.db.commit()
            await self.db.refresh(post)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("failed to save post", slug=slug, error=str(e))
            raise InternalError() from e


async def record_view(session_factory: async_sessionmaker[AsyncSession], slug: str) -> None:
    """Bump a post's view count outside the request that read it.

    Runs as a background task after the response is sent, so failures are
    logged and dropped.
    """
    try:
        async with session_factory() as session:
            await PostService(session).increment_view_count(slug)
    except Exception:
        logger.exception("failed to record post view", slug=slug)
