from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.config import Settings
from inkwell.core.security import create_access_token, get_password_hash
from inkwell.database import Base
from inkwell.main import create_app
from inkwell.models.post import Post
from inkwell.models.user import User
from inkwell.schemas.post import PostCreate
from inkwell.services.post import PostService

TEST_PASSWORD = "password"


@pytest.fixture
def settings(tmp_path) -> Settings:
    # Every test gets its own SQLite file so state never leaks between tests
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'inkwell.db'}",
        SECRET_KEY="test-secret-key",
        ENVIRONMENT="development",
    )


@pytest.fixture
async def app(settings: Settings) -> AsyncGenerator[FastAPI, None]:
    app = create_app(settings)
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield app
    await app.state.engine.dispose()


@pytest.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    async with app.state.session_factory() as session:
        yield session


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def create_user(db_session: AsyncSession, username: str) -> User:
    user = User(
        username=username,
        hashed_password=get_password_hash(TEST_PASSWORD),
        is_active=True,
        is_superuser=False,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def author(db_session: AsyncSession) -> User:
    return await create_user(db_session, "author")


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "intruder")


def token_for(user: User, settings: Settings) -> str:
    return create_access_token(subject=user.username, secret_key=settings.SECRET_KEY)


@pytest.fixture
def author_headers(author: User, settings: Settings) -> dict:
    return {"Authorization": f"Bearer {token_for(author, settings)}"}


@pytest.fixture
def other_headers(other_user: User, settings: Settings) -> dict:
    return {"Authorization": f"Bearer {token_for(other_user, settings)}"}


@pytest.fixture
def author_cookie(author: User, settings: Settings) -> dict:
    return {"Cookie": f"access_token={token_for(author, settings)}"}


@pytest.fixture
def other_cookie(other_user: User, settings: Settings) -> dict:
    return {"Cookie": f"access_token={token_for(other_user, settings)}"}


@pytest.fixture
def make_post(db_session: AsyncSession, author: User):
    async def _make_post(title: str, markdown: str, published: bool = True) -> Post:
        service = PostService(db_session)
        post = await service.insert(author, PostCreate(title=title, markdown=markdown))
        if published:
            post = await service.publish(author, post)
        return post

    return _make_post
