from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.config import Settings
from inkwell.core.errors import UnauthorizedError
from inkwell.core.security import decode_access_token
from inkwell.database import get_db
from inkwell.models.user import User
from inkwell.services.auth import AuthService
from inkwell.services.post import PostService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_user_from_token(
    token: Optional[str], settings: Settings, db: AsyncSession
) -> Optional[User]:
    if not token:
        return None
    username = decode_access_token(token, settings.SECRET_KEY)
    if username is None:
        return None
    user = await AuthService(db).get_user(username)
    if user is None or not user.is_active:
        return None
    return user


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    return await get_user_from_token(token, settings, db)


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise UnauthorizedError()
    return user


def get_post_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> PostService:
    return PostService(db, excerpt_length=settings.EXCERPT_LENGTH)
