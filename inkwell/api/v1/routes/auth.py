from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.api.v1 import dependencies
from inkwell.config import Settings
from inkwell.core import security
from inkwell.core.errors import UnauthorizedError
from inkwell.database import get_db
from inkwell.models.user import User
from inkwell.services.auth import AuthService

router = APIRouter()


class Token(BaseModel):
    access_token: str
    token_type: str


class UserOut(BaseModel):
    username: str
    is_superuser: bool


@router.post("/login", response_model=Token)
async def login_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    settings: Settings = Depends(dependencies.get_settings),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    OAuth2 compatible token login, get an access token for future requests
    """
    auth_service = AuthService(db)
    user = await auth_service.authenticate_user(form_data.username, form_data.password)
    if not user:
        raise UnauthorizedError("Incorrect username or password")

    access_token = security.create_access_token(
        subject=user.username,
        secret_key=settings.SECRET_KEY,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.get("/me", response_model=UserOut)
async def read_current_user(current_user: User = Depends(dependencies.get_current_user)) -> Any:
    """
    Return the user the access token belongs to
    """
    return UserOut(username=current_user.username, is_superuser=current_user.is_superuser)
