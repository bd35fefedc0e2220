from datetime import timedelta
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inkwell.api.v1.dependencies import get_post_service, get_settings, get_user_from_token
from inkwell.config import Settings
from inkwell.core import security
from inkwell.core.errors import PostNotFoundError, UnauthorizedError
from inkwell.database import get_db, get_session_factory
from inkwell.models.post import Post
from inkwell.models.user import User
from inkwell.schemas.post import PostCreate, PostUpdate
from inkwell.services.auth import AuthService
from inkwell.services.post import PostService, record_view
from inkwell.services.search import SearchService

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

COOKIE_NAME = "access_token"


async def get_optional_user_from_cookie(
    request: Request,
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    token = request.cookies.get(COOKIE_NAME)
    if token and token.startswith("Bearer "):
        token = token.split(" ", 1)[1]
    return await get_user_from_token(token, settings, db)


async def get_current_user_from_cookie(
    user: Optional[User] = Depends(get_optional_user_from_cookie),
) -> User:
    if user is None:
        raise UnauthorizedError()
    return user


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


async def get_owned_post(slug: str, service: PostService, user: User) -> Post:
    post = await service.get(slug)
    service.authorize(user, post)
    return post


@router.get("/", response_class=HTMLResponse)
async def homepage(
    request: Request,
    service: PostService = Depends(get_post_service),
    user: Optional[User] = Depends(get_optional_user_from_cookie)
):
    posts = await service.get_all(published_only=True)
    return templates.TemplateResponse(request, "home.html", {"posts": posts, "user": user})


# Session

@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"user": None})


@router.post("/login", response_class=HTMLResponse)
async def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db)
):
    user = await AuthService(db).authenticate_user(username, password)
    if not user:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"user": None, "error": "Invalid credentials"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    access_token = security.create_access_token(
        subject=user.username,
        secret_key=settings.SECRET_KEY,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    response = redirect("/user")
    response.set_cookie(key=COOKIE_NAME, value=f"Bearer {access_token}", httponly=True)
    return response


@router.get("/logout")
async def logout():
    response = redirect("/login")
    response.delete_cookie(COOKIE_NAME)
    return response


@router.get("/user", response_class=HTMLResponse)
async def control_panel(
    request: Request,
    service: PostService = Depends(get_post_service),
    user: User = Depends(get_current_user_from_cookie)
):
    posts = await service.get_by_author(user)
    return templates.TemplateResponse(request, "user.html", {"posts": posts, "user": user})


# Posts

@router.post("/post/search", response_class=HTMLResponse)
async def search_page(
    request: Request,
    query: str = Form(..., min_length=1),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user_from_cookie)
):
    service = SearchService(db, threshold=settings.SEARCH_SIMILARITY_THRESHOLD)
    result = await service.search(query)
    return templates.TemplateResponse(
        request,
        "search.html",
        {
            "query": result.query,
            "posts": result.posts,
            "user": user,
            "empty_message": "No posts matched your search.",
        }
    )


@router.get("/post/new", response_class=HTMLResponse)
async def new_post_page(
    request: Request,
    user: User = Depends(get_current_user_from_cookie)
):
    return templates.TemplateResponse(request, "post/edit.html", {"post": None, "user": user})


@router.post("/post/new")
async def create_post(
    title: str = Form(..., min_length=1, max_length=255),
    markdown: str = Form(..., min_length=1),
    service: PostService = Depends(get_post_service),
    user: User = Depends(get_current_user_from_cookie)
):
    await service.insert(user, PostCreate(title=title, markdown=markdown))
    return redirect("/user")


@router.get("/post/{slug}", response_class=HTMLResponse)
async def read_post(
    request: Request,
    slug: str,
    background_tasks: BackgroundTasks,
    service: PostService = Depends(get_post_service),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    user: Optional[User] = Depends(get_optional_user_from_cookie)
):
    post = await service.get(slug)
    if not post.is_published and (user is None or user.id != post.author_id):
        raise PostNotFoundError()
    background_tasks.add_task(record_view, session_factory, post.slug)
    return templates.TemplateResponse(request, "post/display.html", {"post": post, "user": user})


@router.get("/post/{slug}/edit", response_class=HTMLResponse)
async def edit_post_page(
    request: Request,
    slug: str,
    service: PostService = Depends(get_post_service),
    user: User = Depends(get_current_user_from_cookie)
):
    post = await get_owned_post(slug, service, user)
    return templates.TemplateResponse(request, "post/edit.html", {"post": post, "user": user})


@router.post("/post/{slug}/edit")
async def update_post(
    slug: str,
    title: str = Form(..., min_length=1, max_length=255),
    markdown: str = Form(..., min_length=1),
    service: PostService = Depends(get_post_service),
    user: User = Depends(get_current_user_from_cookie)
):
    post = await service.get(slug)
    await service.update(user, post, PostUpdate(title=title, markdown=markdown))
    return redirect("/user")


@router.post("/post/{slug}/publish")
async def publish_post(
    slug: str,
    service: PostService = Depends(get_post_service),
    user: User = Depends(get_current_user_from_cookie)
):
    post = await service.get(slug)
    await service.publish(user, post)
    return redirect(f"/post/{post.slug}")


@router.post("/post/{slug}/unpublish")
async def unpublish_post(
    slug: str,
    service: PostService = Depends(get_post_service),
    user: User = Depends(get_current_user_from_cookie)
):
    post = await service.get(slug)
    await service.unpublish(user, post)
    return redirect("/user")


@router.post("/post/{slug}/delete")
async def delete_post(
    slug: str,
    service: PostService = Depends(get_post_service),
    user: User = Depends(get_current_user_from_cookie)
):
    post = await service.get(slug)
    await service.delete(user, post)
    return redirect("/user")
