from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inkwell.api.v1.routes import auth, posts
from inkwell.config import Settings
from inkwell.core.errors import register_exception_handlers
from inkwell.core.logging import configure_logging, get_logger
from inkwell.database import create_session_factory
from inkwell.web import routes as web_routes

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("inkwell starting", environment=app.state.settings.ENVIRONMENT)
    yield
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around an explicit settings value."""
    if settings is None:
        settings = Settings()
    configure_logging(settings)

    app = FastAPI(
        title="Inkwell",
        description="A small Markdown blog with fuzzy post search.",
        version="0.1.0",
        docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine, app.state.session_factory = create_session_factory(settings)

    # CORS
    origins = [
        "http://localhost",
        "http://localhost:8000",
    ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, web_routes.templates)

    # API Routes
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(posts.router, prefix="/api/v1/posts", tags=["posts"])

    # Web Routes (SSR)
    app.include_router(web_routes.router)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app
