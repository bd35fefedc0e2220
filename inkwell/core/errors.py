from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkwell.core.logging import get_logger

logger = get_logger(__name__)

API_ROOT = "/api/"


class InkwellError(Exception):
    """Base class for errors that map onto an HTTP response."""

    detail = "Internal server error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: Optional[str] = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class PostNotFoundError(InkwellError):
    detail = "Not found"
    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedError(InkwellError):
    detail = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidInputError(InkwellError):
    detail = "Invalid input"
    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(InkwellError):
    pass


def is_api_request(request: Request) -> bool:
    return request.url.path.startswith(API_ROOT)


def error_response(
    request: Request, templates: Jinja2Templates, status_code: int, detail: str
) -> Response:
    """Render an error in the shape of the root that received the request."""
    if is_api_request(request):
        return JSONResponse({"error": detail}, status_code=status_code)
    return templates.TemplateResponse(
        request,
        "error.html",
        {"status_code": status_code, "detail": detail},
        status_code=status_code,
    )


def create_exception_handlers(
    templates: Jinja2Templates,
) -> dict[type, Callable[[Request, Exception], Awaitable[Response]]]:
    async def inkwell_error_handler(request: Request, exc: InkwellError) -> Response:
        logger.info(
            "request failed",
            path=request.url.path,
            status_code=exc.status_code,
            detail=exc.detail,
        )
        return error_response(request, templates, exc.status_code, exc.detail)

    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
        return error_response(request, templates, exc.status_code, exc.detail)

    async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
        errors = exc.errors()
        detail = "Invalid input"
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            detail = f"{location}: {errors[0].get('msg', detail)}" if location else errors[0].get("msg", detail)
        return error_response(request, templates, status.HTTP_400_BAD_REQUEST, detail)

    async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
        logger.exception("unhandled error", path=request.url.path)
        return error_response(
            request, templates, status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.detail
        )

    return {
        InkwellError: inkwell_error_handler,
        StarletteHTTPException: http_error_handler,
        RequestValidationError: validation_error_handler,
        Exception: unhandled_error_handler,
    }


def register_exception_handlers(app: FastAPI, templates: Jinja2Templates) -> None:
    for exc_class, handler in create_exception_handlers(templates).items():
        app.add_exception_handler(exc_class, handler)
