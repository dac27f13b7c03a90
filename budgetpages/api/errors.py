"""
Exception → JSON response mapping.

Every error body is ``{"error": "<message>"}``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from budgetpages.api.deps import UnauthorizedError
from budgetpages.log import get_logger
from budgetpages.orchestrator import (
    DayNotFoundError,
    FolderNotFoundError,
    PageNotFoundError,
    UserNotFoundError,
    ValidationError,
)


logger = get_logger(__name__)

NOT_FOUND_ERRORS = (
    UserNotFoundError,
    PageNotFoundError,
    DayNotFoundError,
    FolderNotFoundError,
)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(UnauthorizedError)
    async def unauthorized(request: Request, exc: UnauthorizedError):
        return error_response(401, "Unauthorized")

    for error_class in NOT_FOUND_ERRORS:
        @app.exception_handler(error_class)
        async def not_found(request: Request, exc: Exception):
            return error_response(404, str(exc))

    @app.exception_handler(ValidationError)
    async def invalid(request: Request, exc: ValidationError):
        return error_response(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return error_response(400, _describe(exc))

    @app.exception_handler(Exception)
    async def internal(request: Request, exc: Exception):
        logger.error(
            "unhandled_error",
            path=request.url.path,
            error=str(exc),
            exc_info=exc,
        )
        return error_response(500, "Internal server error")
