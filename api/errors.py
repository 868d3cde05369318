"""Global exception handlers for FastAPI.

Maps the ErrorKind of every AppError to one status code and error code.
Handlers never look at message text.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from api.base import error_response, request_id_of, ErrorCodes
from auth.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    RateLimitedError,
    SessionInvalidError,
)
from core.errors import AppError, ErrorKind

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.VALIDATION: 422,
    ErrorKind.INTERNAL: 500,
}

CODE_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: ErrorCodes.NOT_AUTHENTICATED,
    ErrorKind.FORBIDDEN: ErrorCodes.FORBIDDEN,
    ErrorKind.NOT_FOUND: ErrorCodes.NOT_FOUND,
    ErrorKind.CONFLICT: ErrorCodes.CONFLICT,
    ErrorKind.RATE_LIMITED: ErrorCodes.RATE_LIMITED,
    ErrorKind.VALIDATION: ErrorCodes.VALIDATION_ERROR,
    ErrorKind.INTERNAL: ErrorCodes.INTERNAL_ERROR,
}

# More specific codes for unauthenticated failures clients act on differently
_CODE_BY_TYPE = {
    InvalidTokenError: ErrorCodes.INVALID_TOKEN,
    InvalidCredentialsError: ErrorCodes.INVALID_CREDENTIALS,
    SessionInvalidError: ErrorCodes.SESSION_INVALID,
}

_STATUS_CODES = {
    400: ErrorCodes.VALIDATION_ERROR,
    401: ErrorCodes.NOT_AUTHENTICATED,
    403: ErrorCodes.FORBIDDEN,
    404: ErrorCodes.NOT_FOUND,
    405: ErrorCodes.VALIDATION_ERROR,
}


def app_error_response(exc: AppError, request_id: str | None = None) -> JSONResponse:
    """Render an AppError as a JSON error envelope."""
    status_code = STATUS_BY_KIND[exc.kind]
    code = _CODE_BY_TYPE.get(type(exc), CODE_BY_KIND[exc.kind])

    if exc.kind is ErrorKind.INTERNAL:
        message = "An internal error occurred"
    else:
        message = exc.message

    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}

    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content=error_response(code, message, request_id).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.kind is ErrorKind.INTERNAL:
            logger.error(f"Internal error on {request.url.path}: {exc.message}")
        return app_error_response(exc, request_id_of(request))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
                request_id_of(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(
                _STATUS_CODES.get(exc.status_code, ErrorCodes.INTERNAL_ERROR),
                str(exc.detail),
                request_id_of(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
                request_id_of(request),
            ).model_dump(mode="json"),
        )
