"""
Error model — every failure leaves the API as {message, code}.

Handlers raise ApiError (an HTTPException carrying a machine-readable code);
the exception handlers registered in main.py render it. Framework validation
errors become 400 VALIDATION_ERROR, anything unexpected becomes 500.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from academic_portal.core.config import settings

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    def __init__(self, status_code: int, message: str, code: str, **extra):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.code = code
        self.extra = extra


def bad_request(message: str, code: str, **extra) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, message, code, **extra)


def unauthorized(message: str, code: str) -> ApiError:
    return ApiError(status.HTTP_401_UNAUTHORIZED, message, code)


def forbidden(message: str, code: str, **extra) -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, message, code, **extra)


def not_found(message: str, code: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, message, code)


def error_body(message: str, code: str, **extra) -> dict:
    return {"message": message, "code": code, **extra}


async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.code, **exc.extra),
        headers=getattr(exc, "headers", None),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    codes = {
        status.HTTP_401_UNAUTHORIZED: "AUTH_REQUIRED",
        status.HTTP_403_FORBIDDEN: "FORBIDDEN",
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
        status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), codes.get(exc.status_code, "HTTP_ERROR")),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", "VALIDATION_ERROR", errors=errors),
    )


def server_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.is_development else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(message, "SERVER_ERROR"),
    )
