"""
Request middleware — Turns unexpected failures into the 500 error contract.

Persistence errors (pymongo) and anything else a handler did not map to an
ApiError end up here. They are logged with traceback and never retried.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from academic_portal.core.errors import server_error_response

logger = logging.getLogger(__name__)

# Paths that are not worth timing
QUIET_PATHS = {"/", "/docs", "/redoc", "/openapi.json", "/api/health"}


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            return server_error_response(request, exc)

        if path not in QUIET_PATHS:
            logger.debug(
                "%s %s -> %s (%.1f ms)",
                request.method,
                path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
            )
        return response
