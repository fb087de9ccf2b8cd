"""
Academic Portal — Student / Faculty / Admin records backend
FastAPI entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from academic_portal.core.config import settings
from academic_portal.core.database import close_db, ensure_indexes, get_db
from academic_portal.core.errors import (
    ApiError,
    api_error_handler,
    http_error_handler,
    validation_error_handler,
)
from academic_portal.core.middleware import ErrorHandlingMiddleware
from academic_portal.routers import attendance, auth, courses, grades, users

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("academic_portal")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes(get_db())
    except PyMongoError as exc:
        logger.error("Could not ensure MongoDB indexes: %s", exc)
    logger.info("%s started (auth mode: %s)", settings.APP_NAME, settings.AUTH_MODE)
    yield
    close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Academic records for students, faculty and administrators",
    version="1.0.0",
    debug=settings.is_development,
    lifespan=lifespan,
)

# Unexpected failures -> 500 {message, code}
app.add_middleware(ErrorHandlingMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

# Include routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(courses.router)
app.include_router(grades.router)
app.include_router(attendance.router)


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "status": "running",
        "auth_mode": settings.AUTH_MODE,
    }


@app.get("/api/health")
async def health():
    return {"status": "healthy", "auth_mode": settings.AUTH_MODE}
