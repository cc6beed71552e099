"""
Sofia API server.

FastAPI application factory, error translation and the uvicorn entry point.
All resource routes live under ``/api``; health is also served at
``/health``.
"""

import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import (
    admin_router,
    alignment_router,
    auth_router,
    chapters_router,
    concerns_router,
    documents_router,
    education_router,
    feedback_router,
    goals_router,
    history_router,
    safety_router,
    sessions_router,
    uploads_router,
    users_router,
    values_router,
)
from .config import settings
from .core.exceptions import DependencyError, SofiaException
from .database import init_db
from .logging_config import setup_logging


API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    await init_db()
    logger.info(f"Sofia API started ({settings.ENVIRONMENT})")
    yield
    logger.info("Sofia API shutting down")


def _error_body(message: str, detail=None) -> dict:
    body = {"error": message}
    if detail is not None and not settings.is_production:
        body["detail"] = detail
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """Translate every failure into an ``{"error": ...}`` body."""

    @app.exception_handler(SofiaException)
    async def sofia_exception_handler(request: Request, exc: SofiaException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, type(exc).__name__),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        error = DependencyError("Database error")
        return JSONResponse(
            status_code=error.status_code,
            content=_error_body(error.message, str(exc)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid request", jsonable_errors(exc)),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        detail = None
        if not settings.is_production:
            detail = {"message": str(exc), "traceback": traceback.format_exc()}
        return JSONResponse(status_code=500, content=_error_body("Internal server error", detail))


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances which are not JSON serializable
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="Sofia API",
        description="Brain-health companion backend",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for router in (
        auth_router,
        users_router,
        sessions_router,
        goals_router,
        concerns_router,
        values_router,
        education_router,
        chapters_router,
        feedback_router,
        safety_router,
        documents_router,
        uploads_router,
        history_router,
        admin_router,
        alignment_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health", tags=["health"])
    @app.get(f"{API_PREFIX}/health", tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def run(reload: bool = False):
    """Run the API server."""
    import uvicorn

    logger.info(f"Starting Sofia API on {settings.API_HOST}:{settings.API_PORT}")
    uvicorn.run(
        "sofia.server:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=reload,
    )


if __name__ == "__main__":
    run()
