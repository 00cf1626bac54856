"""
FastAPI application entry point for the TravelTrail CMS backend.
"""

from __future__ import annotations

import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from traveltrail.config import Settings, get_settings
from traveltrail.db import DocumentStore
from traveltrail.dependencies import build_context
from traveltrail.errors import ApiError, ConfigurationError, InternalError, ValidationError
from traveltrail.logging_config import configure_logging, get_logging_config
from traveltrail.routes import router
from traveltrail.schemas import format_errors

logger = logging.getLogger(__name__)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error = ValidationError("Invalid request data", errors=format_errors(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_body())


HTTP_ERROR_CODES = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    error = ApiError(
        str(exc.detail), code=HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error.to_body(),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=InternalError().to_body())


def create_app(
    settings: Optional[Settings] = None, store: Optional[DocumentStore] = None
) -> FastAPI:
    """
    Build the application. Raises ConfigurationError when the signing secret
    is missing or too short, and propagates the driver error when MongoDB
    cannot be reached.
    """
    settings = settings or get_settings()
    context = build_context(settings, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down TravelTrail API")
        context.close()

    app = FastAPI(title="TravelTrail CMS API", version="1.0.0", lifespan=lifespan)
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/health", include_in_schema=False)
    def health():
        try:
            context.store.ping()
            database = "ok"
        except PyMongoError:
            database = "unavailable"
        return {"status": "ok", "database": database}

    app.include_router(router, prefix=settings.api_prefix)
    return app


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        app = create_app(settings)
    except ConfigurationError as exc:
        logger.critical("FATAL: %s", exc.message)
        return 1
    except PyMongoError as exc:
        logger.critical("FATAL: could not connect to MongoDB: %s", exc)
        return 1
    logger.info("Backend server listening on port %d", settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=get_logging_config(settings.log_level),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
