import logging
from contextlib import asynccontextmanager
from typing import Sequence

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.params import Depends
from fastapi.responses import JSONResponse

from signed_upload.api.router import health_router, sign_router
from signed_upload.core.config import Settings, get_settings
from signed_upload.core.logging import configure_logging
from signed_upload.integrations.storage.base import StorageProvider
from signed_upload.integrations.storage.s3 import S3StorageProvider

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(logging.DEBUG if settings.debug else logging.INFO)
    logger.info("startup", bucket=settings.s3_bucket, prefix=settings.api_prefix)
    yield
    logger.info("shutdown")


def create_app(
    settings: Settings | None = None,
    provider: StorageProvider | None = None,
    dependencies: Sequence[Depends] | None = None,
) -> FastAPI:
    """Build the signing API.

    ``dependencies`` run before every signing route (auth checks, rate limits).
    The key directory and storage provider can be replaced through
    ``app.dependency_overrides`` on ``get_file_key_dir`` / ``get_storage_provider``.
    """
    settings = settings or get_settings()
    if not settings.s3_bucket:
        raise ValueError("S3_BUCKET is required")

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage_provider = provider or S3StorageProvider(settings)

    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_log_middleware(request: Request, call_next):
        response = await call_next(request)
        logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_: Request, exc: Exception):
        logger.exception("unhandled_exception", error=str(exc))
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(sign_router, prefix=settings.api_prefix, dependencies=list(dependencies or []))
    app.include_router(health_router)
    return app
