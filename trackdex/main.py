import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trackdex.api import (
    collections_router,
    health_router,
    rarities_router,
    rewards_router,
)
from trackdex.config import settings
from trackdex.db.database import init_db
from trackdex.models.economy_errors import ContentionError
from trackdex.models.failure import KnownError, create_unknown_failure, failure_payload

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying after lock contention
CONTENTION_RETRY_AFTER = 1


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("trackdex"),
    lifespan=lifespan,
)

app.include_router(collections_router)
app.include_router(health_router)
app.include_router(rarities_router)
app.include_router(rewards_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render an economy failure with its own status code."""
    headers = None
    if isinstance(exc, ContentionError):
        headers = {"Retry-After": str(CONTENTION_RETRY_AFTER)}
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_payload(exc),
        headers=headers,
    )


@app.exception_handler(Exception)
async def unknown_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: fixed message, exception type only."""
    logger.exception("UNHANDLED_ERROR", extra={"error_type": type(exc).__name__})
    return JSONResponse(
        status_code=500,
        content=create_unknown_failure(exc).model_dump(mode="json"),
    )
