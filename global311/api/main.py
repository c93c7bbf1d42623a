"""FastAPI application entrypoint for Global-311."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from global311.api.middleware.logging import LoggingMiddleware
from global311.api.routes import admin, lookup, pins
from global311.core.config import settings
from global311.core.database import database_manager
from global311.core.exceptions import PinServiceError
from global311.pins.engine import PinEngine
from global311.pins.store import build_document_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize shared resources on startup and tear them down on shutdown."""

    if settings.STORE_BACKEND == "mongo":
        await database_manager.initialize()
    app.state.engine = PinEngine(build_document_store())

    try:
        yield
    finally:
        await database_manager.close()


app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

# Routers
app.include_router(pins.router, prefix="/api")
app.include_router(lookup.router, prefix="/api")
app.include_router(admin.router, prefix="/api")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint."""

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.exception_handler(PinServiceError)
async def handle_pin_service_error(_: Request, exc: PinServiceError):
    """Return standardized responses for engine failures."""

    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})
