"""Corex — FastAPI application.

Hands out opaque masked URLs for origin resources and streams the origin
bytes back when a masked URL is requested. Clients never see the origin.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from corex.config import CorexConfig, load_config
from corex.errors import NotFoundError, StoreError, UpstreamFailure, ValidationError
from corex.routes import meta, register, stream
from corex.store import MappingStore, build_store

logger = logging.getLogger("corex")
audit_logger = logging.getLogger("corex.audit")


def build_http_client(config: CorexConfig) -> httpx.AsyncClient:
    """Pooled client for upstream origins."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            config.upstream_read_timeout, connect=config.upstream_connect_timeout
        ),
        follow_redirects=True,
        limits=httpx.Limits(
            max_keepalive_connections=50,
            max_connections=200,
            keepalive_expiry=60.0,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: open the store and upstream client. Shutdown: close what we opened."""
    config: CorexConfig = app.state.config
    owned_store = owned_client = None
    if getattr(app.state, "store", None) is None:
        app.state.store = owned_store = build_store(config)
    if getattr(app.state, "http_client", None) is None:
        app.state.http_client = owned_client = build_http_client(config)
    logger.info("Corex ready (environment: %s)", config.environment)
    yield
    if owned_client is not None:
        await owned_client.aclose()
    if owned_store is not None:
        await owned_store.close()
    logger.info("Corex shut down")


def create_app(
    config: CorexConfig | None = None,
    *,
    store: MappingStore | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Application factory.

    ``store`` and ``http_client`` are injected as-is when given (tests pass
    an in-memory store and a mocked transport); otherwise the lifespan
    builds them from ``config``.
    """
    if config is None:
        config = load_config()

    app = FastAPI(
        title="Corex",
        description="URL-masking streaming proxy",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.http_client = http_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Range", "Accept-Ranges"],
    )

    # ── Exception handlers ────────────────────────────────────

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": exc.title, "details": exc.details, **exc.extra},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        details = errors[0].get("msg") if errors else None
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid Request", "details": details or "Malformed request body"},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not Found",
                "message": "Corex resource not found",
                "corexId": exc.corex_id,
            },
        )

    @app.exception_handler(UpstreamFailure)
    async def upstream_handler(request: Request, exc: UpstreamFailure):
        return JSONResponse(
            status_code=502,
            content={"error": "Bad Gateway", "message": "Failed to fetch upstream resource"},
        )

    @app.exception_handler(StoreError)
    async def store_handler(request: Request, exc: StoreError):
        logger.error(
            "Mapping store failure on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "message": "Storage backend unavailable. Please try again later.",
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            content = {
                "error": "Not Found",
                "message": "The requested endpoint does not exist",
                "path": request.url.path,
            }
        else:
            content = {"error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(Exception)
    async def internal_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        message = str(exc) if config.is_development else "An unexpected error occurred"
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "message": message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    # ── Audit middleware ──────────────────────────────────────

    @app.middleware("http")
    async def audit_log(request: Request, call_next):
        start = time.monotonic()
        response = await call_next(request)
        elapsed = time.monotonic() - start
        audit_logger.info(
            "%s %s %d %.3fs",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
        )
        return response

    # ── Routers ───────────────────────────────────────────────

    app.include_router(meta.router)
    app.include_router(register.router)
    app.include_router(stream.router)

    return app
