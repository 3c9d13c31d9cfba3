"""Vaultr FastAPI application factory + lifespan lifecycle.

This module implements:
  - create_app() - testable application factory
  - lifespan     - @asynccontextmanager startup/shutdown sequence
  - /            - service discovery root
  - /breach      - k-anonymity breach proxy (vaultr/breach/router.py)
  - app = create_app() - module-level instance for uvicorn

Startup sequence:
  1. load_config()            → app.state.config
  2. create_counter_store()   → app.state.counter_store (Redis or memory)
  3. RateLimiter(store)       → app.state.rate_limiter
  4. create_breach_client()   → app.state.breach_client
  5. app.state.ready = True

Shutdown sequence (reverse):
  app.state.ready = False → close breach client → close counter store
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from starlette.exceptions import HTTPException

from vaultr import __version__
from vaultr.breach.router import router as breach_router
from vaultr.breach.upstream import create_breach_client
from vaultr.config import Config, load_config
from vaultr.middleware import RequestContextMiddleware
from vaultr.ratelimit.factory import create_counter_store
from vaultr.ratelimit.limiter import RateLimiter
from vaultr.ratelimit.store import CounterStore, describe_store
from vaultr.utils.logger import configure_logging, get_logger

# ─── Logging Setup ────────────────────────────────────────────────────────────
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)


# ─── Root Endpoint ────────────────────────────────────────────────────────────

root_router = APIRouter(tags=["root"])


@root_router.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - service identity / discovery."""
    return {
        "service": "Vaultr",
        "version": __version__,
        "breach": "/breach?prefix=XXXXX",
    }


# ─── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown sequence."""
    logger.info("Vaultr starting up...")

    # ── Step 1: Load configuration ────────────────────────────────────────────
    # Raises SystemExit on any config error, before ready=True is ever set.
    config: Config = load_config()
    app.state.config = config
    logger.info(
        "Config loaded",
        upstream_configured=config.breach.upstream_url is not None,
        breach_window_ms=config.rate_limit.breach.window_ms,
        breach_max=config.rate_limit.breach.max,
    )

    # ── Step 2: Counter store ─────────────────────────────────────────────────
    # An unreachable Redis is not fatal; the limiter fails open per request.
    store: CounterStore = await create_counter_store(config.rate_limit)
    app.state.counter_store = store

    # ── Step 3: Rate limiter ──────────────────────────────────────────────────
    app.state.rate_limiter = RateLimiter(store)
    logger.info("Rate limiter ready", store=describe_store(store))

    # ── Step 4: Shared upstream client ────────────────────────────────────────
    # NEVER instantiated per-request.
    breach_client: httpx.AsyncClient = create_breach_client(config.breach.timeout_s)
    app.state.breach_client = breach_client

    # ── Step 5: Mark as ready ─────────────────────────────────────────────────
    app.state.ready = True
    logger.info("Vaultr ready")

    yield

    # ── Shutdown (reverse order) ──────────────────────────────────────────────
    logger.info("Vaultr shutting down...")
    app.state.ready = False

    try:
        await breach_client.aclose()
        logger.info("Breach client closed")
    except Exception as exc:
        logger.warning("Breach client close error (non-fatal)", error=str(exc))

    try:
        await store.close()
        logger.info("Counter store closed")
    except Exception as exc:
        logger.warning("Counter store close error (non-fatal)", error=str(exc))

    logger.info("Vaultr shutdown complete")


# ─── Application Factory ──────────────────────────────────────────────────────


def create_app() -> FastAPI:
    """Create and configure the Vaultr FastAPI application.

    Call this function directly in tests to get an isolated app instance:
        app = create_app()

    Returns:
        Configured FastAPI application with lifespan, routers, and middleware.
    """
    # Swagger UI and ReDoc expose the full API schema; DEBUG=true only.
    _debug = os.getenv("DEBUG", "false").lower() == "true"

    application = FastAPI(
        title="Vaultr",
        description="k-anonymity password breach proxy",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if _debug else None,
        redoc_url="/redoc" if _debug else None,
        openapi_url="/openapi.json" if _debug else None,
    )

    application.state.ready = False

    application.add_middleware(RequestContextMiddleware)

    application.include_router(root_router)
    application.include_router(breach_router)

    # Global exception handlers. /breach never reaches these; it fails open itself.
    @application.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=str(request.url.path),
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            error_type=type(exc).__name__,
            path=str(request.url.path),
        )
        return JSONResponse(
            status_code=500, content={"error": "Internal server error"}
        )

    return application


# ─── Module-Level App (for uvicorn) ───────────────────────────────────────────

app = create_app()
