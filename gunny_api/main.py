"""Gunny API Main Entry Point.

FastAPI application: OAuth2 client-credentials token issuance and a
rate-limited, bearer-protected proxy to the GunnyBot LLM backend.

Run with `python -m gunny_api` (see `gunny_api/__main__.py`).

Author: Gunny Team
Version: 1.0.0
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gunny_api import __service_name__, __version__
from gunny_api.api import generate_router, health_router, oauth_router
from gunny_api.config.settings import Settings, settings
from gunny_api.errors import ErrorCode, GatewayError, error_response
from gunny_api.middleware import (
    CorrelationIdMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from gunny_api.services.gateway import Gateway
from gunny_api.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Map every failure onto the error taxonomy."""

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        logger.info(
            f"{request.method} {request.url.path} rejected: "
            f"{exc.code.value} ({exc.status_code})"
        )
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            return error_response(GatewayError(ErrorCode.NOT_FOUND))
        if exc.status_code == 405:
            error = GatewayError(ErrorCode.METHOD_NOT_ALLOWED, headers=exc.headers)
            return error_response(error)
        if exc.status_code < 500:
            return error_response(
                GatewayError(ErrorCode.INVALID_REQUEST, status_override=exc.status_code)
            )
        return error_response(GatewayError(ErrorCode.SERVER_ERROR))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(GatewayError(ErrorCode.INVALID_REQUEST, "Malformed request"))


def create_app(
    config: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Settings instance (defaults to the environment-derived singleton).
        transport: Optional httpx transport for the LLM backend client.
    """
    config = config or settings
    setup_logging(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"{__service_name__} {__version__} starting on {config.host}:{config.port}")
        yield
        logger.info(f"{__service_name__} shutting down...")
        await app.state.gateway.close()
        logger.info("LLM backend client closed")

    app = FastAPI(
        title=__service_name__,
        description="OAuth2 client-credentials gateway for the GunnyBot LLM backend",
        version=__version__,
        lifespan=lifespan,
    )

    try:
        app.state.settings = config
        app.state.gateway = Gateway.from_settings(config, transport=transport)
    except (OSError, ValueError) as e:
        logger.exception(f"Failed to initialize: {e}")
        raise RuntimeError(f"Startup failed: {e}") from e

    # Request Size Limit
    app.add_middleware(RequestSizeLimitMiddleware)

    # CORS Configuration
    # Auth is header based, so credentials are never enabled
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Correlation-ID"],
        expose_headers=["X-Correlation-ID", "Retry-After", "WWW-Authenticate"],
    )

    # Security Headers
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=True)

    # Correlation ID + access log + last-resort 500 (outermost)
    app.add_middleware(CorrelationIdMiddleware, enable_hsts=True)

    register_exception_handlers(app)

    # Root endpoint
    @app.get("/", tags=["Info"])
    async def root() -> dict[str, Any]:
        return {
            "service": __service_name__,
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "token": "/token (POST)",
                "generate": "/api/generate (POST)",
            },
        }

    # Register routers
    app.include_router(health_router)
    app.include_router(oauth_router)
    app.include_router(generate_router)

    logger.info("Routers registered: /health, /token, /api/generate")

    return app


app = create_app()
