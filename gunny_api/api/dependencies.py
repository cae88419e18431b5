"""Shared route helpers: component lookup, caller identity and raw body reading.

Bodies are read raw instead of through FastAPI body models and handed to the
gateway, which decodes them only after rate limiting and authentication.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from fastapi import Request

from gunny_api.errors import ErrorCode, GatewayError
from gunny_api.services.gateway import Gateway
from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)


def get_gateway(request: Request) -> Gateway:
    """Get the gateway instance from app state.

    Raises:
        GatewayError: server_error if the app was not wired.
    """
    gateway: Gateway | None = getattr(request.app.state, "gateway", None)
    if gateway is None:
        logger.error("Gateway not initialized")
        raise GatewayError(ErrorCode.SERVER_ERROR)
    return gateway


def client_identity(request: Request) -> str | None:
    """Rate-limit key for the caller (client IP)."""
    return get_gateway(request).ip_extractor.get_client_ip(request)


async def read_body(request: Request, limit: int) -> bytes:
    """Read the request body, refusing to buffer more than `limit` bytes.

    Covers bodies sent without Content-Length, which the size middleware
    cannot judge up front.
    """
    received = bytearray()
    async for chunk in request.stream():
        received.extend(chunk)
        if len(received) > limit:
            logger.warning(f"Streamed body over {limit} bytes, path={request.url.path}")
            raise GatewayError(
                ErrorCode.INVALID_REQUEST,
                f"Request body exceeds {limit} bytes",
                status_override=413,
            )
    return bytes(received)
