"""Correlation ID Middleware.

Outermost layer of the stack:
- binds a correlation id (caller supplied if well formed, else generated)
  to the structlog context and echoes it as X-Correlation-ID
- writes one access log line per request with its duration
- turns any exception that escaped the exception handlers into a 500
  `server_error`, logged with its traceback and never returned

Plain ASGI: `receive`, including `http.disconnect`, reaches the routes
unwrapped.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import time
from uuid import uuid4

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from gunny_api.errors import ErrorCode, GatewayError, error_response
from gunny_api.middleware.security_headers import apply_security_headers
from gunny_api.utils.logging import get_logger
from gunny_api.utils.validators import validate_correlation_id

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def resolve_correlation_id(supplied: str | None) -> str:
    """Keep a well-formed caller id, otherwise mint a new one.

    >>> resolve_correlation_id("req-42")
    'req-42'
    >>> len(resolve_correlation_id("bad id"))
    32
    """
    is_valid, _ = validate_correlation_id(supplied)
    return supplied if is_valid and supplied else uuid4().hex


class CorrelationIdMiddleware:
    """Correlation id, access log and last-resort error response."""

    def __init__(self, app: ASGIApp, enable_hsts: bool = True):
        self.app = app
        self.enable_hsts = enable_hsts

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = resolve_correlation_id(Headers(scope=scope).get(CORRELATION_HEADER))
        method, path = scope["method"], scope["path"]
        status: int | None = None

        async def send_with_id(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
                message.setdefault("headers", [])
                MutableHeaders(scope=message)[CORRELATION_HEADER] = correlation_id
            await send(message)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        started = time.perf_counter()

        try:
            await self.app(scope, receive, send_with_id)
        except Exception:
            logger.exception(f"Unhandled error on {method} {path}")
            if status is not None:
                # Response already started; nothing left to replace
                raise
            response = apply_security_headers(
                error_response(GatewayError(ErrorCode.SERVER_ERROR)),
                scope.get("scheme", "http"),
                self.enable_hsts,
            )
            await response(scope, receive, send_with_id)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(f"{method} {path} -> {status} ({elapsed_ms:.1f} ms)")
            structlog.contextvars.clear_contextvars()
