"""Request Size Limit Middleware.

Rejects oversized request bodies before they are read or parsed.

SECURITY (CWE-400 fix): Resource Exhaustion Prevention
- The declared Content-Length is checked against a per-path limit
- Oversized bodies get 413 with the standard error body, unread

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from gunny_api.errors import ErrorCode, GatewayError, error_response
from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Exact paths; anything else gets the default cap
PATH_LIMITS: dict[str, int] = {
    "/token": 4 * 1024,
    "/api/generate": 16 * 1024,
}
DEFAULT_LIMIT = 16 * 1024


class RequestSizeLimitMiddleware:
    """Enforce a byte cap on the declared Content-Length of body requests.

    Requests without a Content-Length (chunked) pass through; the routes
    cap those while reading. `receive` is passed through unwrapped.
    """

    def __init__(
        self,
        app: ASGIApp,
        default_limit: int = DEFAULT_LIMIT,
        path_limits: dict[str, int] | None = None,
    ):
        self.app = app
        self.default_limit = default_limit
        self.path_limits = dict(PATH_LIMITS if path_limits is None else path_limits)
        logger.info(
            f"Body size caps: default={self.default_limit} bytes, "
            f"per-path={self.path_limits}"
        )

    def limit_for(self, path: str) -> int:
        """Byte cap for `path` (trailing slash ignored)."""
        return self.path_limits.get(path.rstrip("/") or "/", self.default_limit)

    def check(self, path: str, content_length: str) -> GatewayError | None:
        """Return the error for a bad or oversized Content-Length, else None."""
        try:
            declared = int(content_length)
        except ValueError:
            return GatewayError(ErrorCode.INVALID_REQUEST, "Invalid Content-Length header")
        if declared < 0:
            return GatewayError(ErrorCode.INVALID_REQUEST, "Invalid Content-Length header")

        limit = self.limit_for(path)
        if declared <= limit:
            return None
        return GatewayError(
            ErrorCode.INVALID_REQUEST,
            f"Request body exceeds {limit} bytes",
            headers={"X-Max-Content-Length": str(limit)},
            status_override=413,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in BODY_METHODS:
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        error = self.check(scope["path"], content_length) if content_length else None
        if error is None:
            await self.app(scope, receive, send)
            return

        logger.warning(
            f"Body rejected on {scope['path']}: Content-Length={content_length!r}, "
            f"{error.description}"
        )
        await error_response(error)(scope, receive, send)
