"""Gateway error taxonomy.

Every client-visible failure is a `GatewayError` carrying one `ErrorCode`.
The HTTP status is fixed per code so that the mapping from failure kind to
response never diverges between code paths.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from enum import Enum

from starlette.responses import JSONResponse


class ErrorCode(str, Enum):
    """Client-facing error codes (OAuth2 / RFC 6750 names where they exist)."""

    INVALID_CLIENT = "invalid_client"
    INVALID_REQUEST = "invalid_request"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    INVALID_TOKEN = "invalid_token"
    INSUFFICIENT_SCOPE = "insufficient_scope"
    RATE_LIMITED = "rate_limited"
    BAD_GATEWAY = "bad_gateway"
    GATEWAY_TIMEOUT = "gateway_timeout"
    SERVER_ERROR = "server_error"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"


STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.INVALID_CLIENT: 401,
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.UNSUPPORTED_GRANT_TYPE: 400,
    ErrorCode.INVALID_TOKEN: 401,
    ErrorCode.INSUFFICIENT_SCOPE: 403,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.BAD_GATEWAY: 502,
    ErrorCode.GATEWAY_TIMEOUT: 504,
    ErrorCode.SERVER_ERROR: 500,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
}


class GatewayError(Exception):
    """A failure that is reported to the caller as `{error, error_description}`.

    Attributes:
        code: Error code from the taxonomy.
        description: Safe, caller-facing description (never internal detail).
        headers: Extra response headers (WWW-Authenticate, Retry-After, ...).
        status_override: Replaces the code's default status (413 for oversized bodies).
    """

    def __init__(
        self,
        code: ErrorCode,
        description: str | None = None,
        headers: dict[str, str] | None = None,
        status_override: int | None = None,
    ) -> None:
        self.code = code
        self.description = description
        self.headers = headers or {}
        self.status_override = status_override
        super().__init__(description or code.value)

    @property
    def status_code(self) -> int:
        return self.status_override or STATUS_CODES[self.code]

    def to_dict(self) -> dict[str, str]:
        """Response body for this error."""
        body = {"error": self.code.value}
        if self.description:
            body["error_description"] = self.description
        return body


def error_response(error: GatewayError) -> JSONResponse:
    """Standard `{error, error_description?}` JSON response for a gateway error."""
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict(),
        headers=error.headers or None,
    )
