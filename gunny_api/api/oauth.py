"""OAuth2 Token Route.

Client-credentials grant (RFC 6749 section 4.4). Clients authenticate with
HTTP Basic and receive a short-lived bearer token for /api/generate.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from gunny_api.api.dependencies import client_identity, get_gateway, read_body
from gunny_api.models.responses import ErrorResponse, TokenResponse

router = APIRouter(tags=["OAuth"])

MAX_TOKEN_BODY_BYTES = 4 * 1024

# RFC 6749 section 5.1: token responses must not be cached
NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


@router.post(
    "/token",
    response_model=TokenResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)
async def issue_token(request: Request) -> JSONResponse:
    """Issue an access token with scope gunny:generate.

    Body (form-encoded or JSON): `grant_type=client_credentials`.
    """
    gateway = get_gateway(request)
    raw = await read_body(request, MAX_TOKEN_BODY_BYTES)

    issued = gateway.obtain_token(
        client_identity(request),
        request.headers.get("Authorization"),
        raw,
        request.headers.get("Content-Type"),
    )

    token = TokenResponse(
        access_token=issued.access_token,
        token_type=issued.token_type,
        expires_in=issued.expires_in,
    )
    return JSONResponse(content=token.model_dump(), headers=NO_STORE_HEADERS)
