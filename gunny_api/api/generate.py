"""Generation Route.

Bearer-protected proxy to the GunnyBot LLM backend.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import asyncio

from fastapi import APIRouter, Request, Response

from gunny_api.api.dependencies import client_identity, get_gateway, read_body
from gunny_api.models.responses import ErrorResponse, GenerateResponse
from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Generate"])

MAX_GENERATE_BODY_BYTES = 16 * 1024
DISCONNECT_POLL_SEC = 0.5

# nginx convention for "client closed request"; never reaches the client
CLIENT_CLOSED_REQUEST = 499


async def _wait_for_disconnect(request: Request) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_SEC)


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def generate(request: Request) -> GenerateResponse | Response:
    """Generate a GunnyBot reply.

    Body: `{"prompt": str, "system_prompt": str?, "temperature": float?,
    "max_tokens": int?}`. If the caller goes away while the backend call is
    pending, the call is cancelled and nothing is sent.
    """
    gateway = get_gateway(request)
    raw = await read_body(request, MAX_GENERATE_BODY_BYTES)

    generation = asyncio.create_task(
        gateway.generate(
            client_identity(request),
            request.headers.get("Authorization"),
            raw,
        )
    )
    watcher = asyncio.create_task(_wait_for_disconnect(request))

    try:
        await asyncio.wait({generation, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        pending = [task for task in (generation, watcher) if not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    if generation.cancelled():
        logger.info("Client disconnected, backend call cancelled")
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    # Re-raises GatewayError for the exception handlers
    return GenerateResponse(reply=generation.result())
