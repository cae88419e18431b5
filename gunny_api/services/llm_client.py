"""LLM backend client for the Gunny API.

Handles all communication with the OpenAI-compatible chat completions
endpoint (llama.cpp server on the Jetson) via httpx.

Concurrency:
- One shared httpx.AsyncClient per worker (connection pooling)
- Every call has a hard deadline enforced with asyncio.wait_for; on expiry
  the pending request is cancelled and its connection released
- A single attempt per call, no retries

Failures are returned as a classified BackendResult instead of raised, so
the caller maps them to client errors in one place.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import asyncio
import time

import httpx
from pydantic import ValidationError

from gunny_api.models.backend import (
    BackendChatRequest,
    BackendOutcome,
    BackendResult,
    ChatCompletion,
)
from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)


class LLMClient:
    """Async wrapper for the backend chat completions endpoint.

    Attributes:
        url: Full chat completions URL.
        timeout: Hard deadline in seconds for one call.
        client: Shared httpx.AsyncClient.
    """

    def __init__(
        self,
        url: str,
        timeout: float,
        connect_timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            url: Chat completions URL.
            timeout: Hard deadline for a whole call (connect + response).
            connect_timeout: Deadline for establishing the TCP connection.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self.url = url
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=min(connect_timeout, timeout)),
            transport=transport,
            headers={"Accept": "application/json"},
        )
        logger.info(f"LLMClient initialized (url={url}, timeout={timeout}s)")

    async def chat(self, chat_request: BackendChatRequest) -> BackendResult:
        """Send one chat completion request.

        Args:
            chat_request: Composed backend request.

        Returns:
            BackendResult; outcome OK carries the trimmed reply text.
        """
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.client.post(self.url, json=chat_request.to_payload()),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(
                f"LLM backend timed out after {time.monotonic() - start:.1f}s "
                f"({type(e).__name__})"
            )
            return BackendResult(BackendOutcome.TIMEOUT, detail=type(e).__name__)
        except httpx.ConnectError as e:
            logger.error(f"LLM backend not reachable: {e}")
            return BackendResult(BackendOutcome.UNREACHABLE, detail=str(e))
        except httpx.TransportError as e:
            logger.error(f"LLM backend transport error: {type(e).__name__}: {e}")
            return BackendResult(BackendOutcome.UPSTREAM_ERROR, detail=str(e))

        elapsed = time.monotonic() - start

        if response.is_error:
            # Upstream body is kept server-side only
            logger.error(
                f"LLM backend returned HTTP {response.status_code} after {elapsed:.1f}s: "
                f"{response.text[:500]}"
            )
            return BackendResult(
                BackendOutcome.UPSTREAM_ERROR,
                status_code=response.status_code,
                detail=f"HTTP {response.status_code}",
            )

        try:
            completion = ChatCompletion.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"LLM backend returned a malformed body: {type(e).__name__}")
            return BackendResult(
                BackendOutcome.MALFORMED,
                status_code=response.status_code,
                detail=type(e).__name__,
            )

        content = completion.first_content()
        reply = content.strip() if content else ""
        if not reply:
            logger.warning(f"LLM backend returned no reply ({len(completion.choices)} choices)")
            return BackendResult(BackendOutcome.EMPTY, status_code=response.status_code)

        logger.info(f"LLM reply generated ({len(reply)} chars, {elapsed:.1f}s)")
        return BackendResult(BackendOutcome.OK, text=reply, status_code=response.status_code)

    async def close(self) -> None:
        """Close pooled connections on application shutdown."""
        await self.client.aclose()
        logger.info("LLMClient closed")
