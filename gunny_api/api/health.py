"""Health Check Routes.

Health check endpoint for Docker healthcheck and monitoring. The app object
only exists once the gateway is built (create_app raises otherwise), so a
response here always means ready.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from fastapi import APIRouter, Request

from gunny_api import __version__
from gunny_api.models.responses import BackendInfo, HealthResponse
from gunny_api.utils.sanitizers import redact_url

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Report readiness and the configured backend target (no credentials)."""
    config = request.app.state.settings

    return HealthResponse(
        service="gunny-api",
        version=__version__,
        backend=BackendInfo(
            url=redact_url(config.llm_url),
            model=config.llm_model,
            timeout_sec=config.llm_timeout_sec,
        ),
    )
