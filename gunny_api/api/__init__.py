"""API routes package for Gunny API."""

from gunny_api.api.generate import router as generate_router
from gunny_api.api.health import router as health_router
from gunny_api.api.oauth import router as oauth_router

__all__ = ["generate_router", "health_router", "oauth_router"]
