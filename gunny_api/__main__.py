"""Gunny API module entry point.

Run the service with `python -m gunny_api` or the `gunny-api` script.

Uvicorn only rewrites the peer address from X-Forwarded-For when
ENABLE_PROXY_HEADERS is set, and then only for TRUSTED_PROXIES.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import uvicorn

from gunny_api.config.settings import Settings, settings
from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)


def forwarded_allow_ips(config: Settings) -> str | None:
    """Peers uvicorn may accept forwarded headers from, or None when disabled."""
    if not config.enable_proxy_headers:
        return None
    if config.trusted_proxies:
        return config.trusted_proxies
    # Every peer is trusted; acceptable only on a development box
    logger.warning("ENABLE_PROXY_HEADERS without TRUSTED_PROXIES trusts every peer")
    return "*"


def main() -> None:
    """Serve `gunny_api.main:app` with the configured host and proxy trust."""
    allowed = forwarded_allow_ips(settings)
    logger.info(f"Forwarded headers accepted from: {allowed or 'nobody'}")

    uvicorn.run(
        "gunny_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_debug,
        log_level=settings.log_level.lower(),
        proxy_headers=allowed is not None,
        forwarded_allow_ips=allowed,
    )


if __name__ == "__main__":
    main()
