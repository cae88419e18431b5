"""Client IP Extraction Service.

Derives the caller's network identity used as the rate-limit key.

Forwarded headers (X-Forwarded-For, X-Real-IP, CF-Connecting-IP) can be
spoofed by clients, so they are only honoured when the direct peer is a
configured trusted proxy. Otherwise the socket peer address is used.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network

from fastapi import Request

from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)

IPNetworkType = IPv4Network | IPv6Network

MAX_HEADER_LENGTH = 1000


class ClientIPExtractor:
    """Extract client IP addresses from HTTP requests with proxy validation.

    Attributes:
        trusted_proxies: Networks whose forwarded headers are trusted.
        enable_proxy_headers: Whether forwarded headers are considered at all.
        proxy_depth: Number of trusted proxies in front of the service.
        use_cloudflare: Honour CF-Connecting-IP / True-Client-IP.
    """

    def __init__(
        self,
        trusted_proxies: list[str] | None = None,
        enable_proxy_headers: bool = False,
        proxy_depth: int = 1,
        use_cloudflare: bool = False,
    ) -> None:
        self.enable_proxy_headers = enable_proxy_headers
        self.proxy_depth = proxy_depth
        self.use_cloudflare = use_cloudflare
        self.trusted_proxies: list[IPNetworkType] = self._parse_trusted_proxies(
            trusted_proxies or []
        )

        logger.info(
            f"ClientIPExtractor initialized: "
            f"proxy_headers={enable_proxy_headers}, "
            f"cloudflare={use_cloudflare}, "
            f"trusted_proxies={len(self.trusted_proxies)}"
        )

    @classmethod
    def from_csv(
        cls,
        trusted_proxies: str,
        enable_proxy_headers: bool = False,
        proxy_depth: int = 1,
        use_cloudflare: bool = False,
    ) -> "ClientIPExtractor":
        """Build from a comma separated TRUSTED_PROXIES value."""
        proxies = [p.strip() for p in trusted_proxies.split(",") if p.strip()]
        return cls(proxies, enable_proxy_headers, proxy_depth, use_cloudflare)

    @staticmethod
    def _parse_trusted_proxies(proxy_list: list[str]) -> list[IPNetworkType]:
        networks: list[IPNetworkType] = []
        for proxy in proxy_list:
            try:
                networks.append(ip_network(proxy, strict=False))
            except ValueError as e:
                logger.warning(f"Invalid proxy address '{proxy}' in TRUSTED_PROXIES: {e}")
        return networks

    def _is_trusted_proxy(self, ip_str: str) -> bool:
        if not self.trusted_proxies:
            return False
        try:
            ip = ip_address(ip_str)
        except ValueError:
            return False
        return any(ip in network for network in self.trusted_proxies)

    @staticmethod
    def _valid_ip(value: str | None) -> str | None:
        """Return the value if it is a safe, well-formed IP address."""
        if not value or len(value) > MAX_HEADER_LENGTH:
            return None
        value = value.strip()
        try:
            ip_address(value)
        except ValueError:
            return None
        return value

    def get_client_ip(self, request: Request) -> str | None:
        """Extract the client IP address for a request.

        Extraction order (only when proxy headers are enabled and the direct
        peer is a trusted proxy):
        1. CF-Connecting-IP, True-Client-IP (if use_cloudflare)
        2. X-Real-IP
        3. X-Forwarded-For (entry selected by proxy_depth)
        4. request.client.host (direct connection)

        Returns:
            Client IP address as string, or None if unable to determine.
        """
        direct_ip = request.client.host if request.client else None

        if not self.enable_proxy_headers:
            return direct_ip

        if not direct_ip or not self._is_trusted_proxy(direct_ip):
            if request.headers.get("X-Forwarded-For") or request.headers.get("X-Real-IP"):
                logger.debug("Ignoring forwarded headers from non-trusted peer")
            return direct_ip

        if self.use_cloudflare:
            for header in ("CF-Connecting-IP", "True-Client-IP"):
                ip = self._valid_ip(request.headers.get(header))
                if ip:
                    return ip

        real_ip = self._valid_ip(request.headers.get("X-Real-IP"))
        if real_ip:
            return real_ip

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for and len(forwarded_for) <= MAX_HEADER_LENGTH:
            client_ip = self._from_forwarded_for(forwarded_for)
            if client_ip:
                return client_ip

        return direct_ip

    def _from_forwarded_for(self, forwarded_for: str) -> str | None:
        """Pick the client entry of `X-Forwarded-For: client, proxy1, proxy2`.

        Each trusted proxy appends the address it received the request from,
        so with proxy_depth N the client is the N-th entry from the right.
        Shorter chains fall back to the leftmost entry.
        """
        ips = [ip.strip() for ip in forwarded_for.split(",") if ip.strip()]
        if not ips:
            return None

        if 0 < self.proxy_depth <= len(ips):
            candidate = ips[-self.proxy_depth]
        else:
            candidate = ips[0]

        client_ip = self._valid_ip(candidate)
        if client_ip is None:
            logger.warning("Invalid IP in X-Forwarded-For")
        return client_ip
