"""Client credential store and HTTP Basic parsing for the token endpoint.

Holds the single static OAuth client identity and compares presented
credentials in constant time.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import base64
import binascii
import hashlib
import hmac
from dataclasses import dataclass, field

from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)


def _digest(value: str) -> bytes:
    return hashlib.sha256(value.encode("utf-8")).digest()


@dataclass(frozen=True)
class ClientCredential:
    """Static OAuth client identity (id + secret), loaded once at startup."""

    client_id: str
    client_secret: str = field(repr=False)

    def matches(self, presented_id: str, presented_secret: str) -> bool:
        """Compare presented credentials in constant time.

        Both sides are hashed first so the comparison runs over equal-length
        digests, and both the id and the secret are always compared.
        """
        id_ok = hmac.compare_digest(_digest(presented_id), _digest(self.client_id))
        secret_ok = hmac.compare_digest(_digest(presented_secret), _digest(self.client_secret))
        return id_ok & secret_ok


def parse_basic_auth(header_value: str | None) -> tuple[str, str] | None:
    """Parse an `Authorization: Basic base64(id:secret)` header.

    Args:
        header_value: Raw Authorization header value.

    Returns:
        `(client_id, client_secret)` or None when absent or malformed.

    Examples:
        >>> parse_basic_auth("Basic Z3Vubnk6czNjcjN0")
        ('gunny', 's3cr3t')

        >>> parse_basic_auth("Bearer abc") is None
        True
    """
    if not header_value:
        return None

    scheme, _, encoded = header_value.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        return None

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        logger.debug("Undecodable Basic credentials")
        return None

    # RFC 7617: the user-id cannot contain ':', the password may
    client_id, sep, client_secret = decoded.partition(":")
    if not sep or not client_id or not client_secret:
        return None

    return client_id, client_secret
