"""Security package for Gunny API.

Client authentication and bearer token issuance/verification.

Author: Gunny Team
Version: 1.0.0
"""

from gunny_api.security.credentials import ClientCredential, parse_basic_auth
from gunny_api.security.tokens import (
    GENERATE_SCOPE,
    IssuedToken,
    TokenClaims,
    TokenIssuer,
    TokenVerifier,
)

__all__ = [
    "GENERATE_SCOPE",
    "ClientCredential",
    "IssuedToken",
    "TokenClaims",
    "TokenIssuer",
    "TokenVerifier",
    "parse_basic_auth",
]
