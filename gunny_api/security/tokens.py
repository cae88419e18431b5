"""Access token issuance and verification (OAuth2 client credentials).

Tokens are self-contained HMAC-signed JWTs. Nothing is persisted: validity
is decided solely by signature, expiry and scope at verification time.

Claims structure:
    {
        "sub": "gunny-client",      # client id
        "scope": "gunny:generate",
        "iat": 1764633600,
        "exp": 1764633900
    }

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import time
from collections.abc import Callable

import jwt
from pydantic import BaseModel, Field

from gunny_api.errors import ErrorCode, GatewayError
from gunny_api.security.credentials import ClientCredential, parse_basic_auth
from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)

GENERATE_SCOPE = "gunny:generate"
GRANT_TYPE_CLIENT_CREDENTIALS = "client_credentials"

BEARER_REALM = 'Bearer realm="gunny"'
BASIC_REALM = 'Basic realm="gunny"'


class TokenClaims(BaseModel):
    """Decoded access token claims."""

    sub: str = Field(..., description="Client id the token was issued to")
    scope: str = Field(..., description="Space delimited granted scopes")
    iat: int = Field(..., description="Issued at (unix seconds)")
    exp: int = Field(..., description="Expires at (unix seconds)")

    @property
    def scopes(self) -> set[str]:
        return set(self.scope.split())


class IssuedToken(BaseModel):
    """Result of a successful client-credentials grant."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    claims: TokenClaims


class TokenIssuer:
    """Verifies client credentials and mints signed access tokens.

    Attributes:
        credential: The configured client identity.
        ttl: Token lifetime in seconds.
    """

    def __init__(
        self,
        credential: ClientCredential,
        signing_key: str,
        ttl: int,
        algorithm: str = "HS256",
        scope: str = GENERATE_SCOPE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.credential = credential
        self.ttl = ttl
        self.algorithm = algorithm
        self.scope = scope
        self._signing_key = signing_key
        self._clock = clock
        logger.info(f"TokenIssuer initialized (alg={algorithm}, ttl={ttl}s, scope={scope})")

    def authenticate_client(self, authorization: str | None) -> str:
        """Check the Basic credentials of the token request.

        Returns:
            The authenticated client id.

        Raises:
            GatewayError: invalid_client on absent, malformed or wrong credentials.
        """
        presented = parse_basic_auth(authorization)
        if presented is None:
            logger.warning("Token request with missing or malformed Basic credentials")
            raise GatewayError(
                ErrorCode.INVALID_CLIENT,
                "Missing or invalid Basic auth",
                headers={"WWW-Authenticate": BASIC_REALM},
            )

        presented_id, presented_secret = presented
        if not self.credential.matches(presented_id, presented_secret):
            logger.warning("Token request with client credential mismatch")
            raise GatewayError(
                ErrorCode.INVALID_CLIENT,
                "Client authentication failed",
                headers={"WWW-Authenticate": BASIC_REALM},
            )

        return self.credential.client_id

    def issue(self, authorization: str | None, grant_type: str | None) -> IssuedToken:
        """Run the client-credentials grant.

        Args:
            authorization: Raw Authorization header (Basic).
            grant_type: `grant_type` parameter from the request body.

        Returns:
            IssuedToken with the serialized JWT.

        Raises:
            GatewayError: invalid_client, invalid_request or unsupported_grant_type.
        """
        return self.grant(self.authenticate_client(authorization), grant_type)

    def grant(self, client_id: str, grant_type: str | None) -> IssuedToken:
        """Sign a token for an already authenticated client."""
        if not grant_type:
            raise GatewayError(ErrorCode.INVALID_REQUEST, "Missing grant_type")
        if grant_type != GRANT_TYPE_CLIENT_CREDENTIALS:
            raise GatewayError(
                ErrorCode.UNSUPPORTED_GRANT_TYPE,
                f"Only {GRANT_TYPE_CLIENT_CREDENTIALS} is supported",
            )

        now = int(self._clock())
        claims = TokenClaims(sub=client_id, scope=self.scope, iat=now, exp=now + self.ttl)
        token = jwt.encode(claims.model_dump(), self._signing_key, algorithm=self.algorithm)

        logger.info(f"Access token issued: sub={client_id}, expires_in={self.ttl}s")
        return IssuedToken(access_token=token, expires_in=self.ttl, claims=claims)


class TokenVerifier:
    """Validates bearer tokens presented to protected operations.

    Signature, format and expiry failures are reported identically as
    `invalid_token` so callers cannot tell which check failed.

    Attributes:
        required_scope: Scope that must be present in the token.
        enforce_scope: Whether the scope check runs at all.
        scope_error_code: Error reported when the scope is missing.
    """

    def __init__(
        self,
        signing_key: str,
        algorithm: str = "HS256",
        required_scope: str = GENERATE_SCOPE,
        enforce_scope: bool = True,
        scope_error_code: ErrorCode = ErrorCode.INSUFFICIENT_SCOPE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if scope_error_code not in (ErrorCode.INSUFFICIENT_SCOPE, ErrorCode.INVALID_TOKEN):
            raise ValueError(f"Unsupported scope error code: {scope_error_code}")
        self.algorithm = algorithm
        self.required_scope = required_scope
        self.enforce_scope = enforce_scope
        self.scope_error_code = scope_error_code
        self._signing_key = signing_key
        self._clock = clock
        logger.info(
            f"TokenVerifier initialized (alg={algorithm}, scope={required_scope}, "
            f"enforce_scope={enforce_scope}, scope_error={scope_error_code.value})"
        )

    @staticmethod
    def extract_bearer(authorization: str | None) -> str | None:
        """Return the token of a `Bearer <token>` header, or None."""
        if not authorization:
            return None
        parts = authorization.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None
        return parts[1]

    def _invalid_token(self) -> GatewayError:
        return GatewayError(
            ErrorCode.INVALID_TOKEN,
            "Token invalid or expired",
            headers={"WWW-Authenticate": f'{BEARER_REALM}, error="invalid_token"'},
        )

    def verify(self, authorization: str | None) -> TokenClaims:
        """Verify a presented `Authorization: Bearer <token>` header.

        Returns:
            Decoded claims.

        Raises:
            GatewayError: invalid_token, or the configured scope error.
        """
        token = self.extract_bearer(authorization)
        if token is None:
            logger.warning("Missing or malformed Bearer authorization")
            raise GatewayError(
                ErrorCode.INVALID_TOKEN,
                "Missing or malformed Authorization header",
                headers={"WWW-Authenticate": BEARER_REALM},
            )

        try:
            # Expiry is checked below against the injected clock
            payload = jwt.decode(
                token,
                self._signing_key,
                algorithms=[self.algorithm],
                options={
                    "verify_signature": True,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_aud": False,
                    "require": ["sub", "scope", "iat", "exp"],
                },
            )
            claims = TokenClaims.model_validate(payload)
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {type(e).__name__}")
            raise self._invalid_token() from e
        except ValueError as e:
            logger.warning("Token claims failed validation")
            raise self._invalid_token() from e

        if claims.exp <= int(self._clock()):
            logger.info(f"Expired token presented: sub={claims.sub}")
            raise self._invalid_token()

        if self.enforce_scope and self.required_scope not in claims.scopes:
            logger.warning(f"Token missing scope {self.required_scope}: sub={claims.sub}")
            if self.scope_error_code is ErrorCode.INVALID_TOKEN:
                raise self._invalid_token()
            raise GatewayError(
                ErrorCode.INSUFFICIENT_SCOPE,
                f"Token lacks required scope {self.required_scope}",
                headers={
                    "WWW-Authenticate": (
                        f'{BEARER_REALM}, error="insufficient_scope", '
                        f'scope="{self.required_scope}"'
                    )
                },
            )

        return claims
