"""Gateway - composition of the token and generation pipelines.

Exposes the two protected operations and fixes the order of checks:

    obtain_token: rate limit -> client authentication -> body decoding -> grant
    generate:     rate limit -> bearer token -> body decoding -> proxy call

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import httpx
from pydantic import ValidationError

from gunny_api.config.settings import Settings
from gunny_api.errors import ErrorCode, GatewayError
from gunny_api.models.requests import GenerateRequest, TokenRequest
from gunny_api.rate_limiter.fixed_window import (
    ENDPOINT_GENERATE,
    ENDPOINT_TOKEN,
    FixedWindowRateLimiter,
    WindowLimit,
)
from gunny_api.security.credentials import ClientCredential
from gunny_api.security.tokens import IssuedToken, TokenIssuer, TokenVerifier
from gunny_api.services.client_ip_service import ClientIPExtractor
from gunny_api.services.generation_proxy import GenerationProxy, SamplingDefaults
from gunny_api.services.llm_client import LLMClient
from gunny_api.services.prompt_manager import PromptManager
from gunny_api.utils.logging import get_logger
from gunny_api.utils.payloads import decode_json_body, decode_token_body

logger = get_logger(__name__)


def describe_validation_error(error: ValidationError) -> str:
    """Caller-safe summary of a schema violation (field names only, no input values)."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "body"
        problems.append(f"{location}: {item.get('msg', 'invalid')}")
    return "; ".join(problems[:5])


class Gateway:
    """Owns every component and runs the two exposed operations.

    Attributes:
        issuer: Token issuer (credential check + signing).
        verifier: Bearer token verifier.
        rate_limiter: Fixed-window limiter keyed by (client IP, endpoint class).
        proxy: Generation proxy.
        ip_extractor: Derives the caller identity from a request.
    """

    def __init__(
        self,
        issuer: TokenIssuer,
        verifier: TokenVerifier,
        rate_limiter: FixedWindowRateLimiter,
        proxy: GenerationProxy,
        ip_extractor: ClientIPExtractor | None = None,
    ) -> None:
        self.issuer = issuer
        self.verifier = verifier
        self.rate_limiter = rate_limiter
        self.proxy = proxy
        self.ip_extractor = ip_extractor or ClientIPExtractor()

    @classmethod
    def from_settings(
        cls,
        config: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "Gateway":
        """Build all components from configuration.

        Args:
            config: Application settings.
            transport: Optional httpx transport for the backend client.
        """
        credential = ClientCredential(config.oauth_client_id, config.oauth_client_secret)
        issuer = TokenIssuer(
            credential=credential,
            signing_key=config.jwt_secret,
            ttl=config.jwt_expires_in,
            algorithm=config.jwt_algorithm,
        )
        verifier = TokenVerifier(
            signing_key=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            enforce_scope=config.enforce_scope,
            scope_error_code=ErrorCode(config.scope_error_code),
        )
        rate_limiter = FixedWindowRateLimiter(
            {
                ENDPOINT_TOKEN: WindowLimit(
                    config.rate_limit_token_requests, config.token_window_sec
                ),
                ENDPOINT_GENERATE: WindowLimit(
                    config.rate_limit_generate_requests, config.generate_window_sec
                ),
            }
        )
        llm_client = LLMClient(
            url=config.llm_url,
            timeout=config.llm_timeout_sec,
            connect_timeout=config.llm_connect_timeout_sec,
            transport=transport,
        )
        proxy = GenerationProxy(
            llm_client=llm_client,
            prompt_manager=PromptManager(config.persona_file),
            model=config.llm_model,
            sampling=SamplingDefaults(
                temperature=config.temperature,
                top_p=config.top_p,
                top_k=config.top_k,
                repeat_penalty=config.repeat_penalty,
                max_tokens=config.max_tokens,
                max_tokens_cap=config.max_tokens_cap,
                stop=tuple(config.stop_sequences),
            ),
            allow_sampling_overrides=config.allow_sampling_overrides,
            max_prompt_length=config.max_prompt_length,
            max_system_prompt_length=config.max_system_prompt_length,
        )
        ip_extractor = ClientIPExtractor.from_csv(
            config.trusted_proxies,
            enable_proxy_headers=config.enable_proxy_headers,
            proxy_depth=config.proxy_depth,
            use_cloudflare=config.use_cloudflare,
        )
        logger.info("Gateway initialized")
        return cls(issuer, verifier, rate_limiter, proxy, ip_extractor)

    def enforce_rate_limit(self, identity: str | None, endpoint_class: str) -> None:
        """Raise rate_limited when the caller exceeded the endpoint class limit."""
        decision = self.rate_limiter.hit(identity, endpoint_class)
        if not decision.allowed:
            raise GatewayError(
                ErrorCode.RATE_LIMITED,
                "Too many requests, slow down",
                headers={"Retry-After": str(decision.retry_after)},
            )

    def obtain_token(
        self,
        identity: str | None,
        authorization: str | None,
        raw_body: bytes,
        content_type: str | None = None,
    ) -> IssuedToken:
        """Client-credentials grant.

        Args:
            identity: Caller IP (rate-limit key).
            authorization: Raw Authorization header (Basic).
            raw_body: Undecoded request body (form-encoded or JSON).
            content_type: Content-Type header of the request.
        """
        self.enforce_rate_limit(identity, ENDPOINT_TOKEN)
        client_id = self.issuer.authenticate_client(authorization)

        try:
            token_request = TokenRequest.model_validate(decode_token_body(raw_body, content_type))
        except ValidationError as e:
            logger.warning(f"Malformed token request from client {client_id}")
            raise GatewayError(ErrorCode.INVALID_REQUEST, describe_validation_error(e)) from e

        return self.issuer.grant(client_id, token_request.grant_type)

    async def generate(
        self,
        identity: str | None,
        authorization: str | None,
        raw_body: bytes,
    ) -> str:
        """Authorized, rate-limited generation.

        Args:
            identity: Caller IP (rate-limit key).
            authorization: Raw Authorization header (Bearer).
            raw_body: Undecoded JSON request body.

        Returns:
            Trimmed reply text.
        """
        self.enforce_rate_limit(identity, ENDPOINT_GENERATE)
        claims = self.verifier.verify(authorization)

        body = decode_json_body(raw_body)
        if not isinstance(body, dict):
            raise GatewayError(ErrorCode.INVALID_REQUEST, "JSON object body required")
        try:
            request = GenerateRequest.model_validate(body)
        except ValidationError as e:
            raise GatewayError(ErrorCode.INVALID_REQUEST, describe_validation_error(e)) from e

        return await self.proxy.generate(claims, request)

    async def close(self) -> None:
        """Release backend connections."""
        await self.proxy.llm_client.close()
