"""Generation Proxy - GunnyBot prompt composition and backend outcome mapping.

Validates the caller prompt, composes the backend chat request (persona +
prompt + sampling parameters), calls the LLM backend once and maps the
classified outcome onto the client error taxonomy.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from dataclasses import dataclass

from gunny_api.errors import ErrorCode, GatewayError
from gunny_api.models.backend import BackendChatRequest, BackendOutcome, BackendResult
from gunny_api.models.requests import GenerateRequest
from gunny_api.security.tokens import TokenClaims
from gunny_api.services.llm_client import LLMClient
from gunny_api.services.prompt_manager import PromptManager
from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)

# Backend outcome -> (client error, safe description)
OUTCOME_ERRORS: dict[BackendOutcome, tuple[ErrorCode, str]] = {
    BackendOutcome.UNREACHABLE: (ErrorCode.BAD_GATEWAY, "LLM backend not reachable"),
    BackendOutcome.TIMEOUT: (ErrorCode.GATEWAY_TIMEOUT, "LLM backend timed out"),
    BackendOutcome.UPSTREAM_ERROR: (ErrorCode.BAD_GATEWAY, "Error calling LLM backend"),
    BackendOutcome.MALFORMED: (ErrorCode.BAD_GATEWAY, "No reply from LLM"),
    BackendOutcome.EMPTY: (ErrorCode.BAD_GATEWAY, "No reply from LLM"),
}


@dataclass(frozen=True)
class SamplingDefaults:
    """Server-side sampling parameters."""

    temperature: float = 1.1
    top_p: float = 0.9
    top_k: int = 40
    repeat_penalty: float = 1.18
    max_tokens: int = 220
    max_tokens_cap: int = 512
    stop: tuple[str, ...] = ("</s>", "[INST]")


class GenerationProxy:
    """Turns a validated generate request into one backend call.

    Attributes:
        llm_client: Backend transport.
        prompt_manager: Source of the default persona.
        model: Backend model identifier.
        sampling: Server-side sampling defaults.
        allow_sampling_overrides: Honour caller temperature / max_tokens.
        max_prompt_length: Upper bound for the cleaned prompt.
        max_system_prompt_length: Upper bound for a system prompt override.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        prompt_manager: PromptManager,
        model: str,
        sampling: SamplingDefaults | None = None,
        allow_sampling_overrides: bool = False,
        max_prompt_length: int = 2000,
        max_system_prompt_length: int = 4000,
    ) -> None:
        self.llm_client = llm_client
        self.prompt_manager = prompt_manager
        self.model = model
        self.sampling = sampling or SamplingDefaults()
        self.allow_sampling_overrides = allow_sampling_overrides
        self.max_prompt_length = max_prompt_length
        self.max_system_prompt_length = max_system_prompt_length
        logger.info(
            f"GenerationProxy initialized (model={model}, "
            f"max_prompt_length={max_prompt_length}, "
            f"sampling_overrides={allow_sampling_overrides})"
        )

    def validate(self, request: GenerateRequest) -> None:
        """Reject empty or over-length input before any network call.

        Raises:
            GatewayError: invalid_request.
        """
        if not request.prompt:
            raise GatewayError(ErrorCode.INVALID_REQUEST, 'Missing "prompt" string in JSON body')

        if len(request.prompt) > self.max_prompt_length:
            raise GatewayError(
                ErrorCode.INVALID_REQUEST,
                f"prompt exceeds {self.max_prompt_length} characters",
            )

        if request.system_prompt and len(request.system_prompt) > self.max_system_prompt_length:
            raise GatewayError(
                ErrorCode.INVALID_REQUEST,
                f"system_prompt exceeds {self.max_system_prompt_length} characters",
            )

    def build_chat_request(self, request: GenerateRequest) -> BackendChatRequest:
        """Compose persona, prompt and sampling parameters for the backend."""
        temperature = self.sampling.temperature
        max_tokens = self.sampling.max_tokens

        if self.allow_sampling_overrides:
            if request.temperature is not None:
                temperature = request.temperature
            if request.max_tokens is not None:
                max_tokens = min(request.max_tokens, self.sampling.max_tokens_cap)
        elif request.temperature is not None or request.max_tokens is not None:
            logger.debug("Ignoring caller sampling overrides (disabled)")

        return BackendChatRequest.compose(
            model=self.model,
            system_prompt=self.prompt_manager.system_prompt(request.system_prompt),
            user_prompt=request.prompt,
            temperature=temperature,
            top_p=self.sampling.top_p,
            top_k=self.sampling.top_k,
            repeat_penalty=self.sampling.repeat_penalty,
            stop=list(self.sampling.stop),
            max_tokens=max_tokens,
        )

    @staticmethod
    def map_result(result: BackendResult) -> str:
        """Return the reply text or raise the mapped client error."""
        if result.ok and result.text:
            return result.text

        code, description = OUTCOME_ERRORS.get(
            result.outcome, (ErrorCode.BAD_GATEWAY, "No reply from LLM")
        )
        raise GatewayError(code, description)

    async def generate(self, claims: TokenClaims, request: GenerateRequest) -> str:
        """Generate a GunnyBot reply.

        Args:
            claims: Verified token claims of the caller.
            request: Schema-validated request body.

        Returns:
            Trimmed reply text.

        Raises:
            GatewayError: invalid_request, bad_gateway or gateway_timeout.
        """
        self.validate(request)
        chat_request = self.build_chat_request(request)

        logger.info(
            f"Generating reply for sub={claims.sub} "
            f"(prompt={len(request.prompt)} chars, "
            f"custom_system_prompt={bool(request.system_prompt)})"
        )

        result = await self.llm_client.chat(chat_request)
        if not result.ok:
            logger.warning(
                f"Generation failed for sub={claims.sub}: outcome={result.outcome.value}, "
                f"status={result.status_code}"
            )
        return self.map_result(result)
