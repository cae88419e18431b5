"""LLM backend wire models.

Request and response shapes of the OpenAI-compatible chat completions
endpoint served by the backend (llama.cpp server), plus the explicit result
type returned by the backend client.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One chat message."""

    role: Literal["system", "user", "assistant"]
    content: str


class BackendChatRequest(BaseModel):
    """Chat completion request sent to the backend.

    Always exactly two messages: the persona (system) and the user prompt.
    """

    model: str
    messages: list[ChatMessage] = Field(..., min_length=2, max_length=2)
    temperature: float
    top_p: float
    top_k: int
    repeat_penalty: float
    stop: list[str] = Field(default_factory=list)
    max_tokens: int
    stream: bool = False

    @classmethod
    def compose(
        cls,
        model: str,
        system_prompt: str,
        user_prompt: str,
        **sampling: Any,
    ) -> "BackendChatRequest":
        """Build the system + user message pair with sampling parameters."""
        return cls(
            model=model,
            messages=[
                ChatMessage(role="system", content=system_prompt),
                ChatMessage(role="user", content=user_prompt),
            ],
            **sampling,
        )

    def to_payload(self) -> dict[str, Any]:
        """JSON body for the backend; empty stop list is omitted."""
        return self.model_dump(exclude={"stop"} if not self.stop else set())


class _CompletionMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str | None = None


class _CompletionChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: _CompletionMessage | None = None


class ChatCompletion(BaseModel):
    """Subset of the backend response we rely on."""

    model_config = ConfigDict(extra="ignore")

    choices: list[_CompletionChoice] = Field(default_factory=list)

    def first_content(self) -> str | None:
        """Text of the first choice, or None if absent."""
        if not self.choices or self.choices[0].message is None:
            return None
        return self.choices[0].message.content


class BackendOutcome(str, Enum):
    """Classification of one backend call."""

    OK = "ok"
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    UPSTREAM_ERROR = "upstream_error"
    MALFORMED = "malformed"
    EMPTY = "empty"


@dataclass(frozen=True)
class BackendResult:
    """Outcome of one backend call.

    Attributes:
        outcome: Classification of the call.
        text: Trimmed reply text (only for OK).
        status_code: Backend HTTP status, when a response was received.
        detail: Server-side diagnostic; never sent to callers.
    """

    outcome: BackendOutcome
    text: str | None = None
    status_code: int | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is BackendOutcome.OK
