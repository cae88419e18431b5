"""Gunny API request models.

Pydantic v2 models for HTTP request validation and documentation. Decoded
bodies that do not conform are rejected before the proxy sees them.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from gunny_api.utils.sanitizers import clean_text


class TokenRequest(BaseModel):
    """Body of POST /token (form-encoded or JSON).

    Attributes:
        grant_type: Must be `client_credentials`.

    Other parameters (including `scope`) are ignored; only gunny:generate is
    ever granted. Length is bounded by the 4 KB body cap.
    """

    grant_type: StrictStr | None = Field(None, description="OAuth2 grant type")

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"example": {"grant_type": "client_credentials"}},
    )


class GenerateRequest(BaseModel):
    """HTTP POST body for /api/generate.

    Attributes:
        prompt: User prompt (required; emptiness and length are checked by the proxy)
        system_prompt: Optional persona override
        temperature: Optional sampling override (honoured only when enabled)
        max_tokens: Optional output length override (honoured only when enabled)
    """

    prompt: StrictStr = Field(..., description="User prompt for GunnyBot")
    system_prompt: StrictStr | None = Field(None, description="Optional system prompt override")
    temperature: float | None = Field(None, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int | None = Field(None, gt=0, description="Maximum tokens to generate")

    @field_validator("prompt", "system_prompt", mode="after")
    @classmethod
    def clean_control_chars(cls, v: str | None) -> str | None:
        """Strip null bytes and control characters, then trim."""
        if v is None:
            return None
        return clean_text(v)

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "prompt": "tell me a joke",
                "system_prompt": None,
            }
        },
    )
