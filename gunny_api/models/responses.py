"""Gunny API response models.

Pydantic v2 models for HTTP response validation and documentation.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TokenResponse(BaseModel):
    """Successful client-credentials grant (RFC 6749 section 5.1)."""

    access_token: str = Field(..., description="Signed bearer token")
    token_type: str = Field(default="Bearer", description="Always Bearer")
    expires_in: int = Field(..., gt=0, description="Token lifetime in seconds")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "Bearer",
                "expires_in": 300,
            }
        }
    )


class GenerateResponse(BaseModel):
    """Successful generation."""

    reply: str = Field(..., description="Trimmed reply from GunnyBot")

    model_config = ConfigDict(
        json_schema_extra={"example": {"reply": "Drop and give me twenty, maggot."}}
    )


class ErrorResponse(BaseModel):
    """Standard error response for all API endpoints.

    Attributes:
        error: Error code (snake_case identifier)
        error_description: Optional human-readable description
    """

    error: str = Field(..., description="Error code (e.g., 'invalid_token')")
    error_description: str | None = Field(None, description="Human-readable description")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "invalid_token",
                "error_description": "Token invalid or expired",
            }
        }
    )


class BackendInfo(BaseModel):
    """Backend target configuration (no secrets)."""

    url: str
    model: str
    timeout_sec: float


class HealthResponse(BaseModel):
    """Health report. The app only serves once every component is built."""

    status: Literal["ok"] = "ok"
    service: str
    version: str
    gunny: Literal["ready"] = "ready"
    backend: BackendInfo
