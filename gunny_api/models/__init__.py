"""Gunny API models module."""

from gunny_api.models.backend import BackendChatRequest, BackendOutcome, BackendResult
from gunny_api.models.requests import GenerateRequest, TokenRequest
from gunny_api.models.responses import ErrorResponse, GenerateResponse, TokenResponse

__all__ = [
    "BackendChatRequest",
    "BackendOutcome",
    "BackendResult",
    "GenerateRequest",
    "TokenRequest",
    "ErrorResponse",
    "GenerateResponse",
    "TokenResponse",
]
