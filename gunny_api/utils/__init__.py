"""Utility modules."""

from gunny_api.utils.logging import get_logger, setup_logging
from gunny_api.utils.sanitizers import clean_text, redact_url
from gunny_api.utils.validators import validate_correlation_id

__all__ = [
    "get_logger",
    "setup_logging",
    "clean_text",
    "redact_url",
    "validate_correlation_id",
]
