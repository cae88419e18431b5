"""Security-hardened validators for caller-supplied identifiers.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

MAX_CORRELATION_ID_LENGTH = 64

_ALLOWED_ID_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_.")


def validate_correlation_id(correlation_id: str | None) -> tuple[bool, str | None]:
    """Validate a caller-supplied X-Correlation-ID header.

    SECURITY (CWE-117 mitigation): The value is echoed in responses and bound
    into every log line, so only short token-like strings are accepted.
    Character-set check only, no regex (ReDoS-safe).

    Args:
        correlation_id: Header value.

    Returns:
        Tuple of (is_valid, error_message).

    Examples:
        >>> validate_correlation_id("550e8400-e29b-41d4-a716-446655440000")
        (True, None)

        >>> validate_correlation_id("bad\\r\\nSet-Cookie: x")
        (False, 'Correlation ID contains invalid characters')
    """
    if not correlation_id:
        return False, "Correlation ID is required"

    if len(correlation_id) > MAX_CORRELATION_ID_LENGTH:
        return False, "Correlation ID too long"

    if any(char not in _ALLOWED_ID_CHARS for char in correlation_id):
        return False, "Correlation ID contains invalid characters"

    return True, None
