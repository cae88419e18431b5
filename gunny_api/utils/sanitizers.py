"""Input/Output Sanitization Utilities.

Cleans caller-supplied text before it reaches the backend and strips
credentials from values that are reported back (health endpoint, logs).

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from urllib.parse import urlsplit, urlunsplit


def clean_text(text: str) -> str:
    """Remove null bytes and control characters, then trim.

    Newlines and tabs are kept: prompts are multi-line text.

    Examples:
        >>> clean_text("  haha \\n")
        'haha'

        >>> clean_text("Test\\x00null\\x07bell")
        'Testnullbell'
    """
    if not text:
        return ""

    text = "".join(char for char in text if ord(char) >= 0x20 or char in "\n\t")
    return text.strip()


def redact_url(url: str) -> str:
    """Drop userinfo, query string and fragment from a URL.

    Examples:
        >>> redact_url("http://user:pw@10.0.0.5:8080/v1/chat/completions?key=abc")
        'http://10.0.0.5:8080/v1/chat/completions'
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{parts.port}" if parts.port else host
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))
