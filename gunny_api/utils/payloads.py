"""Request body decoding.

Raw bodies are decoded only after the caller has been rate limited and
authenticated. Anything that cannot be decoded becomes None (JSON) or an
empty dict (token form), never an exception.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import json
from typing import Any
from urllib.parse import parse_qs

from gunny_api.utils.logging import get_logger

logger = get_logger(__name__)


def decode_json_body(raw: bytes) -> Any | None:
    """Decode a JSON body; None when empty or undecodable.

    Deeply nested documents exhaust the decoder's recursion limit and are
    treated like any other malformed body.

    >>> decode_json_body(b'{"prompt": "hi"}')
    {'prompt': 'hi'}
    >>> decode_json_body(b"[" * 100000) is None
    True
    """
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        logger.debug("Request body is not decodable JSON")
        return None


def decode_token_body(raw: bytes, content_type: str | None) -> dict[str, Any]:
    """Decode a /token body sent as JSON or application/x-www-form-urlencoded.

    >>> decode_token_body(b"grant_type=client_credentials", None)
    {'grant_type': 'client_credentials'}
    """
    media_type = (content_type or "").split(";", 1)[0].strip().lower()

    if media_type == "application/json":
        data = decode_json_body(raw)
        return data if isinstance(data, dict) else {}

    try:
        form = parse_qs(raw.decode("utf-8"), keep_blank_values=True)
    except UnicodeDecodeError:
        return {}
    return {key: values[0] for key, values in form.items() if values}
