"""Structured JSON logging configuration using structlog with rotation.

Combines structlog for structured logging with sensitive data sanitization
(CWE-532 mitigation): tokens, client secrets and IP addresses never reach
log output in clear text.

Author: Gunny Team
Version: 1.0.0
"""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from gunny_api.config.settings import Settings

# ============================================================================
# SENSITIVE DATA SANITIZATION (CWE-532 mitigation)
# ============================================================================

SENSITIVE_PATTERNS: dict[str, tuple[str, str]] = {
    "jwt": (r"\beyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}", "[JWT_REDACTED]"),
    "bearer_token": (r"Bearer\s+[A-Za-z0-9_\-\.]+", "Bearer [TOKEN_REDACTED]"),
    "basic_auth": (r"Basic\s+[A-Za-z0-9+/=]+", "Basic [CREDENTIALS_REDACTED]"),
    "client_secret": (
        r'(?i)(?:client_secret|jwt_secret|secret)["\']?\s*[:=]\s*["\']?([^\s"\',]+)',
        r"secret=[SECRET_REDACTED]",
    ),
    "password": (
        r'(?i)(?:password|passwd|pwd)["\']?\s*[:=]\s*["\']?([^\s"\']+)',
        r"password=[PASSWORD_REDACTED]",
    ),
    "url_userinfo": (r"(https?://)[^/\s:@]+:[^/\s@]+@", r"\1[USER]:[PASSWORD]@"),
    "ipv4": (r"\b(\d{1,3}\.\d{1,3}\.)\d{1,3}\.\d{1,3}\b", r"\1***.***"),
}

_COMPILED_PATTERNS = [
    (re.compile(regex, flags=re.IGNORECASE), replacement)
    for regex, replacement in SENSITIVE_PATTERNS.values()
]


def _scrub(text: str) -> str:
    for regex, replacement in _COMPILED_PATTERNS:
        text = regex.sub(replacement, text)
    return text


def sanitize_for_logging(message: Any) -> str:
    """Render `message` as text with credentials and addresses masked.

    Containers are flattened element by element before scrubbing.
    """
    if isinstance(message, dict):
        return str({str(key): sanitize_for_logging(item) for key, item in message.items()})
    if isinstance(message, list | tuple):
        return str([sanitize_for_logging(item) for item in message])
    return _scrub(str(message))


def sanitize_event_dict(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor: mask text and container values, leave numbers alone."""
    return {
        key: sanitize_for_logging(value) if isinstance(value, str | dict | list | tuple) else value
        for key, value in event_dict.items()
    }


BYTES_PER_MB = 1024 * 1024


def log_config_summary(config: Settings) -> None:
    """Log the effective configuration once at startup (no secrets)."""
    logger = get_logger("gunny_api.config")
    logger.info(
        f"Server: {config.host}:{config.port}, "
        f"proxy_headers={config.enable_proxy_headers}, cors={config.cors_origins}"
    )
    logger.info(
        f"OAuth: client_id={config.oauth_client_id}, alg={config.jwt_algorithm}, "
        f"ttl={config.jwt_expires_in}s, enforce_scope={config.enforce_scope}, "
        f"scope_error={config.scope_error_code}"
    )
    logger.info(
        f"LLM backend: model={config.llm_model}, timeout={config.llm_timeout_sec}s, "
        f"sampling_overrides={config.allow_sampling_overrides}"
    )
    logger.info(
        "Rate limits: "
        f"token={config.rate_limit_token_requests}/{config.token_window_sec}s, "
        f"generate={config.rate_limit_generate_requests}/{config.generate_window_sec}s"
    )
    if config.uses_dev_secrets:
        logger.warning(
            "Built-in development client secret or JWT signing key in use. "
            "Set OAUTH_CLIENT_SECRET and JWT_SECRET before exposing this service."
        )


# ============================================================================
# LOGGING SETUP
# ============================================================================

# Libraries whose INFO lines duplicate our access log or leak peer addresses
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _processor_chain() -> list[structlog.types.Processor]:
    """Processors applied to both structlog and foreign (stdlib) records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        sanitize_event_dict,  # type: ignore[list-item]
    ]


def _attach(
    root: logging.Logger,
    handler: logging.Handler,
    renderer: structlog.types.Processor,
    chain: list[structlog.types.Processor],
    level: int,
) -> None:
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=chain)
    )
    handler.setLevel(level)
    root.addHandler(handler)


def setup_logging(config: Settings | None = None) -> None:
    """Route structlog and stdlib logging through one sanitizing pipeline.

    Console output is human readable (colored on a TTY); the optional
    rotating file gets JSON lines. Calling it again replaces the handlers.
    """
    if config is None:
        from gunny_api.config.settings import settings as config

    level = getattr(logging, config.log_level, logging.INFO)
    chain = _processor_chain()

    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(level)
    for existing in list(root.handlers):
        root.removeHandler(existing)

    if config.log_console_enabled:
        _attach(
            root,
            logging.StreamHandler(sys.stdout),
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
            chain,
            level,
        )

    if config.log_to_file:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            filename=config.log_dir / "gunny-api.log",
            maxBytes=config.log_file_max_mb * BYTES_PER_MB,
            backupCount=config.log_file_backup_count,
            encoding="utf-8",
        )
        file_renderer = (
            structlog.processors.JSONRenderer()
            if config.log_json_format
            else structlog.dev.ConsoleRenderer(colors=False)
        )
        _attach(root, rotating, file_renderer, chain, level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    log_config_summary(config)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module logger bound to the shared pipeline."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]
