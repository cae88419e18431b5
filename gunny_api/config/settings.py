"""Application configuration using Pydantic v2 Settings.

Manages OAuth client credentials, token signing, LLM backend target,
sampling defaults, rate limits and logging, loaded from environment variables.
Values are read once at startup; nothing is hot-reloaded.

Author: Gunny Team
Version: 1.0.0
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_CLIENT_SECRET = "SuperSecret123!"
DEV_JWT_SECRET = "gunny-dev-signing-key-change-me-in-production-never-use-this-value"

# Minimum HMAC key size per algorithm (digest length)
HMAC_MIN_KEY_BYTES = {"HS256": 32, "HS384": 48, "HS512": 64}


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ========================================================================
    # Server Configuration
    # ========================================================================
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, ge=1, le=65535, alias="PORT")

    # ========================================================================
    # OAuth2 Client Credentials / Token Configuration
    # ========================================================================
    oauth_client_id: str = Field(default="gunny-client", min_length=1, alias="OAUTH_CLIENT_ID")
    oauth_client_secret: str = Field(
        default=DEV_CLIENT_SECRET,
        min_length=1,
        alias="OAUTH_CLIENT_SECRET",
        description="Shared secret of the single OAuth client",
    )
    jwt_secret: str = Field(
        default=DEV_JWT_SECRET,
        min_length=32,
        alias="JWT_SECRET",
        description="HMAC key used to sign access tokens",
    )
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256", alias="JWT_ALGORITHM"
    )
    jwt_expires_in: int = Field(
        default=300,
        gt=0,
        le=86400,
        alias="JWT_EXPIRES_IN",
        description="Access token lifetime in seconds",
    )
    enforce_scope: bool = Field(default=True, alias="ENFORCE_SCOPE")
    # Error returned when a token lacks the gunny:generate scope
    scope_error_code: Literal["insufficient_scope", "invalid_token"] = Field(
        default="insufficient_scope", alias="SCOPE_ERROR_CODE"
    )

    # ========================================================================
    # LLM Backend (OpenAI-compatible chat completions)
    # ========================================================================
    llm_url: str = Field(
        default="http://127.0.0.1:8080/v1/chat/completions",
        alias="JETSON_LLM_URL",
    )
    llm_model: str = Field(
        default="Mistral-7B-Instruct-v0.3.Q4_K_M.gguf",
        alias="JETSON_LLM_MODEL",
    )
    llm_timeout_sec: float = Field(
        default=60.0,
        gt=0.0,
        le=600.0,
        alias="LLM_TIMEOUT_SEC",
        description="Hard deadline for a single backend call",
    )
    llm_connect_timeout_sec: float = Field(
        default=5.0, gt=0.0, le=60.0, alias="LLM_CONNECT_TIMEOUT_SEC"
    )
    persona_file: Path | None = Field(
        default=None,
        alias="GUNNY_PERSONA_FILE",
        description="Optional YAML file overriding the built-in persona",
    )

    # Sampling defaults (server-side, not client controlled unless allowed)
    temperature: float = Field(default=1.1, ge=0.0, le=2.0, alias="LLM_TEMPERATURE")
    top_p: float = Field(default=0.9, gt=0.0, le=1.0, alias="LLM_TOP_P")
    top_k: int = Field(default=40, ge=0, le=1000, alias="LLM_TOP_K")
    repeat_penalty: float = Field(default=1.18, ge=0.0, le=5.0, alias="LLM_REPEAT_PENALTY")
    max_tokens: int = Field(default=220, gt=0, alias="LLM_MAX_TOKENS")
    max_tokens_cap: int = Field(
        default=512,
        gt=0,
        alias="LLM_MAX_TOKENS_CAP",
        description="Upper bound for caller supplied max_tokens",
    )
    stop: str = Field(
        default="</s>,[INST]",
        alias="LLM_STOP",
        description="Comma separated stop sequences",
    )
    allow_sampling_overrides: bool = Field(default=False, alias="ALLOW_SAMPLING_OVERRIDES")

    # ========================================================================
    # Input Limits
    # ========================================================================
    max_prompt_length: int = Field(default=2000, gt=0, le=100000, alias="MAX_PROMPT_LENGTH")
    max_system_prompt_length: int = Field(
        default=4000, gt=0, le=100000, alias="MAX_SYSTEM_PROMPT_LENGTH"
    )

    # ========================================================================
    # Rate Limiting Configuration (fixed window, per client IP)
    # ========================================================================
    rate_limit_window_sec: int = Field(default=60, gt=0, alias="RATE_LIMIT_WINDOW_SEC")
    # Per-class windows; unset means RATE_LIMIT_WINDOW_SEC
    rate_limit_token_window_sec: int | None = Field(
        default=None, gt=0, alias="RATE_LIMIT_TOKEN_WINDOW_SEC"
    )
    rate_limit_generate_window_sec: int | None = Field(
        default=None, gt=0, alias="RATE_LIMIT_GENERATE_WINDOW_SEC"
    )
    rate_limit_token_requests: int = Field(
        default=10,
        gt=0,
        alias="RATE_LIMIT_TOKEN_REQUESTS",
        description="Max /token requests per IP per window",
    )
    rate_limit_generate_requests: int = Field(
        default=60,
        gt=0,
        alias="RATE_LIMIT_GENERATE_REQUESTS",
        description="Max /api/generate requests per IP per window",
    )

    # ========================================================================
    # CORS Configuration
    # ========================================================================
    cors_allow_origins: str = Field(default="*", alias="CORS_ALLOW_ORIGINS")

    # ========================================================================
    # Proxy & IP Extraction Configuration
    # ========================================================================
    trusted_proxies: str = Field(default="", alias="TRUSTED_PROXIES")
    enable_proxy_headers: bool = Field(default=False, alias="ENABLE_PROXY_HEADERS")
    proxy_depth: int = Field(default=1, ge=0, alias="PROXY_DEPTH")
    use_cloudflare: bool = Field(default=False, alias="USE_CLOUDFLARE")

    # ========================================================================
    # Logging Configuration
    # ========================================================================
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_to_file: bool = Field(default=False, alias="LOG_TO_FILE")
    log_dir: Path = Field(default=Path("logs"), alias="LOG_DIR")
    log_console_enabled: bool = Field(default=True, alias="LOG_CONSOLE_ENABLED")
    log_json_format: bool = Field(default=True, alias="LOG_JSON_FORMAT")
    log_file_max_mb: int = Field(default=10, ge=1, le=100, alias="LOG_FILE_MAX_MB")
    log_file_backup_count: int = Field(default=5, ge=1, le=20, alias="LOG_FILE_BACKUP_COUNT")

    # ========================================================================
    # Validators
    # ========================================================================

    @property
    def is_debug(self) -> bool:
        """Check if debug mode is enabled (LOG_LEVEL == DEBUG)."""
        return self.log_level == "DEBUG"

    @property
    def uses_dev_secrets(self) -> bool:
        """True when the built-in development client secret or signing key is active."""
        return self.oauth_client_secret == DEV_CLIENT_SECRET or self.jwt_secret == DEV_JWT_SECRET

    @property
    def token_window_sec(self) -> int:
        """Fixed window length for /token."""
        return self.rate_limit_token_window_sec or self.rate_limit_window_sec

    @property
    def generate_window_sec(self) -> int:
        """Fixed window length for /api/generate."""
        return self.rate_limit_generate_window_sec or self.rate_limit_window_sec

    @property
    def stop_sequences(self) -> list[str]:
        """Stop sequences parsed from the comma separated LLM_STOP value."""
        return [s.strip() for s in self.stop.split(",") if s.strip()]

    @property
    def cors_origins(self) -> list[str]:
        """Allowed CORS origins; `*` or explicit http(s) origins only."""
        origins = [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]
        if "*" in origins:
            return ["*"]
        return [o for o in origins if o.startswith(("http://", "https://"))]

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = str(v).upper().strip()
        if normalized not in valid_levels:
            return "INFO"
        return normalized

    @field_validator("log_dir", mode="before")
    @classmethod
    def ensure_log_dir_path(cls, v: str | Path) -> Path:
        """Ensure log_dir is a Path object."""
        return Path(v) if isinstance(v, str) else v

    @field_validator("persona_file", mode="before")
    @classmethod
    def empty_persona_file_is_none(cls, v: str | Path | None) -> Path | None:
        """Treat an empty GUNNY_PERSONA_FILE as unset."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return Path(v)

    @field_validator("jwt_algorithm", mode="after")
    @classmethod
    def validate_signing_key_length(cls, v: str, info: Any) -> str:
        """Require a JWT_SECRET at least as long as the HMAC digest (RFC 7518 3.2)."""
        secret = info.data.get("jwt_secret")
        minimum = HMAC_MIN_KEY_BYTES[v]
        if secret is not None and len(secret.encode("utf-8")) < minimum:
            raise ValueError(f"JWT_SECRET must be at least {minimum} bytes for {v}")
        return v

    @field_validator("llm_url", mode="after")
    @classmethod
    def validate_llm_url(cls, v: str) -> str:
        """Require an absolute http(s) URL for the backend."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"JETSON_LLM_URL must be an http(s) URL, got '{v}'")
        return v

    @field_validator("max_tokens_cap", mode="after")
    @classmethod
    def validate_max_tokens_cap(cls, v: int, info: Any) -> int:
        """Validate LLM_MAX_TOKENS_CAP >= LLM_MAX_TOKENS."""
        default_tokens = info.data.get("max_tokens", 220)
        if v < default_tokens:
            raise ValueError(
                f"LLM_MAX_TOKENS_CAP ({v}) must be >= LLM_MAX_TOKENS ({default_tokens})"
            )
        return v


# Singleton instance
settings = Settings()
