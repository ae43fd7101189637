"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. All secrets are injected via environment — never
hard-coded in production.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the forensics console.
    cors_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── AI ────────────────────────────────────────────────────────
    # Get from https://aistudio.google.com/
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # When True, all AI calls return canned mock responses.
    # Always True in tests; set False in production with a real key.
    ai_mock_mode: bool = True

    # Max base64 chars sent as inline audio (~11 MB original file).
    max_inline_audio_b64: int = 15_000_000

    # ─── Retry ─────────────────────────────────────────────────────
    # retry_max_attempts counts retries after the first call (0 = try once).
    retry_max_attempts: int = 3
    retry_initial_delay_seconds: float = 3.0

    # ─── Gateway ───────────────────────────────────────────────────
    # IMPORTANT: Change signing_secret in production.
    # Generate: python -c "import secrets; print(secrets.token_hex(32))"
    signing_secret: str = "VOXGUARD_SECURE_KERNEL_V1"
    signing_algorithm_label: str = "SHA-256-HMAC-SIM"

    min_api_key_length: int = 10
    min_audio_b64_length: int = 100
    required_audio_format: str = "mp3"

    # Confidence below these thresholds forces classification to UNCERTAIN.
    api_confidence_threshold: float = 0.70
    batch_default_threshold: float = 0.75

    # slowapi limit string applied to model-backed routes
    detection_rate_limit: str = "20/minute"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton: import this everywhere instead of instantiating Settings()
settings = Settings()
