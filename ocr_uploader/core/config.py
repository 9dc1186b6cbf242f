from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    # Vision provider: gemini | openai | mock
    ocr_provider: str = "gemini"
    model_timeout_seconds: float = 30.0

    # Gemini (only needed when ocr_provider=gemini)
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"

    # OpenAI (only needed when ocr_provider=openai)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"

    # Lengths are in base64 characters, not decoded bytes
    min_image_payload_chars: int = 100
    max_image_payload_chars: int = 10 * 1024 * 1024

    # Advisory, process-local limiter
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 20
    rate_limit_window_seconds: int = 60

    cors_allow_origins: list[str] = ["*"]


settings = Settings()
