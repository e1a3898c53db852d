"""Application configuration."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_timeout: float = 10.0  # seconds; Twilio gives webhooks ~15s
    summary_temperature: float = 0.4

    # Twilio
    twilio_account_sid: str
    twilio_auth_token: str
    twilio_caller_id: Optional[str] = None
    machine_detection_timeout: int = 3

    # Publicly reachable origin for Twilio webhooks (e.g. an ngrok URL)
    public_base_url: Optional[str] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
