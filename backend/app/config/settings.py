"""
Application Settings for EchoWrite

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Literal, Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    LLM_PROVIDER controls which service writes and critiques posts:
    - openai: OpenAI chat completions (default, gpt-4o-mini)
    - gemini: Google Gemini via the google-genai SDK
    """

    # Application Settings
    app_name: str = "EchoWrite"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    # JWT Configuration
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24 * 7

    # UNIFIED LLM Provider Configuration
    llm_provider: Literal["openai", "gemini"] = "openai"

    # OpenAI Configuration (for llm_provider=openai)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    # Google AI Configuration (accepts GOOGLE_API_KEY or GEMINI_API_KEY)
    google_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"

    # Generation cycle
    generation_delay_seconds: float = 0.0
    generation_temperature: float = 0.7
    generation_max_tokens: int = 800
    critique_max_tokens: int = 200

    # Quota Configuration
    anonymous_session_expiry_days: int = 30
    free_conversations_limit: int = 3
    free_messages_limit: int = 3

    # OTP Configuration
    otp_expiry_minutes: int = 10
    password_reset_expiry_minutes: int = 15

    # Stripe Configuration
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_currency: str = "usd"

    # Email (SMTP) Configuration
    email_host: str = "smtp.gmail.com"
    email_port: int = 587
    email_user: Optional[str] = None
    email_password: Optional[str] = None
    email_from: Optional[str] = None
    email_use_tls: bool = True

    # Admin
    admin_api_key: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_api_keys(self) -> "Settings":
        """Validate API keys based on selected llm_provider."""
        # Normalize gemini_api_key to google_api_key
        if not self.google_api_key and self.gemini_api_key:
            self.google_api_key = self.gemini_api_key

        if self.llm_provider == "gemini" and not self.google_api_key:
            raise ValueError(
                "GOOGLE_API_KEY or GEMINI_API_KEY required when LLM_PROVIDER=gemini"
            )

        # OpenAI key is checked lazily so the API can boot without AI access

        if self.is_production and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be set in production")

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    @property
    def email_configured(self) -> bool:
        return bool(self.email_user and self.email_password)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
