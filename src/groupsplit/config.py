"""Configuration management for GroupSplit."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Ledger API
    ledger_api_url: str = "https://backend-0o9s.onrender.com"
    ledger_api_token: str
    request_timeout: float = 30.0

    # Acting user (payer of every expense recorded from this client)
    current_user_id: str

    # Membership directory search
    search_debounce_seconds: float = 0.5
    search_min_query_length: int = 2

    # Notice auto-clear delays (seconds)
    settle_notice_seconds: float = 5.0
    reminder_notice_seconds: float = 3.0
    expense_notice_seconds: float = 3.0

    currency_symbol: str = "₹"


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Make sure you have created a .env file "
            f"with LEDGER_API_TOKEN and CURRENT_USER_ID set.\n"
            f"Error: {e}"
        ) from e
