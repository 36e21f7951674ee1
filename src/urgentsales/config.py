"""
Application configuration.

Uses pydantic-settings to load values from environment variables / .env file.
The build-mode flag (APP_ENV) decides whether the development OTP bypass
code is honoured; production builds never accept it.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown env vars
    )

    # ── Backend ───────────────────────────────────────────────
    api_base_url: str = "http://localhost:5000"
    request_timeout_seconds: float = 30.0
    otp_timeout_seconds: float = 15.0     # send/verify OTP abort after this

    # ── Build mode ────────────────────────────────────────────
    app_env: Literal["development", "production", "test"] = "production"
    otp_bypass_code: str = "123456"       # accepted only outside production

    @property
    def is_production(self) -> bool:
        """True for production builds."""
        return self.app_env == "production"

    @property
    def otp_bypass_enabled(self) -> bool:
        """Whether the fixed development OTP code may skip verification."""
        return not self.is_production and bool(self.otp_bypass_code)

    # ── Wizard behaviour ──────────────────────────────────────
    redirect_delay_seconds: float = 2.0   # success dialog stays visible this long
    upload_progress_step: int = 5         # simulated progress increment (%)
    upload_progress_interval: float = 0.1  # seconds between increments
    list_cache_ttl: int = 300             # cached listing views (seconds)

    # ── Telegram ──────────────────────────────────────────────
    telegram_bot_token: str = ""

    # ── App ───────────────────────────────────────────────────
    log_level: str = "INFO"
    debug: bool = False


# Singleton: import this wherever config is needed
settings = Settings()
