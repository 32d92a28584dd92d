"""
Student Onboarding - Configuration and settings.

OnboardingSettings holds backend locations, session storage keys, navigation
targets and the handful of validation knobs the wizard exposes.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class OnboardingSettings(BaseSettings):
    """
    Onboarding settings, read from the environment and `.env`.

    Nothing here is required; defaults match a local development backend.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    onboarding_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Backend
    api_base_url: str = "http://localhost:8080/api"
    chat_api_base_url: str = "http://localhost:8080/api"
    http_timeout_seconds: float = 15.0

    # Bounded wait per external call; None waits indefinitely
    external_call_timeout_seconds: float | None = None

    # Submission metadata
    student_role: str = "STUDENT"

    # Validation
    min_phone_length: int = 9

    # Session
    session_token_key: str = "next-auth.session-token"
    token_storage_path: str = ".onboarding/storage.json"

    # Navigation targets
    main_app_path: str = "/portal/messages"
    login_path: str = "/login"

    # Dev user for the interactive CLI
    dev_user_id: str = "00000000-0000-0000-0000-000000000001"

    @property
    def is_development(self) -> bool:
        return self.onboarding_env == "development"

    @property
    def is_production(self) -> bool:
        return self.onboarding_env == "production"


@lru_cache
def get_settings() -> OnboardingSettings:
    """Get cached settings instance."""
    return OnboardingSettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: OnboardingSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
