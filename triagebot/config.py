"""
Application configuration management.
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from triagebot.errors import ConfigurationError


DEFAULT_REVIEWER_MAP: Dict[str, List[str]] = {
    "frontend": ["ui-team"],
    "backend": ["api-team"],
    "bug": ["qa-team"],
    "docs": ["doc-reviewer"],
    "test": ["qa-team"],
    "refactor": ["arch-team"],
    "enhancement": ["feature-owner"],
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Server
    port: int = Field(gt=0)

    # Webhook
    github_webhook_secret: str = Field(min_length=1)

    # GitHub App identity
    github_app_id: int = Field(gt=0)
    github_installation_id: int = Field(gt=0)
    github_private_key: Optional[str] = None
    github_private_key_path: Optional[str] = None

    # Legacy personal/installation token, used instead of minting when set
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"

    # OpenAI
    openai_api_key: str = Field(min_length=1)
    openai_model: str = "gpt-4o-mini"

    # Triage behaviour
    label_color: str = "cfd3d7"
    check_run_name: str = "AI Review"
    reviewer_map: Dict[str, List[str]] = DEFAULT_REVIEWER_MAP

    # Application
    log_level: str = "INFO"
    http_timeout_seconds: float = 30.0

    @field_validator("github_webhook_secret", "openai_api_key")
    @classmethod
    def _reject_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("github_private_key", "github_private_key_path", "github_token")
    @classmethod
    def _blank_as_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _require_one_private_key(self) -> "Settings":
        if not self.github_private_key and not self.github_private_key_path:
            raise ValueError("github_private_key or github_private_key_path must be set")
        if self.github_private_key and self.github_private_key_path:
            raise ValueError("set only one of github_private_key and github_private_key_path")
        return self

    def private_key_pem(self) -> str:
        """Return the App private key, reading it from disk if configured by path."""
        if self.github_private_key:
            return self.github_private_key
        return Path(self.github_private_key_path).read_text(encoding="utf-8")


def load_settings(**overrides) -> Settings:
    """
    Load and validate settings.

    Raises:
        ConfigurationError: If a mandatory option is missing or the private
            key file cannot be read
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        missing = ", ".join(
            ".".join(str(part) for part in err["loc"]) or err["msg"]
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {missing}") from e

    try:
        settings.private_key_pem()
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read GitHub App private key from {settings.github_private_key_path}: {e}"
        ) from e

    return settings


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return load_settings()
