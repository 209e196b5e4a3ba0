"""Application settings loaded from the environment and an optional ``.env`` file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration.

    Environment variables map to field names case-insensitively, e.g.
    ``OPENAI_API_KEY`` or ``OUTPUT_DIR``.
    """

    # Generator credentials
    openai_api_key: SecretStr | None = None
    github_token: SecretStr | None = None
    gemini_api_key: SecretStr | None = None

    default_provider: str = Field(default="openai", description="Backend used by POST /terraform")
    openai_model: str = "gpt-3.5-turbo"
    copilot_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-2.5-flash"

    # Validation and persistence
    terraform_binary: str = "terraform"
    validate_timeout_seconds: float = Field(default=120.0, gt=0)
    output_dir: Path = Path("tf-generated-files")

    # HTTP service
    host: str = "0.0.0.0"
    port: int = 5000
    api_prefix: str = "/api/provision"
    log_level: str = "INFO"
    log_format: str = Field(default="console", description="console or json")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def credential_for(self, provider: str) -> str | None:
        """Return the plain credential for ``provider`` or ``None`` when unset."""
        secret = {
            "openai": self.openai_api_key,
            "copilot": self.github_token,
            "gemini": self.gemini_api_key,
        }.get(provider)
        if secret is None:
            return None
        value = secret.get_secret_value().strip()
        return value or None


@lru_cache
def get_settings() -> Settings:
    return Settings()

