"""Configuration management using Pydantic Settings."""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LABSTATE_",
        extra="ignore",
    )

    # Snapshot + project list
    state_path: str = "state/lab-state.json"
    projects_path: str = "projects.yaml"

    # Remote repository API
    github_api_url: str = "https://api.github.com"
    github_token: SecretStr | None = None
    remote_timeout_seconds: float = 10.0
    remote_per_page: int = 100
    remote_max_pages: int = 3

    # Local git
    git_timeout_seconds: float = 30.0

    # Focus
    focus_override: str | None = None


settings = Settings()
