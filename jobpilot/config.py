"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """JobPilot configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    claude_model: str = Field(default="claude-sonnet-4-5-20250929")
    max_tokens: int = Field(default=4096)
    # 0 disables extended thinking (no reasoning parts are streamed)
    thinking_budget_tokens: int = Field(default=0)

    # Agent loops
    discovery_max_tool_rounds: int = Field(default=10)
    matching_max_tool_rounds: int = Field(default=5)

    # Database
    database_path: Path = Field(default=Path("data/jobpilot.db"))

    # The single local user all persisted data is scoped to
    user_id: str = Field(default="owner")

    # Scoring
    score_sum_tolerance: float = Field(default=0.5)

    # Adzuna job search
    adzuna_app_id: str = Field(default="")
    adzuna_app_key: str = Field(default="")
    adzuna_country: str = Field(default="us")
    adzuna_results_per_page: int = Field(default=20)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def adzuna_enabled(self) -> bool:
        """True when both Adzuna credentials are configured."""
        return bool(self.adzuna_app_id.strip() and self.adzuna_app_key.strip())


settings = Settings()
