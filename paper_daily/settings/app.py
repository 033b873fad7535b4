"""Application settings powered by Pydantic BaseSettings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Secrets and process-level options read from the environment or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    llm_api_key: str | None = Field(
        default=None, validation_alias="PAPER_DAILY_LLM_API_KEY"
    )
    config_path: str = Field(
        default="paper-daily.yaml", validation_alias="PAPER_DAILY_CONFIG"
    )
    store_root: str = Field(default=".", validation_alias="PAPER_DAILY_STORE_ROOT")
    log_level: str = Field(default="INFO", validation_alias="PAPER_DAILY_LOG_LEVEL")


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
