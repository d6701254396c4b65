from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jobportal.errors import ConfigurationError

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "Job Portal Review"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 3000
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/jobportal.db"
    data_dir: Path = Path("./data")
    upload_dir: Path = Path("./data/uploads")

    ai_api_key: str = Field(default="", validation_alias=AliasChoices("ai_api_key", "gemini_api_key"))
    ai_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    ai_model: str = "gemini-2.5-flash-lite"
    ai_timeout_sec: int = 120

    review_interval_sec: float = 15.0
    review_scheduler_enabled: bool = True
    review_claims_enabled: bool = True
    review_claim_lease_sec: int = 600
    review_max_attempts: int = 0
    review_strict_decisions: bool = False
    quick_confirm_reviewer_id: str = "quick-confirm"

    cors_origins: str = "http://localhost:5173"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("review_interval_sec")
    @classmethod
    def validate_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("review_interval_sec must be positive")
        return value

    @field_validator("review_max_attempts", "review_claim_lease_sec")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("value must not be negative")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def ensure_credentials(self) -> None:
        """Fail fast when the AI credential or the store location is missing."""
        missing = []
        if not self.ai_api_key.strip():
            missing.append("AI_API_KEY")
        if not self.database_url.strip():
            missing.append("DATABASE_URL")
        if missing:
            raise ConfigurationError(f"missing required settings: {', '.join(missing)}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
