from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load project-root .env early so both pydantic-settings and any direct os.getenv access
# see consistent values, even if the process CWD is not the repo root.
_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
_IN_TEST = (os.getenv("ENVIRONMENT") or "").lower() == "test" or bool(os.getenv("PYTEST_CURRENT_TEST"))
if _ENV_PATH.exists() and not _IN_TEST:
    load_dotenv(dotenv_path=_ENV_PATH, override=True)


class Settings(BaseSettings):
    app_name: str = Field(default="TalentFlow")
    api_prefix: str = Field(default="/api")
    version: str = Field(default="0.1.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=True)
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        validation_alias="CORS_ORIGINS",
    )

    # Store identity. One fixed identifier, one schema version.
    store_name: str = Field(default="talentflow", validation_alias="STORE_NAME")
    db_url: str | None = Field(default=None, validation_alias="DB_URL")
    # false => skip the SQL store entirely and keep everything in memory.
    store_durable: bool = Field(default=True, validation_alias="STORE_DURABLE")

    # Network simulation
    transport: Literal["simulated", "direct"] = Field(default="simulated", validation_alias="TRANSPORT")
    latency_min_ms: int = Field(default=200, ge=0, validation_alias="LATENCY_MIN_MS")
    latency_max_ms: int = Field(default=1200, ge=0, validation_alias="LATENCY_MAX_MS")
    failure_rate: float = Field(default=0.05, validation_alias="FAILURE_RATE")

    # Synthetic data
    seed_random: int | None = Field(default=7, validation_alias="SEED_RANDOM")
    seed_jobs: int = Field(default=25, ge=1, validation_alias="SEED_JOBS")
    seed_candidates: int = Field(default=1000, ge=0, validation_alias="SEED_CANDIDATES")
    seed_assessments: int = Field(default=3, ge=0, validation_alias="SEED_ASSESSMENTS")

    jobs_page_size: int = Field(default=10, ge=1, validation_alias="JOBS_PAGE_SIZE")
    candidates_page_size: int = Field(default=50, ge=1, validation_alias="CANDIDATES_PAGE_SIZE")

    @field_validator("failure_rate")
    @classmethod
    def _validate_failure_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        return v

    @model_validator(mode="after")
    def _validate_latency_range(self) -> "Settings":
        if self.latency_min_ms > self.latency_max_ms:
            raise ValueError("latency_min_ms must not exceed latency_max_ms")
        if self.seed_assessments > self.seed_jobs:
            raise ValueError("seed_assessments cannot exceed seed_jobs (one assessment per job)")
        return self

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


def build_store_url(settings: Settings) -> str:
    if settings.db_url:
        return settings.db_url
    return f"sqlite:///./{settings.store_name}.db"
