from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load project-root .env early so both pydantic-settings and any direct os.getenv access
# see consistent values, even if the process CWD is not the repo root.
_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
_IN_TEST = (os.getenv("ENVIRONMENT") or "").lower() == "test" or bool(os.getenv("PYTEST_CURRENT_TEST"))
if _ENV_PATH.exists() and not _IN_TEST:
    load_dotenv(dotenv_path=_ENV_PATH, override=False)


BUNDLED_MIGRATIONS_DIR = Path(__file__).resolve().parent / "db" / "migrations"

# Front-end delivery targets are fixed; only the dev/prod switch is configurable.
FRONTEND_DEV_URL = "http://localhost:3000"
FRONTEND_BUILD_DIR = "../frontend/build"

SHUTDOWN_TIMEOUT_SECONDS = 5


class Settings(BaseSettings):
    app_name: str = Field(default="Skill Backend")
    version: str = Field(default="0.1.0")

    db_path: str = Field(default="skills.db", validation_alias="DB_PATH")
    dev: bool = Field(default=False, validation_alias="DEV")

    # Plain path or file:// URL of a directory holding <version>_<title>.up.sql files.
    migration_source_url: str = Field(default=str(BUNDLED_MIGRATIONS_DIR), validation_alias="MIGRATION_SOURCE_URL")
    # None migrates to the newest version found in the source.
    migration_target_version: int | None = Field(default=None, validation_alias="MIGRATION_TARGET_VERSION")

    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8080, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("migration_source_url", mode="before")
    @classmethod
    def _default_blank_source(cls, v: object) -> object:
        if v is None or (isinstance(v, str) and not v.strip()):
            return str(BUNDLED_MIGRATIONS_DIR)
        return v

    @field_validator("migration_target_version", mode="before")
    @classmethod
    def _blank_target_means_latest(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
