from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache
from ..validators.config_validators import to_uppercase, to_lowercase, split_comma_separated

class Settings(BaseSettings):
    """
    Application settings loaded from environment.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Database configuration (embedded SQLite file; parent directories are created on demand)
    DATABASE_PATH: Path = Path("data/conversations.db")
    DB_POOL_SIZE: int = 1

    # Test database configuration
    TEST_DATABASE_PATH: Path | None = None
    TESTING: bool = False

    # SQLAlchemy
    SQLALCHEMY_ECHO: bool = False

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    CORS_ORIGINS: str = "*"

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("logs")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # --- Derived settings ---
    @property
    def active_database_path(self) -> Path:
        """
        Return the database file to use for the current environment.

        - If `TESTING=True` and `TEST_DATABASE_PATH` is provided, the test database
          file is used so tests never touch the real conversation store.
        - Otherwise `DATABASE_PATH` is used.
        """
        if self.TESTING and self.TEST_DATABASE_PATH:
            return self.TEST_DATABASE_PATH
        return self.DATABASE_PATH

    @property
    def cors_origins(self) -> list[str]:
        return split_comma_separated(self.CORS_ORIGINS)

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: str | None) -> str | None:
        """
        Normalize LOG_LEVEL to uppercase before Literal validation, so
        `LOG_LEVEL=debug` is accepted.
        """
        return to_uppercase(v)

    @field_validator("LOG_FORMAT", mode="before")
    def normalize_log_format(cls, v: str | None) -> str | None:
        """
        Normalize the LOG_FORMAT environment variable value to lowercase.
        """
        return to_lowercase(v)

    @field_validator("DB_POOL_SIZE")
    def check_pool_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("DB_POOL_SIZE must be at least 1")
        return v

    model_config = SettingsConfigDict(
        # .env next to the working directory; missing file is fine
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

# Settings come only from the environment, so one cached instance is enough.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
