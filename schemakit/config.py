from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Validation
    UNKNOWN_KEYS: Literal["strip", "allow", "forbid"] = "strip"
    MAX_ISSUES: int = 100
    ABORT_EARLY: bool = False

    # Redaction
    REDACTION_MARKER: str = "[REDACTED]"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)

    class Config:
        env_prefix = "SCHEMAKIT_"
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
