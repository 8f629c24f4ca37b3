"""
Application configuration using pydantic-settings.
All config is loaded from environment variables with sensible defaults.
MONGODB_URI has no default: settings refuse to load without it, or when
neither MONGODB_DB_NAME nor the URI names a database.
"""

import re
from functools import lru_cache
from typing import Optional

from pydantic import ValidationError as PydanticValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings
from pymongo.errors import PyMongoError
from pymongo.uri_parser import parse_uri

from app.core.errors import ConfigurationError

_SRV_SCHEME = re.compile(r"^mongodb\+srv://", re.IGNORECASE)


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "DevEvents API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # MongoDB
    MONGODB_URI: str
    MONGODB_DB_NAME: Optional[str] = None  # resolved from the URI when unset
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 30_000
    MONGODB_ENSURE_INDEXES: bool = False

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CACHE_TTL: int = 300  # 5 minutes default TTL
    REDIS_ENABLED: bool = True

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }

    @field_validator("MONGODB_URI")
    @classmethod
    def _uri_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("MONGODB_URI must not be empty")
        return value

    @model_validator(mode="after")
    def _resolve_db_name(self) -> "Settings":
        # the seedlist lookup of mongodb+srv needs DNS; the path is the same without it
        uri = _SRV_SCHEME.sub("mongodb://", self.MONGODB_URI, count=1)
        try:
            parsed = parse_uri(uri)
        except PyMongoError as exc:
            raise ValueError(f"MONGODB_URI is not a valid MongoDB URI: {exc}") from exc
        if not self.MONGODB_DB_NAME:
            self.MONGODB_DB_NAME = parsed["database"]
        if not self.MONGODB_DB_NAME:
            raise ValueError("Set MONGODB_DB_NAME or name a database in MONGODB_URI")
        return self


@lru_cache()
def get_settings() -> Settings:
    try:
        return Settings()
    except PydanticValidationError as exc:
        errors = exc.errors()
        missing = ", ".join(str(err["loc"][0]) for err in errors if err.get("loc"))
        if missing:
            raise ConfigurationError(f"Please define the {missing} environment variable(s)") from exc
        raise ConfigurationError(errors[0]["msg"]) from exc
