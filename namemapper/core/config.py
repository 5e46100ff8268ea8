from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NAMEMAPPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "namemapper"
    log_level: str = "WARNING"
    log_format: str = "text"

    config_file: Path | None = None
    default_realm: str | None = None
    krb5_config: Path = Field(default=Path("/etc/krb5.conf"))

    @property
    def resolved_log_level(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.WARNING)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
