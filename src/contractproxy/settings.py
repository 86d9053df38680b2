from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogFormat = Literal["console", "plain", "json"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CONTRACTPROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="WARNING")
    log_format: LogFormat = Field(default="console")  # console|plain|json


def get_settings() -> Settings:
    return Settings()
