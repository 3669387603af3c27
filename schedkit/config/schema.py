"""Configuration schema using Pydantic."""

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

ENV_PREFIX = "SCHEDKIT_"

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class ServiceConfig(BaseModel):
    """Admin API connection settings."""

    api_base: str = "http://localhost:3000/api/admin"
    token: str = ""
    timeout: float = 30.0

    @field_validator("api_base")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")


class JobsConfig(BaseModel):
    """Background job settings."""

    poll_interval: float = Field(default=3.0, ge=0)
    watched_types: list[str] = Field(default_factory=lambda: ["keyword-generation"])
    dedup_fields: dict[str, str] = Field(
        default_factory=lambda: {"keyword-generation": "industry", "basic-enrichment": "domain"}
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level '{value}', expected one of {', '.join(LOG_LEVELS)}")
        return level


class Config(BaseSettings):
    """
    Root configuration for schedkit.

    Values passed to the constructor (the config file) are layered under
    `SCHEDKIT_*` environment variables, field by field, so
    `SCHEDKIT_SERVICE__TOKEN` replaces only the token of a file's
    `service` section.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, init_settings, dotenv_settings, file_secret_settings
