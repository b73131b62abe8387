"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MEBIBYTE = 1024 * 1024


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    provider: str = Field(default="local", alias="PROVIDER")
    folder: str = Field(default="./storage", alias="FOLDER")

    aws_s3_bucket: str | None = Field(default=None, alias="AWS_S3_BUCKET")
    aws_region: str | None = Field(default=None, alias="AWS_REGION")
    aws_access_key_id: str | None = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )
    s3_endpoint_url: str | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_file_prefix: str = Field(default="files/", alias="S3_FILE_PREFIX")
    s3_metadata_prefix: str = Field(default="metadata/", alias="S3_METADATA_PREFIX")
    s3_create_bucket: bool = Field(default=False, alias="S3_CREATE_BUCKET")

    upload_limit: int = Field(default=100 * MEBIBYTE, gt=0, alias="UPLOAD_LIMIT")
    download_limit: int = Field(default=500 * MEBIBYTE, gt=0, alias="DOWNLOAD_LIMIT")
    max_file_size: int = Field(default=100 * MEBIBYTE, gt=0, alias="MAX_FILE_SIZE")

    inactivity_period_days: float = Field(
        default=30, gt=0, alias="INACTIVITY_PERIOD_DAYS"
    )
    cleanup_interval_hours: float = Field(
        default=24, gt=0, alias="CLEANUP_INTERVAL_HOURS"
    )
    usage_sweep_interval_minutes: float = Field(
        default=60, gt=0, alias="USAGE_SWEEP_INTERVAL_MINUTES"
    )

    trust_proxy: bool = Field(default=True, alias="TRUST_PROXY")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    celery_broker_url: str | None = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: str | None = Field(
        default=None, alias="CELERY_RESULT_BACKEND"
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def inactivity_period_seconds(self) -> float:
        return self.inactivity_period_days * 24 * 60 * 60

    @property
    def cleanup_interval_seconds(self) -> float:
        return self.cleanup_interval_hours * 60 * 60

    @property
    def usage_sweep_interval_seconds(self) -> float:
        return self.usage_sweep_interval_minutes * 60

    @property
    def broker_url(self) -> str:
        """Return the Celery broker URL, defaulting to Redis."""

        return self.celery_broker_url or self.redis_url

    @property
    def result_backend(self) -> str:
        """Return the Celery result backend, defaulting to the Redis URL."""

        if self.celery_result_backend:
            return self.celery_result_backend
        return self.redis_url


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "clear_settings_cache", "MEBIBYTE"]
