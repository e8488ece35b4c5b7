# app/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Storage components never read the environment themselves: they receive a
StorageConfig resolved from these settings.
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage driver selection
    FILE_STORAGE_DRIVER: str = Field(
        default="auto",
        description="Storage driver: auto, s3, cdn (alias: cloudinary), local",
    )

    # Object storage (S3 / S3-compatible)
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None
    S3_BUCKET: str | None = None
    S3_REGION: str = Field(
        default="us-east-1",
        description="AWS region for the bucket",
    )
    S3_ENDPOINT_URL: str | None = Field(
        default=None,
        description="Custom endpoint for S3-compatible services (MinIO, Spaces)",
    )

    # CDN image service (Cloudinary)
    CLOUDINARY_CLOUD_NAME: str | None = None
    CLOUDINARY_API_KEY: str | None = None
    CLOUDINARY_API_SECRET: str | None = None

    # Local disk
    APP_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL used to build absolute URLs for local files",
    )
    LOCAL_STORAGE_PATH: str = Field(
        default="./storage/public",
        description="Public web root for the local provider",
    )

    # Remote call bounds
    STORAGE_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Connect/read timeout for each remote provider call",
    )
    STORAGE_MAX_ATTEMPTS: int = Field(
        default=2,
        description="Max attempts per remote call before the next provider is tried",
    )

    # Uploads
    IMAGE_DEFAULT_QUALITY: int = Field(
        default=90,
        description="Encoder quality (0-100) for processed images",
    )
    MAX_UPLOAD_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="Largest decoded upload accepted by the HTTP API",
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(
        default=True,
        description="Emit single-line JSON logs (False for human-readable)",
    )

    @field_validator("FILE_STORAGE_DRIVER")
    @classmethod
    def normalize_driver(cls, v: str) -> str:
        return v.lower().strip() or "auto"

    @field_validator("APP_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("IMAGE_DEFAULT_QUALITY")
    @classmethod
    def check_quality(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("IMAGE_DEFAULT_QUALITY must be between 0 and 100")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@dataclass(frozen=True)
class StorageConfig:
    """Fully-resolved storage configuration injected into the detector."""

    driver: str = "auto"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    s3_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None
    app_url: str = "http://localhost:8000"
    local_storage_path: str = "./storage/public"
    timeout_seconds: float = 10.0
    max_attempts: int = 2

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            driver=settings.FILE_STORAGE_DRIVER,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            s3_bucket=settings.S3_BUCKET,
            s3_region=settings.S3_REGION,
            s3_endpoint_url=settings.S3_ENDPOINT_URL,
            cloudinary_cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            cloudinary_api_key=settings.CLOUDINARY_API_KEY,
            cloudinary_api_secret=settings.CLOUDINARY_API_SECRET,
            app_url=settings.APP_URL,
            local_storage_path=settings.LOCAL_STORAGE_PATH,
            timeout_seconds=settings.STORAGE_TIMEOUT_SECONDS,
            max_attempts=settings.STORAGE_MAX_ATTEMPTS,
        )

    @property
    def s3_configured(self) -> bool:
        return bool(self.aws_access_key_id and self.aws_secret_access_key and self.s3_bucket)

    @property
    def cdn_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
