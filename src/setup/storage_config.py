from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class StorageSettings(BaseSettings):
    """Configuration for the S3-compatible bucket that holds task images."""
    S3_ENDPOINT_URL: str | None = None
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_BUCKET: str = "task-images"
    S3_KEY_PREFIX: str = ""
    # Static public URL root; when unset, confirmed uploads get presigned GET URLs.
    S3_PUBLIC_BASE_URL: str | None = None
    UPLOAD_URL_TTL_SECONDS: int = 600
    DOWNLOAD_URL_TTL_SECONDS: int = 7 * 24 * 60 * 60
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    ALLOWED_CONTENT_TYPES: list[str] = ["image/jpeg", "image/png", "image/webp"]

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_storage_settings() -> StorageSettings:
    """Return a fresh storage settings instance."""
    return StorageSettings()
