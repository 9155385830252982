
from __future__ import annotations
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

from .contracts import RetryPolicy


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Remote backend selection
    AWS_ACCESS_KEY_ID: Optional[str] = None
    FORCE_S3: bool = False
    # S3
    S3_BUCKET: str = Field(default="rust-docs-rs")
    S3_REGION: str = Field(default="us-west-1")
    S3_ENDPOINT: Optional[str] = None
    S3_FORCE_PATH_STYLE: bool = False
    S3_MAX_WORKERS: int = Field(default=32, ge=1)
    # Reads
    MAX_FILE_SIZE: int = Field(default=50 * 1024 * 1024, ge=0)  # 50 MiB
    # Uploads
    UPLOAD_BATCH_SIZE: int = Field(default=1000, ge=1)
    UPLOAD_ATTEMPTS: int = Field(default=3, ge=1)
    UPLOAD_BACKOFF_SECONDS: float = Field(default=0.5, ge=0)
    UPLOAD_BACKOFF_FACTOR: float = Field(default=2.0, ge=1)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.UPLOAD_ATTEMPTS,
            backoff_seconds=self.UPLOAD_BACKOFF_SECONDS,
            backoff_factor=self.UPLOAD_BACKOFF_FACTOR,
        )
