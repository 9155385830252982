
from __future__ import annotations
import enum
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, confloat, conint, constr, field_validator


class CompressionAlgorithm(str, enum.Enum):
    ZSTD = "zstd"
    BZIP2 = "bzip2"
    GZIP = "gzip"

    @classmethod
    def parse(cls, label: str) -> "CompressionAlgorithm":
        try:
            return cls(label.strip().lower())
        except ValueError:
            raise ValueError(f"unknown compression algorithm: {label!r}") from None

    def __str__(self) -> str:
        return self.value


class UnknownEncoding(BaseModel):
    """A Content-Encoding label that none of the known algorithms matches."""

    model_config = ConfigDict(frozen=True)

    label: str

    def __str__(self) -> str:
        return self.label


Compression = Union[CompressionAlgorithm, UnknownEncoding]


def parse_content_encoding(label: Optional[str]) -> Optional[Compression]:
    if not label:
        return None
    try:
        return CompressionAlgorithm.parse(label)
    except ValueError:
        return UnknownEncoding(label=label)


class Blob(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: constr(min_length=1)
    mime: str
    date_updated: datetime
    content: bytes
    compression: Optional[Compression] = None

    @field_validator("date_updated")
    @classmethod
    def _utc_only(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("date_updated must be timezone-aware")
        return v.astimezone(timezone.utc)


class TransactionState(str, enum.Enum):
    OPEN = "open"
    COMPLETE = "complete"
    ABORTED = "aborted"


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    attempts: conint(ge=1) = 3
    backoff_seconds: confloat(ge=0) = 0.5
    backoff_factor: confloat(ge=1) = 2.0

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after round ``attempt`` (1-based) before the next one."""
        return self.backoff_seconds * self.backoff_factor ** (attempt - 1)


class BatchResult(BaseModel):
    uploaded: int = 0
    rounds: int = Field(default=0, ge=0)
