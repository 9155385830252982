
from __future__ import annotations
import asyncio
import functools
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..config import StorageSettings
from ..contracts import Blob, BatchResult, RetryPolicy, TransactionState, parse_content_encoding
from ..errors import (
    BlobNotFound, BlobValidation, RetryBudgetExhausted, TransactionClosed, TransportError
)
from ..metrics import UploadMetrics
from ..ports import StorageBackend, StorageTransaction
from ..sized_buffer import SizedBuffer
from ..timestamps import parse_timespec

log = logging.getLogger("docstorage.s3")

_READ_CHUNK = 64 * 1024
_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


def _is_not_found(e: ClientError) -> bool:
    code = str(e.response.get("Error", {}).get("Code", ""))
    status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _NOT_FOUND_CODES or status == 404


def _content_length(res: Dict[str, Any]) -> int:
    try:
        return int(res.get("ContentLength") or 0)
    except (TypeError, ValueError):
        return 0


def _last_modified(res: Dict[str, Any]) -> datetime:
    raw = res.get("ResponseMetadata", {}).get("HTTPHeaders", {}).get("last-modified")
    if raw:
        return parse_timespec(raw)
    parsed = res.get("LastModified")
    if isinstance(parsed, datetime):
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    raise TransportError("received a response from S3 with no Last-Modified")


def _put_kwargs(bucket: str, blob: Blob) -> Dict[str, Any]:
    kwargs = {
        "Bucket": bucket,
        "Key": blob.path,
        "Body": blob.content,
        "ContentType": blob.mime,
    }
    if blob.compression is not None:
        kwargs["ContentEncoding"] = str(blob.compression)
    return kwargs


class S3Backend(StorageBackend):
    """Object-store backend speaking the S3 API through a boto3 client.

    boto3 is blocking, so every call runs on ``executor``. Pass one in to share
    a pool between backends (and shut it down yourself); otherwise the backend
    creates its own and ``close()`` releases it.
    """

    def __init__(self, client, bucket: str, executor: Optional[Executor] = None,
                 metrics: Optional[UploadMetrics] = None, retry: Optional[RetryPolicy] = None,
                 max_workers: int = 32):
        self.client = client
        self.bucket = bucket
        self.metrics = metrics or UploadMetrics()
        self.retry = retry or RetryPolicy()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="docstorage-s3"
        )

    async def run_blocking(self, fn: Callable, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args, **kwargs))

    async def get(self, path: str, max_size: int) -> Blob:
        try:
            res = await self.run_blocking(self.client.get_object, Bucket=self.bucket, Key=path)
        except ClientError as e:
            if _is_not_found(e):
                raise BlobNotFound(path) from e
            raise TransportError(f"failed to fetch {path!r}: {e}") from e
        except BotoCoreError as e:
            raise TransportError(f"failed to fetch {path!r}: {e}") from e

        body = res.get("Body")
        if body is None:
            raise TransportError("received a response from S3 with no body")

        try:
            mime = res.get("ContentType")
            if not mime:
                raise TransportError("received a response from S3 with no Content-Type")
            date_updated = _last_modified(res)

            # ContentLength is only a sizing hint; the buffer enforces the limit
            content = SizedBuffer(max_size)
            content.reserve(_content_length(res))
            while True:
                data = await self.run_blocking(body.read, _READ_CHUNK)
                if not data:
                    break
                content.write(data)
        except BotoCoreError as e:
            raise TransportError(f"failed to read body of {path!r}: {e}") from e
        finally:
            body.close()

        return Blob(
            path=path,
            mime=mime,
            date_updated=date_updated,
            content=content.into_bytes(),
            compression=parse_content_encoding(res.get("ContentEncoding")),
        )

    def start_storage_transaction(self) -> "S3StorageTransaction":
        return S3StorageTransaction(self)

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)


class S3StorageTransaction(StorageTransaction):
    def __init__(self, s3: S3Backend):
        self.s3 = s3
        self._state = TransactionState.OPEN

    @property
    def state(self) -> TransactionState:
        return self._state

    async def store_batch(self, batch: Sequence[Blob]) -> BatchResult:
        self._ensure_open()
        pending = _validate_batch(batch)
        if not pending:
            return BatchResult()

        policy = self.s3.retry
        uploaded = 0
        for attempt in range(1, policy.attempts + 1):
            # every remaining blob goes out at once; the round ends when all have answered
            try:
                results = await asyncio.gather(*(self._upload(blob, attempt) for blob in pending))
            except BaseException:
                self._state = TransactionState.ABORTED
                log.exception("blob.batch aborted attempt=%s bucket=%s", attempt, self.s3.bucket)
                raise
            uploaded += sum(results)
            pending = [blob for blob, ok in zip(pending, results) if not ok]
            if not pending:
                return BatchResult(uploaded=uploaded, rounds=attempt)

            if attempt < policy.attempts:
                delay = policy.delay_after(attempt)
                log.warning("blob.batch retry failed=%s attempt=%s next_in=%.2fs",
                            len(pending), attempt, delay)
                if delay > 0:
                    await asyncio.sleep(delay)

        self._state = TransactionState.ABORTED
        log.error("blob.batch exhausted failed=%s attempts=%s bucket=%s",
                  len(pending), policy.attempts, self.s3.bucket)
        raise RetryBudgetExhausted(pending, policy.attempts)

    async def _upload(self, blob: Blob, attempt: int) -> bool:
        try:
            await self.s3.run_blocking(self.s3.client.put_object, **_put_kwargs(self.s3.bucket, blob))
        except (ClientError, BotoCoreError) as e:
            log.error("blob.put failed key=%s attempt=%s err=%r", blob.path, attempt, e)
            return False
        self.s3.metrics.inc_uploaded()
        return True

    def complete(self) -> None:
        self._ensure_open()
        self._state = TransactionState.COMPLETE

    def _ensure_open(self) -> None:
        if self._state is not TransactionState.OPEN:
            raise TransactionClosed(self._state.value)


def _validate_batch(batch: Sequence[Blob]) -> List[Blob]:
    blobs = list(batch)
    seen = set()
    for blob in blobs:
        if not blob.path:
            raise BlobValidation("blob path must not be empty")
        if blob.path in seen:
            raise BlobValidation(f"duplicate path in batch: {blob.path!r}")
        seen.add(blob.path)
    return blobs


def s3_client(settings: Optional[StorageSettings] = None):
    """Build an S3 client from the environment, or return None.

    None tells the caller to keep its files in the database backend instead.
    """
    cfg = settings or StorageSettings()
    # Without AWS keys, presume the database is the only file storage.
    if not cfg.AWS_ACCESS_KEY_ID and not cfg.FORCE_S3:
        return None

    try:
        session = boto3.Session()
        if session.get_credentials() is None:
            log.warning("failed to retrieve AWS credentials: no credential source found")
            return None
        return session.client(
            "s3",
            region_name=cfg.S3_REGION,
            endpoint_url=cfg.S3_ENDPOINT or None,
            config=BotoConfig(s3={"addressing_style": "path" if cfg.S3_FORCE_PATH_STYLE else "auto"}),
        )
    except (BotoCoreError, ValueError) as e:
        log.warning("failed to create S3 client: %s", e)
        return None
