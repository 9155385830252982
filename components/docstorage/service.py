
from __future__ import annotations
import logging
import time
from contextlib import contextmanager
from typing import Iterable, List, Optional

from opentelemetry import trace

from .config import StorageSettings
from .contracts import Blob
from .errors import BlobError, BlobNotFound
from .ports import StorageBackend

log = logging.getLogger("docstorage")
tracer = trace.get_tracer("docstorage")


@contextmanager
def _span(name: str, **attrs):
    with tracer.start_as_current_span(name) as span:
        for k, v in attrs.items():
            span.set_attribute(f"blob.{k}", v)
        yield span


def _chunks(blobs: List[Blob], size: int):
    for i in range(0, len(blobs), size):
        yield blobs[i:i + size]


class BlobStorage:
    """Caller-facing entry point over a storage backend."""

    def __init__(self, backend: StorageBackend, settings: Optional[StorageSettings] = None):
        self.backend = backend
        self.settings = settings or StorageSettings()

    async def get(self, path: str, max_size: Optional[int] = None) -> Blob:
        limit = self.settings.MAX_FILE_SIZE if max_size is None else max_size
        t0 = time.time()
        with _span("blob.get", path=path, max_size=limit):
            try:
                blob = await self.backend.get(path, limit)
            except BlobNotFound:
                log.info("blob.get missing path=%s", path)
                raise
            except BlobError as e:
                log.warning("blob.get err path=%s max_size=%s err=%s", path, limit, e)
                raise
            log.info("blob.get ok path=%s size=%s dur_ms=%s",
                     path, len(blob.content), int((time.time() - t0) * 1000))
            return blob

    async def store_all(self, blobs: Iterable[Blob]) -> int:
        """Store every blob in one transaction, batch by batch.

        Returns how many blobs were stored. A batch that exhausts its retries
        raises ``RetryBudgetExhausted``; earlier batches stay stored.
        """
        items = list(blobs)
        t0 = time.time()
        with _span("blob.store_all", count=len(items)):
            tx = self.backend.start_storage_transaction()
            stored = 0
            for batch in _chunks(items, self.settings.UPLOAD_BATCH_SIZE):
                result = await tx.store_batch(batch)
                stored += result.uploaded
            tx.complete()
            log.info("blob.store_all ok count=%s dur_ms=%s", stored, int((time.time() - t0) * 1000))
            return stored

    def close(self) -> None:
        self.backend.close()
