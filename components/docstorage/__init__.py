from __future__ import annotations
import logging
from typing import Optional

from .contracts import *
from .errors import *
from .ports import StorageBackend, StorageTransaction
from .sized_buffer import SizedBuffer
from .timestamps import parse_timespec
from .metrics import UploadMetrics
from .adapters.s3 import S3Backend, S3StorageTransaction, s3_client
from .service import BlobStorage

from .config import StorageSettings

log = logging.getLogger("docstorage")


def make_backend_from_env(settings: Optional[StorageSettings] = None) -> Optional[S3Backend]:
    cfg = settings or StorageSettings()
    client = s3_client(cfg)
    if client is None:
        log.info("no S3 client available; falling back to database storage")
        return None
    return S3Backend(
        client,
        cfg.S3_BUCKET,
        retry=cfg.retry_policy(),
        max_workers=cfg.S3_MAX_WORKERS,
    )
