
from __future__ import annotations
import threading

from opentelemetry import metrics

_meter = metrics.get_meter("docstorage")


class UploadMetrics:
    """Upload counter shared by every in-flight put of a backend.

    Keeps an in-process total and mirrors each increment to an OpenTelemetry
    counter. Backends increment from their event loop, but the total is
    lock-guarded so one instance can be shared across loops and threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._uploaded = 0
        self._counter = _meter.create_counter(
            "docstorage.uploaded_files_total",
            unit="1",
            description="Blobs successfully uploaded to the object store",
        )

    @property
    def uploaded_files_total(self) -> int:
        with self._lock:
            return self._uploaded

    def inc_uploaded(self, n: int = 1) -> None:
        with self._lock:
            self._uploaded += n
        self._counter.add(n)
