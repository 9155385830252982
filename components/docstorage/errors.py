
from __future__ import annotations
from typing import List, Optional, Sequence


class BlobError(Exception):
    """Base class for docs storage errors."""


class BlobValidation(BlobError):
    pass


class BlobNotFound(BlobError):
    def __init__(self, path: str):
        super().__init__(f"no blob found at {path!r}")
        self.path = path


class SizeLimitExceeded(BlobError):
    """Raised when a read would grow past the configured size ceiling."""

    def __init__(self, limit: int):
        super().__init__(f"the size limit of {limit} bytes was exceeded")
        self.limit = limit


class TransportError(BlobError):
    """Network failure or a response missing metadata the protocol requires."""


class MalformedTimestamp(BlobError):
    def __init__(self, raw: object):
        super().__init__(f"malformed timestamp: {raw!r}")
        self.raw = raw


class RetryBudgetExhausted(BlobError):
    """Some blobs of a batch still failed after every retry round.

    Blobs that were stored before the budget ran out stay stored; ``failed``
    holds the ones that did not make it.
    """

    def __init__(self, failed: Sequence, attempts: int):
        self.failed: List = list(failed)
        self.attempts = attempts
        paths = ", ".join(b.path for b in self.failed[:5])
        more = "" if len(self.failed) <= 5 else f" (+{len(self.failed) - 5} more)"
        super().__init__(
            f"failed to upload {len(self.failed)} blob(s) after {attempts} attempts: {paths}{more}"
        )


class TransactionClosed(BlobError):
    def __init__(self, state: Optional[str] = None):
        super().__init__(f"storage transaction is no longer open (state={state})")
        self.state = state


class BufferConsumed(BlobError):
    pass
