
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Sequence

from .contracts import Blob, BatchResult, TransactionState


class StorageTransaction(ABC):
    """A set of independent writes that share one retry policy.

    There is no multi-object atomicity: blobs stored by an earlier batch stay
    stored even when a later batch fails.
    """

    @property
    @abstractmethod
    def state(self) -> TransactionState: ...

    @abstractmethod
    async def store_batch(self, batch: Sequence[Blob]) -> BatchResult: ...

    @abstractmethod
    def complete(self) -> None: ...


class StorageBackend(ABC):
    @abstractmethod
    async def get(self, path: str, max_size: int) -> Blob: ...

    @abstractmethod
    def start_storage_transaction(self) -> StorageTransaction: ...

    def close(self) -> None:
        pass
