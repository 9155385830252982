
from __future__ import annotations

from .errors import BufferConsumed, SizeLimitExceeded


class SizedBuffer:
    """Append-only byte buffer that refuses to grow past ``max_size``.

    The limit is checked on every write, so a stream that turns out to be
    larger than advertised is rejected while it is being read instead of
    after it has been fully buffered.
    """

    def __init__(self, max_size: int):
        if max_size < 0:
            raise ValueError("max_size must be >= 0")
        self.max_size = max_size
        self._buf = bytearray()
        self._len = 0
        self._consumed = False

    def __len__(self) -> int:
        return self._len

    def reserve(self, hint: int) -> None:
        """Preallocate room for ``hint`` bytes, capped at ``max_size``."""
        self._check_live()
        want = min(max(hint, 0), self.max_size)
        if want > len(self._buf):
            self._buf.extend(bytes(want - len(self._buf)))

    def write(self, chunk: bytes) -> int:
        self._check_live()
        end = self._len + len(chunk)
        if end > self.max_size:
            raise SizeLimitExceeded(self.max_size)
        # slice assignment grows the bytearray when the reserved room runs out
        self._buf[self._len:end] = chunk
        self._len = end
        return len(chunk)

    def into_bytes(self) -> bytes:
        self._check_live()
        self._consumed = True
        del self._buf[self._len:]
        data = bytes(self._buf)
        self._buf = bytearray()
        return data

    def _check_live(self) -> None:
        if self._consumed:
            raise BufferConsumed("buffer was already converted into bytes")
