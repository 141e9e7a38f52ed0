"""Append-only accumulation of response bytes."""

import logging
from typing import Optional

from .errors import AllocFailedError

logger = logging.getLogger(__name__)


class ResponseBuffer:
    """Grows as chunks arrive, whatever their size or count.

    With ``max_size`` set, bytes past the limit are not retained and
    ``truncated`` becomes True; the chunk is still reported as accepted so
    a streaming consumer keeps receiving documents.
    """

    def __init__(self, max_size: Optional[int] = None):
        self._data = bytearray()
        self.max_size = max_size
        self.truncated = False
        self.total_received = 0

    def append(self, chunk: bytes) -> int:
        """Append *chunk* and return the number of bytes accepted."""
        if not chunk:
            return 0
        size = len(chunk)
        self.total_received += size
        keep = chunk
        if self.max_size is not None:
            room = self.max_size - len(self._data)
            if room < size:
                if not self.truncated:
                    logger.debug(f"Response buffer reached {self.max_size} bytes; no longer retaining body")
                self.truncated = True
                keep = chunk[:max(room, 0)]
        try:
            self._data.extend(keep)
        except MemoryError as e:
            raise AllocFailedError(
                f"Could not grow response buffer beyond {len(self._data)} bytes"
            ) from e
        return size

    def getvalue(self) -> bytes:
        return bytes(self._data)

    def text(self) -> str:
        return self._data.decode("utf-8", errors="replace")

    def clear(self) -> None:
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)
