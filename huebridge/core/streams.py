"""In-memory response bodies."""

from __future__ import annotations


class MemoryStream:
    """Fully buffered body implementing the transport ``BodyStream`` contract."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytes(data)
        self._pos = 0

    def __len__(self) -> int:
        return len(self._data)

    def getvalue(self) -> bytes:
        return self._data

    def available(self) -> int:
        return len(self._data) - self._pos

    def read_block(self, size: int) -> bytes:
        if size <= 0:
            return b""
        return self._data[self._pos : self._pos + size]

    def seek(self, count: int) -> bool:
        if count < 0 or self._pos + count > len(self._data):
            return False
        self._pos += count
        return True

    def is_finished(self) -> bool:
        return self._pos >= len(self._data)
