"""Incremental ``{"<id>":{...},...}`` producer for ``GET /lights``."""

from __future__ import annotations

import logging
from enum import Enum
from types import TracebackType

from huebridge.core.enumerator import DeviceEnumerator
from huebridge.core.results import dumps

LOGGER = logging.getLogger(__name__)


class _State(Enum):
    START = "start"
    EMIT = "emit"
    CLOSE = "close"
    FINISHED = "finished"


class DeviceListStream:
    """Streams one device's info document at a time.

    Only the serialization of the current device is ever buffered. The
    consumer peeks with ``read_block`` and reports consumption with ``seek``;
    consumption may stop anywhere inside a device's document and resume on the
    next call. The stream owns ``devices``, which must be a private clone, and
    stops reading it once finished or closed.
    """

    def __init__(self, devices: DeviceEnumerator, host_mac: str) -> None:
        self._devices = devices
        self._host_mac = host_mac
        self._state = _State.START
        self._content = b""
        self._pos = 0
        self._first = True

    @property
    def name(self) -> str:
        return "devices.json"

    def available(self) -> int:
        if self._state is _State.EMIT:
            return len(self._content) - self._pos
        if self._state is _State.FINISHED:
            return 0
        return 1

    def read_block(self, size: int) -> bytes:
        if size <= 0:
            return b""
        if self._state is _State.START:
            return b"{"
        if self._state is _State.EMIT:
            return self._content[self._pos : self._pos + size]
        if self._state is _State.CLOSE:
            return b"}"
        return b""

    def seek(self, count: int) -> bool:
        if count <= 0:
            return False

        if self._state is _State.START:
            if count != 1:
                return False
            self._devices.reset()
            self._state = _State.EMIT if self._load_next() else _State.CLOSE
            return True

        if self._state is _State.EMIT:
            new_pos = self._pos + count
            if new_pos > len(self._content):
                LOGGER.error("seek(%d) out of range, max %d", count, len(self._content) - self._pos)
                return False
            if new_pos < len(self._content):
                self._pos = new_pos
                return True
            self._content = b""
            self._pos = 0
            if not self._load_next():
                self._state = _State.CLOSE
            return True

        if self._state is _State.CLOSE:
            if count != 1:
                return False
            self.close()
            return True

        return False

    def is_finished(self) -> bool:
        return self._state is _State.FINISHED

    def close(self) -> None:
        self._content = b""
        self._state = _State.FINISHED

    def __enter__(self) -> DeviceListStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _load_next(self) -> bool:
        device = self._devices.next()
        if device is None:
            return False
        prefix = b"" if self._first else b","
        self._first = False
        self._content = prefix + dumps(str(device.id)) + b":" + dumps(device.get_info(self._host_mac))
        LOGGER.debug("Serialized device %s (%d bytes)", device.id, len(self._content))
        return True
