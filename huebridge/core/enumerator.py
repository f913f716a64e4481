"""Cursor abstraction over an externally owned device collection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping, Sequence

from huebridge.core.device import Device


class DeviceEnumerator(ABC):
    """Forward-only, resettable cursor over a device collection.

    ``clone()`` gives an independent cursor over the same collection so that
    concurrent list reads never share a position. The default lookups scan
    with ``reset()``/``next()`` and leave the cursor on the match.
    """

    @abstractmethod
    def reset(self) -> None:
        """Rewind to before the first device."""

    @abstractmethod
    def next(self) -> Device | None:
        """Advance and return the next device, or ``None`` once exhausted."""

    @abstractmethod
    def current(self) -> Device | None:
        """Return the device last returned by ``next()`` without advancing."""

    @abstractmethod
    def clone(self) -> DeviceEnumerator: ...

    def find_by_id(self, device_id: int) -> Device | None:
        self.reset()
        while (device := self.next()) is not None:
            if device.id == device_id:
                return device
        return None

    def find_by_name(self, name: str) -> Device | None:
        self.reset()
        while (device := self.next()) is not None:
            if device.name == name:
                return device
        return None

    def __iter__(self) -> Iterator[Device]:
        cursor = self.clone()
        cursor.reset()
        while (device := cursor.next()) is not None:
            yield device


class ListEnumerator(DeviceEnumerator):
    def __init__(self, devices: Sequence[Device]) -> None:
        self._devices = devices
        self._index = 0
        self._current: Device | None = None

    def reset(self) -> None:
        self._index = 0
        self._current = None

    def next(self) -> Device | None:
        if self._index >= len(self._devices):
            self._current = None
            return None
        self._current = self._devices[self._index]
        self._index += 1
        return self._current

    def current(self) -> Device | None:
        return self._current

    def clone(self) -> ListEnumerator:
        cursor = ListEnumerator(self._devices)
        cursor._index = self._index
        cursor._current = self._current
        return cursor


class MappingEnumerator(ListEnumerator):
    """Enumerator over an id-keyed mapping with constant-time ``find_by_id``."""

    def __init__(self, devices: Mapping[int, Device]) -> None:
        super().__init__(list(devices.values()))
        self._by_id = devices

    def reset(self) -> None:
        self._devices = list(self._by_id.values())
        super().reset()

    def find_by_id(self, device_id: int) -> Device | None:
        return self._by_id.get(device_id)

    def clone(self) -> MappingEnumerator:
        cursor = MappingEnumerator(self._by_id)
        cursor._devices = self._devices
        cursor._index = self._index
        cursor._current = self._current
        return cursor


def find_device(devices: DeviceEnumerator, key: int | str) -> Device | None:
    """Look a device up by id or by name."""
    if isinstance(key, int) and not isinstance(key, bool):
        return devices.find_by_id(key)
    return devices.find_by_name(key)
