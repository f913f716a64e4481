"""Device abstraction and the capability-table device record."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Protocol

from huebridge.core.completion import Completion
from huebridge.core.errors import DeviceDefinitionError
from huebridge.core.model import Attribute, Attributes, ColorMode, Status

LOGGER = logging.getLogger(__name__)

MAX_DEVICE_ID = 0xFFFFFFFF
SW_VERSION = "1.0.0"
MANUFACTURER = "Philips"
_UNIQUE_ID_SUFFIX = "00:11"
_MAC_RE = re.compile(r"^[0-9A-F]{2}(?::[0-9A-F]{2}){5}$")

ON_OFF = Attributes.ON
DIMMABLE = ON_OFF | Attributes.BRI
COLOUR = DIMMABLE | Attributes.CT | Attributes.HUE | Attributes.SAT

CAPABILITY_PRESETS: dict[str, Attributes] = {
    "onoff": ON_OFF,
    "dimmable": DIMMABLE,
    "colour": COLOUR,
}

DEFAULT_VALUES: dict[Attribute, int] = {
    Attribute.on: 0,
    Attribute.bri: 1,
    Attribute.ct: 234,
    Attribute.hue: 0,
    Attribute.sat: 0,
}

DEFAULT_RANGES: dict[Attribute, tuple[int, int]] = {
    Attribute.on: (0, 1),
    Attribute.bri: (1, 254),
    Attribute.ct: (153, 500),
    Attribute.hue: (0, 65535),
    Attribute.sat: (0, 254),
}


class Device(Protocol):
    """Controllable entity the bridge exposes as a light.

    Returned devices are borrowed: the bridge never keeps a reference past the
    request that looked them up.
    """

    @property
    def id(self) -> int: ...

    @property
    def name(self) -> str: ...

    def get_attribute(self, attr: Attribute) -> tuple[int, bool]:
        """Return the cached value and whether the attribute is supported."""

    def set_attribute(self, attr: Attribute, value: int, completion: Completion) -> Status:
        """Commit a value. Only invoke ``completion`` when returning ``Status.pending``."""

    def get_color_mode(self) -> ColorMode: ...

    def get_info(self, host_mac: str) -> dict[str, Any]: ...


def normalize_mac(mac: str) -> str:
    normalized = mac.strip().upper().replace("-", ":")
    if not _MAC_RE.match(normalized):
        raise DeviceDefinitionError(f"Host identifier '{mac}' must be 6 colon-separated hex octets")
    return normalized


def unique_id(host_mac: str, device_id: int) -> str:
    """Build ``AA:BB:CC:DD:EE:FF:00:11:XX:XX-XX`` from the host MAC and the low 24 bits of the id."""
    low = f"{device_id & 0xFFFFFF:06X}"
    return f"{normalize_mac(host_mac)}:{_UNIQUE_ID_SUFFIX}:{low[0:2]}:{low[2:4]}-{low[4:6]}"


def is_colour_capable(device: Device) -> bool:
    return device.get_attribute(Attribute.hue)[1] or device.get_attribute(Attribute.sat)[1]


def device_info(device: Device, host_mac: str) -> dict[str, Any]:
    """Build the info document reported for ``GET /lights`` from cached values."""
    state: dict[str, Any] = {}
    value, supported = device.get_attribute(Attribute.on)
    if supported:
        state["on"] = bool(value)
    state["alert"] = "none"
    state["effect"] = "none"
    state["mode"] = "homeautomation"
    for attr in (Attribute.bri, Attribute.ct, Attribute.hue, Attribute.sat):
        value, supported = device.get_attribute(attr)
        if supported:
            state[attr.value] = value

    colormode = device.get_color_mode()
    if colormode is not ColorMode.none:
        state["colormode"] = colormode.value
    state["reachable"] = True

    if is_colour_capable(device):
        light_type, model_id = "Extended color light", "LCT007"
    else:
        light_type, model_id = "On/off light", "LWB001"

    return {
        "state": state,
        "uniqueid": unique_id(host_mac, device.id),
        "name": device.name,
        "manufacturername": MANUFACTURER,
        "type": light_type,
        "modelid": model_id,
        "swversion": SW_VERSION,
    }


class CapabilityDevice:
    """A device whose behaviour is a capability bitset plus an attribute value table.

    Every commit is applied synchronously. Drivers needing deferred commits
    implement the ``Device`` protocol themselves, or subclass and override
    ``set_attribute``.
    """

    def __init__(
        self,
        id: int,
        name: str,
        capabilities: Attributes = ON_OFF,
        *,
        values: Mapping[Attribute, int] | None = None,
        ranges: Mapping[Attribute, tuple[int, int]] | None = None,
    ) -> None:
        if isinstance(id, bool) or not isinstance(id, int) or not 0 <= id <= MAX_DEVICE_ID:
            raise DeviceDefinitionError(f"Device id {id!r} must be an unsigned 32-bit integer")
        if not isinstance(name, str) or not name:
            raise DeviceDefinitionError(f"Device {id} must have a non-empty name")
        if not capabilities.has(Attribute.on):
            raise DeviceDefinitionError(f"Device {id} must support 'on'")

        self._id = id
        self._name = name
        self._capabilities = capabilities
        self._ranges = dict(DEFAULT_RANGES)
        if ranges:
            self._ranges.update(ranges)
        self._values = {attr: DEFAULT_VALUES[attr] for attr in Attribute if capabilities.has(attr)}
        if values:
            for attr, value in values.items():
                if not capabilities.has(attr):
                    raise DeviceDefinitionError(
                        f"Device {id} does not support '{attr.value}' but an initial value was given"
                    )
                if not self._in_range(attr, int(value)):
                    raise DeviceDefinitionError(
                        f"Device {id} initial '{attr.value}'={value} outside {self._ranges[attr]}"
                    )
                self._values[attr] = int(value)

        if capabilities.has(Attribute.hue):
            self._color_mode = ColorMode.hs
        elif capabilities.has(Attribute.ct):
            self._color_mode = ColorMode.ct
        else:
            self._color_mode = ColorMode.none

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def capabilities(self) -> Attributes:
        return self._capabilities

    def _in_range(self, attr: Attribute, value: int) -> bool:
        low, high = self._ranges[attr]
        return low <= value <= high

    def get_attribute(self, attr: Attribute) -> tuple[int, bool]:
        if not self._capabilities.has(attr):
            return 0, False
        return self._values[attr], True

    def set_attribute(self, attr: Attribute, value: int, completion: Completion) -> Status:
        if not self._capabilities.has(attr):
            LOGGER.debug("Device %s does not support '%s'", self._id, attr.value)
            return Status.error
        if not self._in_range(attr, value):
            LOGGER.debug("Device %s rejects '%s'=%s outside %s", self._id, attr.value, value, self._ranges[attr])
            return Status.error

        self._values[attr] = value
        if attr in (Attribute.hue, Attribute.sat):
            self._color_mode = ColorMode.hs
        elif attr is Attribute.ct:
            self._color_mode = ColorMode.ct
        return Status.success

    def get_color_mode(self) -> ColorMode:
        return self._color_mode

    def get_info(self, host_mac: str) -> dict[str, Any]:
        return device_info(self, host_mac)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, bool):
            return NotImplemented
        if isinstance(other, int):
            return self._id == other
        if isinstance(other, str):
            return self._name == other
        other_id = getattr(other, "id", None)
        if isinstance(other_id, int):
            return self._id == other_id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        tags = ",".join(self._capabilities.tags())
        return f"CapabilityDevice(id={self._id}, name={self._name!r}, capabilities={tags})"
