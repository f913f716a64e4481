"""Core data models used across the bridge, devices, loader, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, Flag, IntEnum


class Attributes(Flag):
    """Bitset over the controllable attributes, e.g. the set changed by one request."""

    NONE = 0
    ON = 1
    BRI = 2
    CT = 4
    HUE = 8
    SAT = 16

    def has(self, attr: Attribute) -> bool:
        return bool(self & attr.flag)

    def tags(self) -> tuple[str, ...]:
        return tuple(attr.value for attr in Attribute if self.has(attr))

    @classmethod
    def of(cls, *attrs: Attribute) -> Attributes:
        result = cls.NONE
        for attr in attrs:
            result |= attr.flag
        return result


class Attribute(Enum):
    on = "on"
    bri = "bri"
    ct = "ct"
    hue = "hue"
    sat = "sat"

    @property
    def flag(self) -> Attributes:
        return Attributes[self.name.upper()]

    @property
    def is_boolean(self) -> bool:
        return self is Attribute.on

    @classmethod
    def from_tag(cls, tag: str) -> Attribute | None:
        try:
            return cls(tag)
        except ValueError:
            return None


class ColorMode(Enum):
    none = "none"
    hs = "hs"
    ct = "ct"
    xy = "xy"


class Status(Enum):
    """Outcome of a single ``set_attribute`` call."""

    success = "success"
    pending = "pending"
    error = "error"


_ERROR_TEMPLATES = {
    1: "unauthorized user",
    3: "resource, <resource>, not available",
    4: "method, <method_name>, not available for resource, <resource>",
    6: "parameter, <parameter>, not available",
    101: "link button not pressed",
    901: "Internal error, <error_code>",
}


class ErrorCode(IntEnum):
    UNAUTHORIZED_USER = 1
    RESOURCE_NOT_AVAILABLE = 3
    METHOD_NOT_AVAILABLE = 4
    PARAMETER_NOT_AVAILABLE = 6
    LINK_BUTTON_NOT_PRESSED = 101
    INTERNAL_ERROR = 901

    @property
    def template(self) -> str:
        return _ERROR_TEMPLATES[int(self)]


@dataclass
class User:
    device_type: str = ""
    count: int = 0
    authorized: bool = False


class ConfigType(Enum):
    AUTHORIZE_USER = "authorize"
    REVOKE_USER = "revoke"


@dataclass(frozen=True)
class ConfigAction:
    """An authorization change that must be stored and replayed via ``Bridge.configure``."""

    type: ConfigType
    name: str
    device_type: str = ""


@dataclass
class RequestStats:
    count: int = 0
    ignored: int = 0
    get_all_device_info: int = 0
    get_device_info: int = 0
    set_device_info: int = 0


@dataclass
class ResponseStats:
    count: int = 0
    size: int = 0


@dataclass
class ErrorStats:
    count: int = 0
    resource_not_available: int = 0
    method_not_available: int = 0
    unauthorized_user: int = 0


@dataclass
class Stats:
    request: RequestStats = field(default_factory=RequestStats)
    response: ResponseStats = field(default_factory=ResponseStats)
    error: ErrorStats = field(default_factory=ErrorStats)

    def serialize(self) -> dict[str, dict[str, int]]:
        return {
            "req": {
                "count": self.request.count,
                "getAllDev": self.request.get_all_device_info,
                "getDev": self.request.get_device_info,
                "setDev": self.request.set_device_info,
            },
            "resp": {
                "count": self.response.count,
                "size": self.response.size,
            },
            "err": {
                "count": self.error.count,
                "res": self.error.resource_not_available,
                "meth": self.error.method_not_available,
                "user": self.error.unauthorized_user,
            },
        }


@dataclass(frozen=True)
class BridgeIdentity:
    """Host identity used for device unique ids and the advertised description."""

    mac: str
    ip: str = "127.0.0.1"

    @property
    def serial_number(self) -> str:
        return self.mac.replace(":", "")

    def fields(self) -> dict[str, str]:
        return {
            "friendlyName": f"Philips hue ({self.ip})",
            "manufacturer": "Royal Philips Electronics",
            "manufacturerURL": "http://www.philips.com",
            "modelDescription": "Python Hue Emulator",
            "modelName": "Philips hue bridge 2012",
            "modelNumber": "929000226503",
            "modelURL": "http://www.meethue.com",
            "serialNumber": self.serial_number,
            "UDN": f"uuid:2f402f80-da50-11e1-9b23-{self.serial_number}",
            "presentationURL": "index.html",
            "serverId": "Linux/3.14.0 UPnP/1.0 IpBridge/1.17.0",
            "hue-bridgeid": self.serial_number,
        }


@dataclass(frozen=True)
class BridgeSettings:
    identity: BridgeIdentity
    max_body_size: int = 1024
    pairing_timeout_s: float | None = 30.0


@dataclass(frozen=True)
class DeviceConfig:
    id: int
    name: str
    kind: str
    state: dict[str, int | bool]
