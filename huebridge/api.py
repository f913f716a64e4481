"""Stable public API for embedding the bridge in a host application.

Hosts supply a device collection (an enumerator over objects implementing
``Device``), route HTTP requests to ``Bridge.handle_request`` and deliver the
returned body stream. Avoid importing from internal modules unless
intentionally depending on non-stable internals.
"""

from __future__ import annotations

from pathlib import Path

from huebridge.core.bridge import Bridge, BridgeResponse
from huebridge.core.commit import CommitAggregator
from huebridge.core.completion import Completion
from huebridge.core.device import (
    COLOUR,
    DIMMABLE,
    ON_OFF,
    CapabilityDevice,
    Device,
    device_info,
    unique_id,
)
from huebridge.core.enumerator import DeviceEnumerator, ListEnumerator, MappingEnumerator, find_device
from huebridge.core.errors import (
    CommitError,
    CompletionError,
    ConfigLoadError,
    ConfigValidationError,
    DeviceDefinitionError,
    HueBridgeError,
    ProtocolError,
    RequestBodyError,
    TransportError,
    UserStoreError,
)
from huebridge.core.list_stream import DeviceListStream
from huebridge.core.model import (
    Attribute,
    Attributes,
    BridgeIdentity,
    BridgeSettings,
    ColorMode,
    ConfigAction,
    ConfigType,
    ErrorCode,
    Status,
    User,
)
from huebridge.core.service import BridgeService, RequestResult
from huebridge.core.user_store import UserStore
from huebridge.transports.base import BodyStream
from huebridge.transports.memory import drain, iter_chunks

__all__ = [
    "HueBridgeError",
    "CommitError",
    "CompletionError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceDefinitionError",
    "ProtocolError",
    "RequestBodyError",
    "TransportError",
    "UserStoreError",
    "Attribute",
    "Attributes",
    "BridgeIdentity",
    "BridgeSettings",
    "ColorMode",
    "ConfigAction",
    "ConfigType",
    "ErrorCode",
    "Status",
    "User",
    "Bridge",
    "BridgeResponse",
    "BodyStream",
    "CommitAggregator",
    "Completion",
    "Device",
    "CapabilityDevice",
    "ON_OFF",
    "DIMMABLE",
    "COLOUR",
    "device_info",
    "unique_id",
    "DeviceEnumerator",
    "ListEnumerator",
    "MappingEnumerator",
    "find_device",
    "DeviceListStream",
    "UserStore",
    "drain",
    "iter_chunks",
    "Client",
]


class Client:
    """Public client running requests against a configured, in-process bridge.

    A `Client` wraps config loading, user persistence, and body draining
    behind a stable API intended for scripts and test harnesses.
    """

    def __init__(
        self,
        *,
        config_path: Path | None = None,
        store: UserStore | None = None,
    ) -> None:
        self._service = BridgeService(config_path=config_path, store=store)

    @property
    def bridge(self) -> Bridge:
        return self._service.bridge

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_devices(self) -> list[CapabilityDevice]:
        return self._service.list_devices()

    def enable_pairing(self) -> None:
        self._service.enable_pairing()

    def request(self, method: str, path: str, body: bytes | None = None, *, chunk_size: int = 512) -> RequestResult:
        return self._service.request(method, path, body, chunk_size=chunk_size)

    def revoke_user(self, name: str) -> None:
        self._service.revoke_user(name)
