"""Request dispatcher emulating the bridge's ``/api`` resource tree.

Supported requests::

    POST /api                                 create user (pairing only)
    GET  /api/<username>/lights               all lights, streamed
    POST /api/<username>/lights               search for new lights
    GET  /api/<username>/lights/<id>          light attributes and state
    POST /api/<username>/lights/<id>/state    set light state
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from huebridge.core.commit import CommitAggregator
from huebridge.core.device import MAX_DEVICE_ID, Device
from huebridge.core.enumerator import DeviceEnumerator
from huebridge.core.errors import ProtocolError, RequestBodyError
from huebridge.core.list_stream import DeviceListStream
from huebridge.core.model import (
    Attributes,
    BridgeIdentity,
    BridgeSettings,
    ConfigAction,
    ConfigType,
    ErrorCode,
    Stats,
    User,
)
from huebridge.core.results import describe, dumps, error_entry, success_entry
from huebridge.core.streams import MemoryStream
from huebridge.transports.base import BodyStream

LOGGER = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
MIME_JSON = "application/json"
DEFAULT_DEVICE_TYPE = "Default"

ConfigDelegate = Callable[[ConfigAction], None]
StateChangeDelegate = Callable[[Device, Attributes], None]


@dataclass(frozen=True)
class BridgeResponse:
    status: int
    body: BodyStream | None = None
    content_type: str = MIME_JSON


def _new_username() -> str:
    return secrets.token_hex(16)


def _parse_device_id(segment: str) -> int | None:
    if not (segment.isascii() and segment.isdigit()):
        return None
    device_id = int(segment)
    return device_id if device_id <= MAX_DEVICE_ID else None


class Bridge:
    """Routes protocol requests onto a device collection.

    The bridge owns the user table and the pairing state. Authorization
    changes are announced through the config delegate so the host can store
    them and replay them with ``configure()`` on the next start.
    """

    def __init__(
        self,
        devices: DeviceEnumerator,
        settings: BridgeSettings,
        *,
        clock: Callable[[], float] = time.monotonic,
        username_factory: Callable[[], str] = _new_username,
    ) -> None:
        self._devices = devices
        self._settings = settings
        self._clock = clock
        self._username_factory = username_factory
        self._users: dict[str, User] = {}
        self._pairing_enabled = False
        self._pairing_deadline: float | None = None
        self._config_delegate: ConfigDelegate | None = None
        self._state_change_delegate: StateChangeDelegate | None = None
        self.stats = Stats()

    @property
    def identity(self) -> BridgeIdentity:
        return self._settings.identity

    @property
    def users(self) -> Mapping[str, User]:
        return MappingProxyType(self._users)

    @property
    def pairing_enabled(self) -> bool:
        if self._pairing_enabled and self._pairing_deadline is not None and self._clock() >= self._pairing_deadline:
            LOGGER.info("Pairing window expired")
            self._pairing_enabled = False
            self._pairing_deadline = None
        return self._pairing_enabled

    def enable_pairing(self, enable: bool = True, timeout_s: float | None = None) -> None:
        """Allow new users to be created, optionally only for ``timeout_s`` seconds.

        Never leave pairing permanently enabled: any client could then take
        control of every device.
        """
        self._pairing_enabled = enable
        self._pairing_deadline = self._clock() + timeout_s if enable and timeout_s is not None else None
        LOGGER.info("Pairing %s", "enabled" if enable else "disabled")

    def on_config_change(self, delegate: ConfigDelegate | None) -> None:
        self._config_delegate = delegate

    def on_state_changed(self, delegate: StateChangeDelegate | None) -> None:
        self._state_change_delegate = delegate

    def device_state_changed(self, device: Device, changed: Attributes) -> None:
        if self._state_change_delegate is not None:
            self._state_change_delegate(device, changed)

    def configure(self, action: ConfigAction) -> None:
        """Apply an authorization change; also used to replay stored actions at startup."""
        user = self._users.setdefault(action.name, User())
        if action.type is ConfigType.AUTHORIZE_USER:
            user.device_type = action.device_type
            user.authorized = True
            LOGGER.info("Authorized user '%s', devicetype = '%s'", action.name, user.device_type)
        else:
            user.authorized = False
            LOGGER.info("Revoked user '%s', devicetype = '%s'", action.name, user.device_type)

    def revoke_user(self, name: str) -> None:
        user = self._users.get(name)
        action = ConfigAction(
            type=ConfigType.REVOKE_USER,
            name=name,
            device_type=user.device_type if user else "",
        )
        self.configure(action)
        self._emit_config(action)

    def validate_user(self, name: str) -> bool:
        user = self._users.setdefault(name, User())
        user.count += 1

        if user.authorized:
            return True

        if not self.pairing_enabled:
            return False

        LOGGER.info("In pairing mode, storing provided username '%s'", name)
        action = ConfigAction(type=ConfigType.AUTHORIZE_USER, name=name, device_type=DEFAULT_DEVICE_TYPE)
        self.configure(action)
        self._emit_config(action)
        return True

    def create_user(self, device_type: str = "", address: str = "/") -> str:
        if not self.pairing_enabled:
            raise ProtocolError(ErrorCode.LINK_BUTTON_NOT_PRESSED, address)

        name = self._username_factory()
        while name in self._users:
            name = self._username_factory()

        action = ConfigAction(type=ConfigType.AUTHORIZE_USER, name=name, device_type=device_type)
        self.configure(action)
        self._emit_config(action)
        return name

    def reset_stats(self) -> None:
        self.stats = Stats()

    def status_info(self) -> dict[str, Any]:
        info: dict[str, Any] = self.stats.serialize()
        info["users"] = {
            name: {"devicetype": user.device_type, "auth": user.authorized, "count": user.count}
            for name, user in self._users.items()
        }
        return info

    def handle_request(self, method: str, path: str, body: Any = None) -> BridgeResponse | None:
        """Handle one request; ``None`` means the path is outside ``/api`` and was not handled."""
        self.stats.request.count += 1

        path = path.split("?", 1)[0]
        segments = [segment for segment in path.split("/") if segment]
        if not segments or segments[0] != "api":
            self.stats.request.ignored += 1
            return None

        method = method.upper()
        LOGGER.info("Request: %s %s", method, path)

        try:
            request = self._parse_body(body)
        except RequestBodyError as exc:
            LOGGER.error("Invalid request body: %s", exc)
            self.stats.error.count += 1
            return BridgeResponse(status=HTTP_BAD_REQUEST)

        # Address reported in results, relative to /api/<username>
        address = "/" + "/".join(segments[2:])

        try:
            return self._dispatch(method, segments, address, request)
        except ProtocolError as exc:
            self._count_error(exc.code)
            return self._send_document([error_entry(exc.code, exc.address, exc.description)])

    def _dispatch(
        self,
        method: str,
        segments: list[str],
        address: str,
        request: dict[str, Any],
    ) -> BridgeResponse:
        if len(segments) == 1:
            if method != "POST":
                raise self._method_not_available(method, address)
            device_type = request.get("devicetype")
            username = self.create_user(device_type if isinstance(device_type, str) else "", address)
            return self._send_document([success_entry({"username": username})])

        if not self.validate_user(segments[1]):
            raise ProtocolError(ErrorCode.UNAUTHORIZED_USER, address)

        resource = segments[2:]
        if not resource or resource[0] != "lights" or len(resource) > 3:
            raise self._resource_not_available(address)
        if len(resource) == 3 and resource[2] != "state":
            raise self._resource_not_available(address)

        if len(resource) == 1:
            if method == "GET":
                LOGGER.info("Get all lights")
                self.stats.request.get_all_device_info += 1
                self.stats.response.count += 1
                return BridgeResponse(status=HTTP_OK, body=DeviceListStream(self._devices.clone(), self.identity.mac))
            if method == "POST":
                LOGGER.info("Search for new lights")
                return self._send_document([success_entry({"lights": "Searching for new devices"})])
            raise self._method_not_available(method, address)

        if len(resource) == 2:
            if method != "GET":
                raise self._method_not_available(method, address)
            device = self._find_device(resource[1], address)
            LOGGER.info("Get light %s", device.id)
            self.stats.request.get_device_info += 1
            return self._send_document(device.get_info(self.identity.mac))

        if method != "POST":
            raise self._method_not_available(method, address)
        device = self._find_device(resource[1], address)
        LOGGER.info("Set light state %s", device.id)
        self.stats.request.set_device_info += 1
        aggregator = CommitAggregator(device, address, self.device_state_changed)
        aggregator.handle_request(request)
        self.stats.response.count += 1
        return BridgeResponse(status=HTTP_OK, body=aggregator)

    def _find_device(self, segment: str, address: str) -> Device:
        device_id = _parse_device_id(segment)
        device = self._devices.find_by_id(device_id) if device_id is not None else None
        if device is None:
            LOGGER.warning("Invalid device ID: %s", segment)
            raise self._resource_not_available(address)
        return device

    def _parse_body(self, body: Any) -> dict[str, Any]:
        if body is None:
            return {}
        if not isinstance(body, (bytes, bytearray, memoryview)):
            raise RequestBodyError(f"Body must be an in-memory buffer, got {type(body).__name__}")
        data = bytes(body)
        if len(data) > self._settings.max_body_size:
            raise RequestBodyError(f"Body of {len(data)} bytes exceeds {self._settings.max_body_size}")
        if not data.strip():
            return {}
        LOGGER.debug("Body: %d bytes", len(data))
        try:
            document = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RequestBodyError(f"Body is not valid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise RequestBodyError("Body must be a JSON object")
        return document

    def _send_document(self, document: Any) -> BridgeResponse:
        stream = MemoryStream(dumps(document))
        self.stats.response.count += 1
        self.stats.response.size += len(stream)
        return BridgeResponse(status=HTTP_OK, body=stream)

    def _resource_not_available(self, address: str) -> ProtocolError:
        description = describe(ErrorCode.RESOURCE_NOT_AVAILABLE, resource=address)
        return ProtocolError(ErrorCode.RESOURCE_NOT_AVAILABLE, address, description)

    def _method_not_available(self, method: str, address: str) -> ProtocolError:
        description = describe(ErrorCode.METHOD_NOT_AVAILABLE, method_name=method, resource=address)
        return ProtocolError(ErrorCode.METHOD_NOT_AVAILABLE, address, description)

    def _count_error(self, code: ErrorCode) -> None:
        self.stats.error.count += 1
        if code is ErrorCode.RESOURCE_NOT_AVAILABLE:
            self.stats.error.resource_not_available += 1
        elif code is ErrorCode.METHOD_NOT_AVAILABLE:
            self.stats.error.method_not_available += 1
        elif code is ErrorCode.UNAUTHORIZED_USER:
            self.stats.error.unauthorized_user += 1

    def _emit_config(self, action: ConfigAction) -> None:
        if self._config_delegate is None:
            LOGGER.error("Config delegate not set!")
            return
        self._config_delegate(action)
