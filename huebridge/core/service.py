"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from huebridge.core.bridge import Bridge
from huebridge.core.config_loader import build_devices, load_config
from huebridge.core.device import CapabilityDevice, Device
from huebridge.core.enumerator import ListEnumerator
from huebridge.core.errors import TransportError, UserStoreError
from huebridge.core.model import Attributes, BridgeSettings, User
from huebridge.core.user_store import UserStore
from huebridge.transports.memory import DEFAULT_CHUNK_SIZE, drain

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestResult:
    status: int
    body: bytes | None
    content_type: str


@dataclass(frozen=True)
class StateChange:
    device_id: int
    changed: Attributes


class BridgeService:
    """Builds a bridge from configuration and the persisted user list."""

    def __init__(
        self,
        *,
        config_path: Path | None = None,
        store: UserStore | None = None,
    ) -> None:
        loaded = load_config(config_path)
        self.settings: BridgeSettings = loaded.settings
        self.load_warnings = loaded.warnings
        self.devices: list[CapabilityDevice] = build_devices(loaded.devices)
        self.store = store or UserStore()
        self.state_changes: list[StateChange] = []

        self.bridge = Bridge(ListEnumerator(self.devices), self.settings)
        for action in self.store.load():
            self.bridge.configure(action)
        self.bridge.on_config_change(self.store.record)
        self.bridge.on_state_changed(self._state_changed)

    def _state_changed(self, device: Device, changed: Attributes) -> None:
        LOGGER.info("State changed for device %s: %s", device.id, ",".join(changed.tags()) or "<none>")
        self.state_changes.append(StateChange(device_id=device.id, changed=changed))

    def list_devices(self) -> list[CapabilityDevice]:
        return sorted(self.devices, key=lambda d: d.id)

    def list_users(self) -> Mapping[str, User]:
        return self.bridge.users

    def identity_fields(self) -> dict[str, str]:
        return self.bridge.identity.fields()

    def enable_pairing(self) -> None:
        self.bridge.enable_pairing(True, self.settings.pairing_timeout_s)

    def revoke_user(self, name: str) -> None:
        if name not in self.bridge.users:
            raise UserStoreError(f"Unknown user '{name}'. Use 'huebridge users' to list stored users.")
        self.bridge.revoke_user(name)

    def request(
        self,
        method: str,
        path: str,
        body: bytes | None = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> RequestResult:
        response = self.bridge.handle_request(method, path, body)
        if response is None:
            raise TransportError(f"Path '{path}' is not handled by the bridge; it must start with /api")
        payload = drain(response.body, chunk_size) if response.body is not None else None
        return RequestResult(status=response.status, body=payload, content_type=response.content_type)
