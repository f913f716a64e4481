"""YAML persistence for authorization changes announced by the bridge."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from huebridge.core.config_loader import data_dir
from huebridge.core.errors import UserStoreError
from huebridge.core.model import ConfigAction, ConfigType

USERS_FILE_NAME = "users.yaml"
LOGGER = logging.getLogger(__name__)


class UserStore:
    """Keeps the latest authorization state per username.

    Recording is idempotent: storing the same action twice leaves the file
    unchanged. ``load()`` returns the actions to hand back to
    ``Bridge.configure`` at startup.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or data_dir() / USERS_FILE_NAME

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            doc = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise UserStoreError(f"Could not load users from {self.path}: {exc}") from exc

        users = (doc.get("users") or {}) if isinstance(doc, dict) else None
        if not isinstance(users, dict):
            raise UserStoreError(f"'users' in {self.path} must be a mapping")
        for name, entry in users.items():
            if not isinstance(entry, dict) or not isinstance(entry.get("authorized"), bool):
                raise UserStoreError(f"Invalid entry for user '{name}' in {self.path}")
        return users

    def _write(self, users: dict[str, dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                yaml.safe_dump({"users": users}, sort_keys=True),
                encoding="utf-8",
            )
        except OSError as exc:
            raise UserStoreError(f"Could not write users to {self.path}: {exc}") from exc

    def load(self) -> list[ConfigAction]:
        actions: list[ConfigAction] = []
        for name, entry in self._read().items():
            actions.append(
                ConfigAction(
                    type=ConfigType.AUTHORIZE_USER if entry["authorized"] else ConfigType.REVOKE_USER,
                    name=str(name),
                    device_type=str(entry.get("devicetype", "")),
                )
            )
        return actions

    def record(self, action: ConfigAction) -> None:
        users = self._read()
        entry = users.get(action.name, {})
        entry["authorized"] = action.type is ConfigType.AUTHORIZE_USER
        if action.type is ConfigType.AUTHORIZE_USER or "devicetype" not in entry:
            entry["devicetype"] = action.device_type
        users[action.name] = entry
        self._write(users)
        LOGGER.info("Stored %s for user '%s'", action.type.value, action.name)
