"""Bridge and device configuration loading from YAML files."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from huebridge.core.device import CAPABILITY_PRESETS, CapabilityDevice, normalize_mac
from huebridge.core.errors import ConfigLoadError, ConfigValidationError, DeviceDefinitionError
from huebridge.core.model import Attribute, BridgeIdentity, BridgeSettings, DeviceConfig

CONFIG_FILE_NAME = "bridge.yaml"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys and keeps ``on``/``off`` keys as strings."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedConfig:
    settings: BridgeSettings
    devices: tuple[DeviceConfig, ...]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("huebridge.schemas").joinpath("bridge.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def config_dir() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "huebridge"


def data_dir() -> Path:
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_data / "huebridge"


def read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "on", "yes"):
            return True
        if lowered in ("false", "off", "no"):
            return False
    raise ConfigValidationError(f"{context} must be boolean true/false")


def _validate(doc: dict[str, Any], source: Path | Traversable) -> None:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _build_settings(section: dict[str, Any], source: Path | Traversable) -> BridgeSettings:
    if "mac" not in section:
        raise ConfigValidationError(f"{source} does not define bridge.mac")
    try:
        mac = normalize_mac(section["mac"])
    except DeviceDefinitionError as exc:
        raise ConfigValidationError(f"{source}: {exc}") from exc

    timeout = section.get("pairing_timeout_s", 30.0)
    return BridgeSettings(
        identity=BridgeIdentity(mac=mac, ip=section.get("ip", "127.0.0.1")),
        max_body_size=int(section.get("max_body_size", 1024)),
        pairing_timeout_s=float(timeout) if timeout is not None else None,
    )


def _build_device_config(doc: dict[str, Any]) -> DeviceConfig:
    state: dict[str, int | bool] = {}
    for tag, value in doc.get("state", {}).items():
        if tag == Attribute.on.value:
            state[tag] = _normalize_bool(value, context=f"devices.{doc['id']}.state.on")
        else:
            state[tag] = int(value)
    return DeviceConfig(id=int(doc["id"]), name=doc["name"], kind=doc["kind"], state=state)


def _packaged_config_path() -> Traversable:
    return resources.files("huebridge.defaults").joinpath(CONFIG_FILE_NAME)


def load_config(path: Path | None = None) -> LoadedConfig:
    """Load packaged defaults, then overlay ``path`` or the user's config file if present."""
    warnings: list[str] = []

    packaged = _packaged_config_path()
    doc = read_yaml(packaged)
    _validate(doc, packaged)
    bridge_section: dict[str, Any] = dict(doc.get("bridge", {}))
    device_docs: list[dict[str, Any]] = list(doc.get("devices", []))
    source: Path | Traversable = packaged

    override = path
    if override is None:
        user_path = config_dir() / CONFIG_FILE_NAME
        if user_path.is_file():
            override = user_path
    elif not override.is_file():
        raise ConfigLoadError(f"Config file {override} does not exist")

    if override is not None:
        user_doc = read_yaml(override)
        _validate(user_doc, override)
        bridge_section.update(user_doc.get("bridge", {}))
        if "devices" in user_doc:
            device_docs = list(user_doc["devices"])
            warning = f"Devices from {override} override packaged devices"
            LOGGER.warning(warning)
            warnings.append(warning)
        source = override

    settings = _build_settings(bridge_section, source)

    devices: list[DeviceConfig] = []
    seen: set[int] = set()
    for device_doc in device_docs:
        device = _build_device_config(device_doc)
        if device.id in seen:
            raise ConfigValidationError(f"Duplicate device id {device.id} in {source}")
        seen.add(device.id)
        devices.append(device)

    return LoadedConfig(settings=settings, devices=tuple(devices), warnings=tuple(warnings))


def build_devices(configs: tuple[DeviceConfig, ...] | list[DeviceConfig]) -> list[CapabilityDevice]:
    devices: list[CapabilityDevice] = []
    for config in configs:
        values = {Attribute(tag): int(value) for tag, value in config.state.items()}
        try:
            devices.append(
                CapabilityDevice(
                    config.id,
                    config.name,
                    CAPABILITY_PRESETS[config.kind],
                    values=values,
                )
            )
        except DeviceDefinitionError as exc:
            raise ConfigValidationError(f"Invalid device '{config.name}': {exc}") from exc
    return devices
