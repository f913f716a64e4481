from __future__ import annotations

from pathlib import Path

import pytest

from huebridge.core.config_loader import build_devices, load_config
from huebridge.core.errors import ConfigLoadError, ConfigValidationError
from huebridge.core.model import Attribute


def _write_config(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture(autouse=True)
def isolated_dirs(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))


def test_load_packaged_config() -> None:
    loaded = load_config()
    assert loaded.warnings == ()
    assert loaded.settings.identity.mac == "02:00:5E:10:00:01"
    assert loaded.settings.max_body_size == 1024
    assert loaded.settings.pairing_timeout_s == 30.0
    assert [device.name for device in loaded.devices] == ["Hallway", "Kitchen", "Lounge"]
    assert loaded.devices[1].state == {"on": True, "bri": 200}


def test_packaged_devices_build() -> None:
    devices = build_devices(load_config().devices)
    lounge = devices[2]
    assert lounge.get_attribute(Attribute.hue) == (46920, True)
    assert lounge.get_attribute(Attribute.on) == (0, True)
    assert devices[0].get_attribute(Attribute.bri) == (0, False)


def test_user_config_overrides_devices(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "huebridge" / "bridge.yaml",
        """
bridge:
  max_body_size: 256
devices:
  - id: 7
    name: Porch
    kind: dimmable
    state:
      on: "off"
      bri: 50
""",
    )

    loaded = load_config()
    assert loaded.settings.max_body_size == 256
    assert loaded.settings.identity.mac == "02:00:5E:10:00:01"
    assert [device.id for device in loaded.devices] == [7]
    assert loaded.devices[0].state == {"on": False, "bri": 50}
    assert len(loaded.warnings) == 1
    assert "override packaged devices" in loaded.warnings[0]


def test_bridge_only_override_keeps_packaged_devices(tmp_path: Path) -> None:
    config = tmp_path / "bridge.yaml"
    _write_config(config, "bridge:\n  mac: 'aa-bb-cc-dd-ee-ff'\n  pairing_timeout_s: null\n")

    loaded = load_config(config)
    assert loaded.settings.identity.mac == "AA:BB:CC:DD:EE:FF"
    assert loaded.settings.pairing_timeout_s is None
    assert len(loaded.devices) == 3
    assert loaded.warnings == ()


def test_missing_explicit_config_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_config(tmp_path / "missing.yaml")


def test_duplicate_keys_rejected(tmp_path: Path) -> None:
    config = tmp_path / "bridge.yaml"
    _write_config(config, "bridge:\n  ip: 10.0.0.1\n  ip: 10.0.0.2\n")
    with pytest.raises(ConfigValidationError, match="Duplicate key 'ip'"):
        load_config(config)


def test_duplicate_device_ids_rejected(tmp_path: Path) -> None:
    config = tmp_path / "bridge.yaml"
    _write_config(
        config,
        """
devices:
  - {id: 1, name: A, kind: onoff}
  - {id: 1, name: B, kind: onoff}
""",
    )
    with pytest.raises(ConfigValidationError, match="Duplicate device id 1"):
        load_config(config)


@pytest.mark.parametrize(
    "content",
    [
        "devices:\n  - {id: 1, name: A, kind: strobe}\n",
        "devices:\n  - {id: 1, kind: onoff}\n",
        "devices:\n  - {id: 4294967296, name: A, kind: onoff}\n",
        "bridge:\n  port: 80\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_documents_rejected(tmp_path: Path, content: str) -> None:
    config = tmp_path / "bridge.yaml"
    _write_config(config, content)
    with pytest.raises(ConfigValidationError):
        load_config(config)


def test_non_boolean_on_rejected(tmp_path: Path) -> None:
    config = tmp_path / "bridge.yaml"
    _write_config(config, "devices:\n  - {id: 1, name: A, kind: onoff, state: {on: maybe}}\n")
    with pytest.raises(ConfigValidationError, match="must be boolean"):
        load_config(config)


def test_invalid_mac_rejected(tmp_path: Path) -> None:
    config = tmp_path / "bridge.yaml"
    _write_config(config, "bridge:\n  mac: not-a-mac\n")
    with pytest.raises(ConfigValidationError):
        load_config(config)


def test_out_of_range_initial_state_rejected(tmp_path: Path) -> None:
    config = tmp_path / "bridge.yaml"
    _write_config(config, "devices:\n  - {id: 1, name: A, kind: dimmable, state: {bri: 300}}\n")
    loaded = load_config(config)
    with pytest.raises(ConfigValidationError, match="Invalid device 'A'"):
        build_devices(loaded.devices)


def test_unsupported_initial_state_rejected(tmp_path: Path) -> None:
    config = tmp_path / "bridge.yaml"
    _write_config(config, "devices:\n  - {id: 1, name: A, kind: onoff, state: {hue: 10}}\n")
    with pytest.raises(ConfigValidationError):
        build_devices(load_config(config).devices)
