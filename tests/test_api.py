from __future__ import annotations

import json
from pathlib import Path

import pytest

from huebridge.api import Client, ConfigAction, ConfigType, ErrorCode, UserStore


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Client:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    store = UserStore(tmp_path / "users.yaml")
    store.record(ConfigAction(type=ConfigType.AUTHORIZE_USER, name="u1", device_type="test"))
    return Client(store=store)


def test_public_client_lists_devices(client: Client) -> None:
    devices = client.list_devices()
    assert [device.id for device in devices] == [1, 2, 3]
    assert client.load_warnings == ()


def test_public_client_replays_stored_users(client: Client) -> None:
    assert client.bridge.users["u1"].authorized

    result = client.request("GET", "/api/u1/lights", chunk_size=3)
    assert result.status == 200
    lights = json.loads(result.body)
    assert lights["2"]["state"]["bri"] == 200
    assert lights["3"]["type"] == "Extended color light"


def test_public_client_sets_state(client: Client) -> None:
    result = client.request("POST", "/api/u1/lights/3/state", b'{"on":true,"hue":100,"effect":"colorloop"}')
    assert json.loads(result.body) == [
        {"success": {"/lights/3/state/on": True}},
        {"success": {"/lights/3/state/hue": 100}},
        {
            "error": {
                "type": ErrorCode.INTERNAL_ERROR.value,
                "address": "/lights/3/state",
                "description": "Internal error, -1",
            }
        },
    ]
    info = json.loads(client.request("GET", "/api/u1/lights/3").body)
    assert info["state"]["on"] is True
    assert info["state"]["colormode"] == "hs"


def test_public_client_pairing_and_revoke(client: Client, tmp_path: Path) -> None:
    client.enable_pairing()
    result = client.request("POST", "/api", b'{"devicetype":"script"}')
    username = json.loads(result.body)[0]["success"]["username"]

    client.revoke_user(username)

    stored = {action.name: action for action in UserStore(tmp_path / "users.yaml").load()}
    assert stored[username].type is ConfigType.REVOKE_USER
    assert stored[username].device_type == "script"
    assert stored["u1"].type is ConfigType.AUTHORIZE_USER
