from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from huebridge import cli
from huebridge.core.device import COLOUR, ON_OFF, CapabilityDevice
from huebridge.core.errors import TransportError, UserStoreError
from huebridge.core.model import BridgeIdentity, User
from huebridge.core.service import RequestResult


class FakeService:
    def __init__(self, config_path=None, store=None) -> None:
        self.config_path = config_path
        self.load_warnings = ()
        self.pairing = False
        self.requests = []

    def list_devices(self):
        return [CapabilityDevice(1, "Hallway", ON_OFF), CapabilityDevice(3, "Lounge", COLOUR)]

    def list_users(self):
        return {
            "alice": User(device_type="app#phone", count=2, authorized=True),
            "bob": User(authorized=False),
        }

    def identity_fields(self):
        return BridgeIdentity(mac="02:00:5E:10:00:01").fields()

    def enable_pairing(self):
        self.pairing = True

    def request(self, method, path, body=None, *, chunk_size=512):
        self.requests.append((method, path, body, chunk_size))
        if path == "/api/bad":
            return RequestResult(status=400, body=None, content_type="application/json")
        return RequestResult(status=200, body=b'[{"success":{"username":"abc"}}]', content_type="application/json")

    def revoke_user(self, name):
        if name != "alice":
            raise UserStoreError(f"Unknown user '{name}'. Use 'huebridge users' to list stored users.")


runner = CliRunner()


def test_devices_command(monkeypatch):
    monkeypatch.setattr(cli, "BridgeService", FakeService)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "1: Hallway [on]" in result.stdout
    assert "3: Lounge [on, bri, ct, hue, sat]" in result.stdout


def test_users_command(monkeypatch):
    monkeypatch.setattr(cli, "BridgeService", FakeService)
    result = runner.invoke(cli.app, ["users"])
    assert result.exit_code == 0
    assert "alice (app#phone): authorized" in result.stdout
    assert "bob (<none>): revoked" in result.stdout


def test_info_command(monkeypatch):
    monkeypatch.setattr(cli, "BridgeService", FakeService)
    result = runner.invoke(cli.app, ["info"])
    assert result.exit_code == 0
    assert "serialNumber: 02005E100001" in result.stdout
    assert "hue-bridgeid: 02005E100001" in result.stdout


def test_request_command_with_pairing(monkeypatch):
    services = []

    class RecordingService(FakeService):
        def __init__(self, config_path=None, store=None) -> None:
            super().__init__(config_path, store)
            services.append(self)

    monkeypatch.setattr(cli, "BridgeService", RecordingService)
    result = runner.invoke(
        cli.app,
        ["request", "POST", "/api", "--body", '{"devicetype":"cli"}', "--pairing", "--chunk-size", "7"],
    )
    assert result.exit_code == 0
    assert '"username":"abc"' in result.stdout
    assert services[0].pairing
    assert services[0].requests == [("POST", "/api", b'{"devicetype":"cli"}', 7)]


def test_request_without_body_reports_status(monkeypatch):
    monkeypatch.setattr(cli, "BridgeService", FakeService)
    result = runner.invoke(cli.app, ["request", "POST", "/api/bad"])
    assert result.exit_code == 1
    assert "HTTP 400" in result.stderr


def test_revoke_command(monkeypatch):
    monkeypatch.setattr(cli, "BridgeService", FakeService)
    result = runner.invoke(cli.app, ["revoke", "alice"])
    assert result.exit_code == 0
    assert "Revoked alice" in result.stdout


def test_revoke_unknown_user_error_is_clean(monkeypatch):
    monkeypatch.setattr(cli, "BridgeService", FakeService)
    result = runner.invoke(cli.app, ["revoke", "mallory"])
    assert result.exit_code == 1
    assert "Error: Unknown user 'mallory'" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_request_error_is_clean(monkeypatch):
    class FailingService(FakeService):
        def request(self, method, path, body=None, *, chunk_size=512):
            raise TransportError(f"Path '{path}' is not handled by the bridge; it must start with /api")

    monkeypatch.setattr(cli, "BridgeService", FailingService)
    result = runner.invoke(cli.app, ["request", "GET", "/description.xml"])
    assert result.exit_code == 1
    assert "Error: Path '/description.xml' is not handled" in result.stderr


def test_load_warning_is_printed(monkeypatch):
    class WarnService(FakeService):
        def __init__(self, config_path=None, store=None) -> None:
            super().__init__(config_path, store)
            self.load_warnings = ("Devices from bridge.yaml override packaged devices",)

    monkeypatch.setattr(cli, "BridgeService", WarnService)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "Warning: Devices from bridge.yaml override packaged devices" in result.stderr


def test_pairing_persists_users_between_runs(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    result = runner.invoke(cli.app, ["request", "POST", "/api", "--body", '{"devicetype":"cli"}', "--pairing"])
    assert result.exit_code == 0
    username = json.loads(result.stdout)[0]["success"]["username"]

    result = runner.invoke(cli.app, ["users"])
    assert f"{username} (cli): authorized" in result.stdout

    result = runner.invoke(cli.app, ["request", "POST", f"/api/{username}/lights/2/state", "--body", '{"bri":10}'])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == [{"success": {"/lights/2/state/bri": 10}}]

    result = runner.invoke(cli.app, ["revoke", username])
    assert result.exit_code == 0

    result = runner.invoke(cli.app, ["request", "GET", f"/api/{username}/lights"])
    assert json.loads(result.stdout)[0]["error"]["type"] == 1
    assert (tmp_path / "data" / "huebridge" / "users.yaml").is_file()
