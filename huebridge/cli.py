"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from huebridge.core.errors import HueBridgeError
from huebridge.core.service import BridgeService

app = typer.Typer(help="Hue bridge protocol emulator driving an in-process device collection")

ConfigOption = typer.Option(None, "--config", help="Bridge config YAML (defaults to the user config or packaged demo)")


def _build_service(config: Path | None) -> BridgeService:
    service = BridgeService(config_path=config)
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log bridge activity to stderr")) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command("devices")
def list_devices(config: Path | None = ConfigOption) -> None:
    """List the configured devices and their capabilities."""
    try:
        service = _build_service(config)
        devices = service.list_devices()
        if not devices:
            typer.echo("No devices configured")
            return

        for device in devices:
            typer.echo(f"{device.id}: {device.name} [{', '.join(device.capabilities.tags())}]")
    except HueBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("users")
def list_users(config: Path | None = ConfigOption) -> None:
    """List stored users and whether they are authorized."""
    try:
        service = _build_service(config)
        users = service.list_users()
        if not users:
            typer.echo("No users stored")
            return

        for name, user in sorted(users.items()):
            state = "authorized" if user.authorized else "revoked"
            typer.echo(f"{name} ({user.device_type or '<none>'}): {state}")
    except HueBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("info")
def show_info(config: Path | None = ConfigOption) -> None:
    """Show the identity strings advertised for this bridge."""
    try:
        service = _build_service(config)
        for field, value in service.identity_fields().items():
            typer.echo(f"{field}: {value}")
    except HueBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("request")
def send_request(
    method: str,
    path: str,
    body: str | None = typer.Option(None, "--body", help="JSON request body"),
    pairing: bool = typer.Option(False, "--pairing", help="Enable pairing for this request"),
    chunk_size: int = typer.Option(512, "--chunk-size", help="Bytes pulled from the response per read"),
    config: Path | None = ConfigOption,
) -> None:
    """Run one protocol request against the bridge and print the response.

    User changes made by the request are stored and replayed on later runs.
    """
    try:
        service = _build_service(config)
        if pairing:
            service.enable_pairing()
        result = service.request(
            method,
            path,
            body.encode("utf-8") if body is not None else None,
            chunk_size=chunk_size,
        )
        if result.body is None:
            typer.echo(f"HTTP {result.status}", err=True)
            raise typer.Exit(code=1)
        typer.echo(result.body.decode("utf-8"))
    except HueBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("revoke")
def revoke_user(username: str, config: Path | None = ConfigOption) -> None:
    """Revoke a stored user."""
    try:
        service = _build_service(config)
        service.revoke_user(username)
        typer.echo(f"Revoked {username}")
    except HueBridgeError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
