"""Protocol result entries and error descriptions."""

from __future__ import annotations

import json
import logging
from typing import Any

from huebridge.core.model import ErrorCode

LOGGER = logging.getLogger(__name__)


def describe(
    code: ErrorCode,
    *,
    resource: str | None = None,
    method_name: str | None = None,
    parameter: str | None = None,
    error_code: int | None = None,
) -> str:
    """Fill the description template of ``code`` with whatever tokens are supplied."""
    description = code.template
    substitutions = {
        "<resource>": resource,
        "<method_name>": method_name,
        "<parameter>": parameter,
        "<error_code>": None if error_code is None else str(error_code),
    }
    for token, value in substitutions.items():
        if value is not None:
            description = description.replace(token, value)
    return description


def success_entry(values: dict[str, Any]) -> dict[str, Any]:
    return {"success": values}


def error_entry(code: ErrorCode, address: str, description: str | None = None) -> dict[str, Any]:
    if description is None:
        description = code.template
    LOGGER.info("Protocol error %d at %s: %s", int(code), address, description)
    return {
        "error": {
            "type": int(code),
            "address": address,
            "description": description,
        }
    }


def dumps(document: Any) -> bytes:
    return json.dumps(document, separators=(",", ":")).encode("utf-8")
