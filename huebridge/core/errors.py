"""Domain-specific errors for huebridge."""

from __future__ import annotations

from huebridge.core.model import ErrorCode


class HueBridgeError(Exception):
    """Base error for huebridge."""


class ConfigValidationError(HueBridgeError):
    """Raised when a bridge config file does not conform to schema or semantics."""


class ConfigLoadError(HueBridgeError):
    """Raised when reading config sources fails."""


class DeviceDefinitionError(HueBridgeError):
    """Raised when a device is constructed with an invalid id, name or capability set."""


class CompletionError(HueBridgeError):
    """Raised when a commit completion is invoked more than once or after cancellation."""


class RequestBodyError(HueBridgeError):
    """Raised when a request body is malformed, oversized or not an in-memory buffer."""


class UserStoreError(HueBridgeError):
    """Raised when the persisted user list cannot be read or written."""


class ProtocolError(HueBridgeError):
    """A protocol-level failure that is reported to the client as a JSON error entry."""

    def __init__(self, code: ErrorCode, address: str, description: str | None = None) -> None:
        self.code = code
        self.address = address
        self.description = description if description is not None else code.template
        super().__init__(self.description)


class TransportError(HueBridgeError):
    """Raised when a response body cannot be delivered by a transport."""


class CommitError(HueBridgeError):
    """Raised when a state write is driven through the same aggregator twice."""
