"""Aggregation of the attribute commits made by one ``POST /lights/<id>/state``."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import partial
from typing import Any

from huebridge.core.completion import Completion
from huebridge.core.device import Device
from huebridge.core.errors import CommitError
from huebridge.core.model import Attribute, Attributes, ErrorCode, Status
from huebridge.core.results import describe, dumps, error_entry, success_entry
from huebridge.core.streams import MemoryStream

LOGGER = logging.getLogger(__name__)

NO_ERROR_CODE = -1

StateChangeHook = Callable[[Device, Attributes], None]


@dataclass(frozen=True)
class _TagResult:
    ok: bool
    value: Any = None
    error_code: int = NO_ERROR_CODE


def _coerce(attr: Attribute, raw: Any) -> bool | int | None:
    """Convert a JSON value to the attribute's type, or ``None`` if it has no such form."""
    if isinstance(raw, bool):
        return raw if attr.is_boolean else int(raw)
    if isinstance(raw, float):
        if not raw.is_integer():
            return None
        raw = int(raw)
    if not isinstance(raw, int):
        return None
    if attr.is_boolean:
        return bool(raw)
    return raw if raw >= 0 else None


class CommitAggregator:
    """Drives every commit of one write request to completion exactly once.

    Tags are applied in body order. Synchronous outcomes are recorded at once;
    pending ones are settled by their ``Completion``. When the initial pass is
    over and nothing is outstanding, the response is generated, the state
    change hook fires once with the changed set, and the aggregator becomes a
    readable body. Until then ``available()`` reports nothing to send.
    """

    def __init__(self, device: Device, path: str, on_state_changed: StateChangeHook) -> None:
        self._device = device
        self._path = path
        self._on_state_changed = on_state_changed
        self._tags: list[str] = []
        self._results: dict[str, _TagResult] = {}
        self._changed = Attributes.NONE
        self._outstanding = 0
        self._started = False
        self._pass_complete = False
        self._body: MemoryStream | None = None
        self._done_callbacks: list[Callable[[CommitAggregator], None]] = []

    @property
    def outstanding(self) -> int:
        return self._outstanding

    @property
    def changed(self) -> Attributes:
        return self._changed

    @property
    def ready(self) -> bool:
        return self._body is not None

    def add_done_callback(self, callback: Callable[[CommitAggregator], None]) -> None:
        """Call ``callback`` once the response has been generated, immediately if it already has."""
        if self._body is not None:
            callback(self)
            return
        self._done_callbacks.append(callback)

    def handle_request(self, request: Mapping[str, Any]) -> None:
        if self._started:
            raise CommitError(f"State write for {self._path} has already been handled")
        self._started = True
        device = self._device

        for tag, raw in request.items():
            self._tags.append(tag)
            attr = Attribute.from_tag(tag)
            if attr is None:
                LOGGER.debug("Unknown attribute tag '%s'", tag)
                self._results[tag] = _TagResult(ok=False)
                continue

            value = _coerce(attr, raw)
            if value is None:
                LOGGER.debug("Invalid value for '%s': %r", tag, raw)
                self._results[tag] = _TagResult(ok=False)
                continue

            LOGGER.debug("Set '%s' = %s", tag, value)
            completion = Completion(attr)
            status = device.set_attribute(attr, int(value), completion)

            if status is Status.pending:
                self._outstanding += 1
                completion.bind(partial(self._complete, tag, attr, value))
                continue

            if completion.done:
                LOGGER.warning(
                    "Device %s completed '%s' but returned %s; ignoring the completion",
                    device.id,
                    tag,
                    status.value,
                )
            completion.cancel()

            if status is Status.success:
                self._results[tag] = _TagResult(ok=True, value=value)
                self._changed |= attr.flag
            else:
                self._results[tag] = _TagResult(ok=False)

        self._pass_complete = True
        if self._outstanding == 0:
            self._generate_response()

    def _complete(self, tag: str, attr: Attribute, value: bool | int, status: Status, error_code: int) -> None:
        if status is Status.success:
            self._results[tag] = _TagResult(ok=True, value=value)
            self._changed |= attr.flag
        else:
            self._results[tag] = _TagResult(ok=False, error_code=error_code or NO_ERROR_CODE)

        self._outstanding -= 1
        LOGGER.debug(
            "Commit of '%s' completed: %s (code %d), outstanding = %d",
            tag,
            status.value,
            error_code,
            self._outstanding,
        )
        if self._outstanding == 0 and self._pass_complete:
            self._generate_response()

    def _generate_response(self) -> None:
        self._on_state_changed(self._device, self._changed)

        document: list[dict[str, Any]] = []
        for tag in self._tags:
            result = self._results[tag]
            if result.ok:
                document.append(success_entry({f"{self._path}/{tag}": result.value}))
            else:
                description = describe(ErrorCode.INTERNAL_ERROR, error_code=result.error_code)
                document.append(error_entry(ErrorCode.INTERNAL_ERROR, self._path, description))

        self._body = MemoryStream(dumps(document))
        LOGGER.debug("Generated %d byte response for %s", len(self._body), self._path)

        callbacks, self._done_callbacks = self._done_callbacks, []
        for callback in callbacks:
            callback(self)

    def available(self) -> int:
        return 0 if self._body is None else self._body.available()

    def read_block(self, size: int) -> bytes:
        return b"" if self._body is None else self._body.read_block(size)

    def seek(self, count: int) -> bool:
        return False if self._body is None else self._body.seek(count)

    def is_finished(self) -> bool:
        return self._body is not None and self._body.is_finished()
