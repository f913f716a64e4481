"""Interfaces between the bridge and the transport that delivers its responses."""

from __future__ import annotations

from typing import Protocol


class BodyStream(Protocol):
    """Pull-based response body.

    The transport peeks with ``read_block`` and then reports with ``seek`` how
    many of those bytes it actually consumed. ``available`` is ``0`` while the
    body is not ready yet, for example while device commits are outstanding.
    """

    def available(self) -> int:
        """Bytes that can be read now, ``-1`` when unknown but non-zero."""

    def read_block(self, size: int) -> bytes:
        """Return up to ``size`` bytes from the current position without advancing."""

    def seek(self, count: int) -> bool:
        """Advance by ``count`` consumed bytes; ``False`` if the move is invalid."""

    def is_finished(self) -> bool: ...
