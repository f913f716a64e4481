"""In-process transport that collects a response body into bytes."""

from __future__ import annotations

from collections.abc import Iterator

from huebridge.core.errors import TransportError
from huebridge.transports.base import BodyStream

DEFAULT_CHUNK_SIZE = 512


def iter_chunks(body: BodyStream, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield the body in chunks of at most ``chunk_size`` bytes, consuming each one fully."""
    if chunk_size <= 0:
        raise TransportError(f"Chunk size must be positive, got {chunk_size}")

    while not body.is_finished():
        if body.available() == 0:
            raise TransportError("Response body is not ready; device commits are still outstanding")
        chunk = body.read_block(chunk_size)
        if not chunk or not body.seek(len(chunk)):
            raise TransportError("Response body stalled before completion")
        yield chunk


def drain(body: BodyStream, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    return b"".join(iter_chunks(body, chunk_size))
