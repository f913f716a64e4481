from __future__ import annotations

import json

import pytest

from huebridge.core.device import COLOUR, DIMMABLE, ON_OFF, CapabilityDevice
from huebridge.core.enumerator import ListEnumerator
from huebridge.core.list_stream import DeviceListStream
from huebridge.core.results import dumps
from huebridge.transports.memory import drain

HOST_MAC = "02:00:5E:10:00:01"


def _devices() -> list[CapabilityDevice]:
    return [
        CapabilityDevice(1, "Hallway", ON_OFF),
        CapabilityDevice(2, "Kitchen", DIMMABLE),
        CapabilityDevice(300, "Lounge", COLOUR),
    ]


def _single_shot(devices: list[CapabilityDevice]) -> bytes:
    return dumps({str(d.id): d.get_info(HOST_MAC) for d in devices})


@pytest.mark.parametrize("chunk_size", [1, 2, 3, 7, 64, 4096])
def test_streaming_matches_single_shot_serialization(chunk_size: int) -> None:
    devices = _devices()
    stream = DeviceListStream(ListEnumerator(devices).clone(), HOST_MAC)
    assert drain(stream, chunk_size) == _single_shot(devices)
    assert stream.is_finished()


def test_empty_collection_yields_empty_object() -> None:
    stream = DeviceListStream(ListEnumerator([]), HOST_MAC)
    assert drain(stream, 1) == b"{}"


def test_partial_consumption_resumes_inside_device_document() -> None:
    devices = _devices()
    stream = DeviceListStream(ListEnumerator(devices), HOST_MAC)
    collected = bytearray()
    while not stream.is_finished():
        block = stream.read_block(10)
        consumed = max(1, len(block) // 3)
        collected += block[:consumed]
        assert stream.seek(consumed)
    assert bytes(collected) == _single_shot(devices)
    assert json.loads(collected)["300"]["name"] == "Lounge"


def test_read_block_does_not_advance() -> None:
    stream = DeviceListStream(ListEnumerator(_devices()), HOST_MAC)
    assert stream.read_block(5) == b"{"
    assert stream.read_block(5) == b"{"
    assert stream.seek(1)
    first = stream.read_block(5)
    assert first == b'"1":{'
    assert stream.read_block(5) == first


def test_invalid_seeks_are_refused() -> None:
    stream = DeviceListStream(ListEnumerator(_devices()), HOST_MAC)
    assert not stream.seek(0)
    assert not stream.seek(2)
    assert stream.seek(1)
    remaining = stream.available()
    assert not stream.seek(remaining + 1)
    assert stream.seek(remaining)
    assert stream.read_block(1) == b","


def test_close_finishes_stream() -> None:
    with DeviceListStream(ListEnumerator(_devices()), HOST_MAC) as stream:
        stream.seek(1)
    assert stream.is_finished()
    assert stream.read_block(10) == b""
    assert not stream.seek(1)


def test_concurrent_streams_do_not_interfere() -> None:
    devices = _devices()
    shared = ListEnumerator(devices)
    first = DeviceListStream(shared.clone(), HOST_MAC)
    second = DeviceListStream(shared.clone(), HOST_MAC)
    out_first = bytearray()
    out_second = bytearray()
    while not (first.is_finished() and second.is_finished()):
        for stream, out in ((first, out_first), (second, out_second)):
            if stream.is_finished():
                continue
            block = stream.read_block(4)
            out += block
            stream.seek(len(block))
    assert bytes(out_first) == bytes(out_second) == _single_shot(devices)
