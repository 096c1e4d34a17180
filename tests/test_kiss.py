"""Tests for KISS framing and escaping."""

from __future__ import annotations

import pytest

from pocketdigi.aprs.kiss import (
    FEND,
    FESC,
    TFEND,
    TFESC,
    KISSCommand,
    KissFramer,
    encode_kiss_frame,
    kiss_escape,
    kiss_unescape,
)


def test_escape_replaces_fend_and_fesc() -> None:
    payload = bytes([0x01, FEND, 0x02, FESC, 0x03])
    assert kiss_escape(payload) == bytes([0x01, FESC, TFEND, 0x02, FESC, TFESC, 0x03])


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        bytes(range(256)),
        bytes([FEND, FESC, 0x41, FEND]),
        bytes([FESC, TFEND, FESC, TFESC]),
        bytes([FEND]) * 4,
        bytes([TFEND, TFESC]),
    ],
    ids=["empty", "all-bytes", "mixed", "escaped-pairs", "fend-run", "bare-transposed"],
)
def test_unescape_reverses_escape(payload: bytes) -> None:
    escaped = kiss_escape(payload)
    assert FEND not in escaped
    assert kiss_unescape(escaped) == payload


@pytest.mark.parametrize("payload", [bytes(range(256)), bytes([FESC]) * 3, b"\x00"])
def test_framer_recovers_encoded_payload(payload: bytes) -> None:
    assert [frame.payload for frame in KissFramer().push(encode_kiss_frame(payload))] == [payload]


def test_unescape_drops_invalid_escape_pair() -> None:
    assert kiss_unescape(bytes([0x41, FESC, 0x42, 0x43])) == b"AC"


def test_unescape_drops_trailing_fesc() -> None:
    assert kiss_unescape(bytes([0x41, FESC])) == b"A"


def test_encode_kiss_frame_places_port_in_high_nibble() -> None:
    frame = encode_kiss_frame(b"hi", port=2)
    assert frame == bytes([FEND, 0x20]) + b"hi" + bytes([FEND])


def test_encode_kiss_frame_escapes_payload() -> None:
    frame = encode_kiss_frame(bytes([FEND]))
    assert frame == bytes([FEND, 0x00, FESC, TFEND, FEND])


def test_framer_emits_single_frame() -> None:
    framer = KissFramer()
    frames = framer.push(encode_kiss_frame(b"hello", port=3))
    assert len(frames) == 1
    assert frames[0].payload == b"hello"
    assert frames[0].port == 3
    assert frames[0].command == KISSCommand.DATA


def test_framer_reassembles_split_frame() -> None:
    framer = KissFramer()
    raw = encode_kiss_frame(b"split payload")
    assert framer.push(raw[:5]) == []
    assert framer.pending > 0
    frames = framer.push(raw[5:])
    assert [frame.payload for frame in frames] == [b"split payload"]


def test_framer_handles_shared_fend_between_frames() -> None:
    framer = KissFramer()
    data = bytes([FEND, 0x00]) + b"one" + bytes([FEND, 0x00]) + b"two" + bytes([FEND])
    assert [frame.payload for frame in framer.push(data)] == [b"one", b"two"]


def test_framer_emits_each_frame_in_a_burst() -> None:
    framer = KissFramer()
    data = encode_kiss_frame(b"a") + encode_kiss_frame(b"b") + encode_kiss_frame(b"c")
    assert [frame.payload for frame in framer.push(data)] == [b"a", b"b", b"c"]


def test_framer_ignores_empty_frames_and_noise() -> None:
    framer = KissFramer()
    data = b"noise" + bytes([FEND, FEND, FEND]) + encode_kiss_frame(b"ok")
    assert [frame.payload for frame in framer.push(data)] == [b"ok"]


def test_framer_discards_bytes_without_fend() -> None:
    framer = KissFramer()
    assert framer.push(b"garbage") == []
    assert framer.pending == 0


@pytest.mark.parametrize("command", [KISSCommand.TX_DELAY, KISSCommand.PERSISTENCE, KISSCommand.SET_HARDWARE])
def test_framer_drops_non_data_commands(command: KISSCommand) -> None:
    framer = KissFramer()
    data = encode_kiss_frame(b"\x10", command=command) + encode_kiss_frame(b"data")
    assert [frame.payload for frame in framer.push(data)] == [b"data"]


def test_framer_reset_discards_partial_frame() -> None:
    framer = KissFramer()
    framer.push(bytes([FEND, 0x00]) + b"partial")
    framer.reset()
    assert framer.pending == 0
    assert framer.push(b"rest" + bytes([FEND])) == []
