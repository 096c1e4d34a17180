"""Tests for the AX.25 UI frame codec."""

from __future__ import annotations

from dataclasses import replace

import pytest

from pocketdigi.aprs.ax25 import (
    AddressDecodeFailure,
    APRSPacket,
    AX25Address,
    AX25EncodeError,
    FrameTooShort,
    NotAUIFrame,
    decode_packet,
    encode_address,
    encode_packet,
)
from pocketdigi.aprs.tnc2 import format_tnc2, parse_tnc2


def _address(callsign: str, ssid: int = 0, *, last: bool = False, repeated: bool = False) -> bytes:
    encoded = bytearray((ord(ch) << 1) for ch in callsign.ljust(6))
    ssid_byte = 0x60 | ((ssid & 0x0F) << 1)
    if repeated:
        ssid_byte |= 0x80
    if last:
        ssid_byte |= 0x01
    encoded.append(ssid_byte)
    return bytes(encoded)


def _frame(*addresses: bytes, info: bytes = b">test", control: int = 0x03, pid: int = 0xF0) -> bytes:
    return b"".join(addresses) + bytes([control, pid]) + info


def test_encode_address_layout() -> None:
    assert encode_address(AX25Address("APRS")) == bytes([0x82, 0xA0, 0xA4, 0xA6, 0x40, 0x40, 0x60])


def test_encode_address_sets_flags() -> None:
    encoded = encode_address(AX25Address("WIDE1", 1, has_been_repeated=True), last=True)
    assert encoded[-1] == 0x60 | 0x02 | 0x80 | 0x01


def test_encode_address_rejects_unencodable_callsign() -> None:
    with pytest.raises(AX25EncodeError):
        encode_address(AX25Address("TOOLONGCALL"))


def test_decode_simple_packet() -> None:
    frame = _frame(_address("APRS"), _address("N0CALL", 9, last=True), info=b"!4903.50N/07201.75W-Test")
    packet = decode_packet(frame)
    assert packet.source == AX25Address("N0CALL", 9)
    assert packet.destination == AX25Address("APRS")
    assert packet.path == ()
    assert packet.payload == "!4903.50N/07201.75W-Test"
    assert packet.raw == frame


def test_decode_path_with_repeated_flags() -> None:
    frame = _frame(
        _address("APRS"),
        _address("N0CALL"),
        _address("DIGI1", repeated=True),
        _address("WIDE2", 1, last=True),
    )
    packet = decode_packet(frame)
    assert packet.path == (
        AX25Address("DIGI1", 0, True),
        AX25Address("WIDE2", 1, False),
    )
    assert str(packet) == "N0CALL>APRS,DIGI1*,WIDE2-1:>test"


def test_decode_strips_trailing_whitespace() -> None:
    frame = _frame(_address("APRS"), _address("N0CALL", last=True), info=b">status\r\n")
    assert decode_packet(frame).payload == ">status"


def test_decode_rejects_short_frame() -> None:
    with pytest.raises(FrameTooShort):
        decode_packet(b"\x00" * 15)


def test_decode_rejects_missing_end_bit() -> None:
    frame = _address("APRS") + _address("N0CALL") + b"\x03\xf0"
    with pytest.raises(AddressDecodeFailure):
        decode_packet(frame)


def test_decode_rejects_single_address() -> None:
    frame = _frame(_address("APRS", last=True), info=b"payload!")
    with pytest.raises(AddressDecodeFailure):
        decode_packet(frame)


def test_decode_rejects_non_ui_frame() -> None:
    frame = _frame(_address("APRS"), _address("N0CALL", last=True), control=0x3F)
    with pytest.raises(NotAUIFrame):
        decode_packet(frame)


def test_decode_rejects_other_pid() -> None:
    frame = _frame(_address("APRS"), _address("N0CALL", last=True), pid=0xCF)
    with pytest.raises(NotAUIFrame):
        decode_packet(frame)


def test_decode_rejects_too_many_hops() -> None:
    hops = [_address(f"DIGI{i}") for i in range(8)] + [_address("DIGI9", last=True)]
    frame = _frame(_address("APRS"), _address("N0CALL"), *hops)
    with pytest.raises(AddressDecodeFailure):
        decode_packet(frame)


_EIGHT_HOPS = tuple(AX25Address(f"DIGI{i}", i, i % 2 == 0) for i in range(8))


@pytest.mark.parametrize(
    "packet",
    [
        APRSPacket(
            AX25Address("N0CALL", 7), AX25Address("APRS"), (AX25Address("WIDE1", 1, True),), "!4903.50N/07201.75W-Hi"
        ),
        APRSPacket(AX25Address("K1ABC", 15), AX25Address("APZ001", 15), (), ">max ssid"),
        APRSPacket(AX25Address("A"), AX25Address("B"), (AX25Address("C", 0, True),), ">x"),
        APRSPacket(AX25Address("ABCDEF", 9), AX25Address("APRS99"), (AX25Address("WIDE2", 2),), ">six"),
        APRSPacket(AX25Address("N0CALL"), AX25Address("APRS"), _EIGHT_HOPS, ">full path"),
        APRSPacket(AX25Address("N0CALL"), AX25Address("APRS"), (), ""),
        APRSPacket(AX25Address("N0CALL"), AX25Address("APRS"), (), ">caf\u00e9 20\u00b0C"),
    ],
    ids=["typical", "ssid-15", "one-char", "six-char", "eight-hops", "empty-payload", "utf8-payload"],
)
def test_encode_packet_round_trip(packet: APRSPacket) -> None:
    assert decode_packet(encode_packet(packet)) == packet


@pytest.mark.parametrize("payload", [">status  ", ">status\r\n", ">tab\t", "   "])
def test_round_trip_trims_trailing_whitespace(payload: str) -> None:
    packet = APRSPacket(AX25Address("N0CALL"), AX25Address("APRS"), (AX25Address("WIDE1", 1),), payload)
    assert decode_packet(encode_packet(packet)) == replace(packet, payload=payload.rstrip())


def test_decode_clears_command_bit_on_source_and_destination() -> None:
    frame = _frame(
        _address("APRS", repeated=True),
        _address("N0CALL", 3, repeated=True),
        _address("WIDE1", 1, last=True),
    )
    packet = decode_packet(frame)
    assert packet.destination == AX25Address("APRS")
    assert packet.source == AX25Address("N0CALL", 3)
    assert parse_tnc2(format_tnc2(packet)) == packet


def test_encode_packet_marks_only_last_hop_as_end() -> None:
    packet = APRSPacket(
        source=AX25Address("N0CALL", 7),
        destination=AX25Address("APRS"),
        path=(AX25Address("WIDE1", 1, True), AX25Address("WIDE2", 1)),
        payload="!4903.50N/07201.75W-Hi",
    )
    frame = encode_packet(packet)
    # end-of-address bit only on the final hop
    assert frame[13] & 0x01 == 0
    assert frame[27] & 0x01 == 1


def test_encode_packet_without_path_marks_source_last() -> None:
    packet = APRSPacket(AX25Address("N0CALL"), AX25Address("APRS"), (), ">hi")
    frame = encode_packet(packet)
    assert frame[6] & 0x01 == 0
    assert frame[13] & 0x01 == 1
    assert frame[14:16] == b"\x03\xf0"


def test_encode_packet_rejects_long_path() -> None:
    path = tuple(AX25Address(f"DIGI{i}") for i in range(9))
    with pytest.raises(AX25EncodeError):
        encode_packet(APRSPacket(AX25Address("N0CALL"), AX25Address("APRS"), path, ">x"))


def test_address_from_tnc2() -> None:
    assert AX25Address.from_tnc2("WIDE2-2") == AX25Address("WIDE2", 2)
    assert AX25Address.from_tnc2("N0CALL-9*") == AX25Address("N0CALL", 9, True)
    assert AX25Address.from_tnc2("qAR") == AX25Address("qAR")


@pytest.mark.parametrize("token", ["", "N0CALL-X", "N0CALL-16"])
def test_address_from_tnc2_rejects_invalid(token: str) -> None:
    with pytest.raises(ValueError):
        AX25Address.from_tnc2(token)


def test_address_to_tnc2() -> None:
    assert AX25Address("N0CALL").to_tnc2() == "N0CALL"
    assert AX25Address("WIDE1", 1, True).to_tnc2() == "WIDE1-1*"
    assert AX25Address("WIDE1", 1, True).to_tnc2(include_asterisk=False) == "WIDE1-1"


def test_address_matches_alias() -> None:
    assert AX25Address("WIDE2", 2).matches("WIDE2-2")
    assert not AX25Address("WIDE2", 1).matches("WIDE2-2")
    assert AX25Address("wide1", 1).matches("WIDE1-1")


def test_packet_with_path_drops_raw() -> None:
    packet = APRSPacket(AX25Address("N0CALL"), AX25Address("APRS"), (), ">x", raw=b"abc")
    updated = packet.with_path([AX25Address("WIDE1", 1)])
    assert updated.raw is None
    assert updated.path == (AX25Address("WIDE1", 1),)
