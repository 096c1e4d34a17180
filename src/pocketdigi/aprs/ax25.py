"""AX.25 UI-frame codec for APRS packets carried inside KISS payloads."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

CONTROL_UI = 0x03
PID_NO_LAYER3 = 0xF0
MAX_PATH_HOPS = 8
MIN_FRAME_LENGTH = 16

_ADDRESS_LENGTH = 7
_RESERVED_BITS = 0x60
_REPEATED_BIT = 0x80
_END_OF_ADDRESS_BIT = 0x01
_AX25_CALLSIGN = re.compile(r"^[A-Z0-9]{1,6}$")


class AX25DecodeError(ValueError):
    """Raised when a KISS payload cannot be decoded into an APRS packet."""


class FrameTooShort(AX25DecodeError):
    """The payload is shorter than the smallest possible UI frame."""


class NotAUIFrame(AX25DecodeError):
    """The frame is not an unnumbered-information frame without layer 3."""


class AddressDecodeFailure(AX25DecodeError):
    """The address field list is truncated or malformed."""


class AX25EncodeError(ValueError):
    """Raised when a packet cannot be represented as an AX.25 frame."""


@dataclass(frozen=True, slots=True)
class AX25Address:
    callsign: str
    ssid: int = 0
    has_been_repeated: bool = False

    def __post_init__(self) -> None:
        if not self.callsign or "-" in self.callsign or "*" in self.callsign:
            raise ValueError(f"Invalid callsign: {self.callsign!r}")
        if not 0 <= self.ssid <= 15:
            raise ValueError(f"SSID out of range: {self.ssid}")

    @classmethod
    def from_tnc2(cls, token: str) -> AX25Address:
        """Parse ``CALL``, ``CALL-SSID`` or either form with a trailing ``*``."""
        text = token.strip()
        repeated = text.endswith("*")
        if repeated:
            text = text[:-1]
        callsign, sep, ssid_text = text.partition("-")
        ssid = 0
        if sep:
            try:
                ssid = int(ssid_text)
            except ValueError as exc:
                raise ValueError(f"Invalid SSID in address {token!r}") from exc
        return cls(callsign, ssid, repeated)

    def to_tnc2(self, include_asterisk: bool = True) -> str:
        suffix = f"-{self.ssid}" if self.ssid > 0 else ""
        indicator = "*" if include_asterisk and self.has_been_repeated else ""
        return f"{self.callsign}{suffix}{indicator}"

    def matches(self, alias: str) -> bool:
        """Return True when callsign and SSID equal ``alias`` (``WIDE2-2``)."""
        other = AX25Address.from_tnc2(alias)
        return self.callsign.upper() == other.callsign.upper() and self.ssid == other.ssid

    def __str__(self) -> str:
        return self.to_tnc2()


@dataclass(frozen=True, slots=True)
class APRSPacket:
    """A decoded APRS packet. ``raw`` is kept for diagnostics only."""

    source: AX25Address
    destination: AX25Address
    path: tuple[AX25Address, ...] = ()
    payload: str = ""
    raw: bytes | None = field(default=None, compare=False, repr=False)

    def with_path(self, path: tuple[AX25Address, ...] | list[AX25Address]) -> APRSPacket:
        return APRSPacket(self.source, self.destination, tuple(path), self.payload)

    def __str__(self) -> str:
        from pocketdigi.aprs.tnc2 import format_tnc2

        return format_tnc2(self)


def decode_packet(frame: bytes) -> APRSPacket:
    """Decode a de-escaped KISS data payload into an :class:`APRSPacket`."""
    if len(frame) < MIN_FRAME_LENGTH:
        raise FrameTooShort(f"AX.25 frame too short ({len(frame)} bytes)")
    addresses, offset = _parse_address_fields(frame)
    if len(addresses) < 2:
        raise AddressDecodeFailure("AX.25 frame missing source/destination addresses")
    if len(addresses) - 2 > MAX_PATH_HOPS:
        raise AddressDecodeFailure(f"AX.25 path has {len(addresses) - 2} hops (max {MAX_PATH_HOPS})")
    if offset + 2 > len(frame):
        raise NotAUIFrame("AX.25 frame missing control/PID fields")
    control = frame[offset]
    pid = frame[offset + 1]
    if control != CONTROL_UI or pid != PID_NO_LAYER3:
        raise NotAUIFrame(f"Unsupported AX.25 frame type control={control:#x} pid={pid:#x}")
    info = frame[offset + 2 :].decode("utf-8", errors="replace").rstrip()
    # Bit 7 of the source and destination SSID bytes is the command/response
    # bit, not a has-been-repeated flag.
    destination, source = addresses[0], addresses[1]
    return APRSPacket(
        source=AX25Address(source.callsign, source.ssid),
        destination=AX25Address(destination.callsign, destination.ssid),
        path=tuple(addresses[2:]),
        payload=info,
        raw=bytes(frame),
    )


def encode_packet(packet: APRSPacket) -> bytes:
    """Build the AX.25 UI frame for ``packet`` (without KISS framing)."""
    if len(packet.path) > MAX_PATH_HOPS:
        raise AX25EncodeError(f"AX.25 path has {len(packet.path)} hops (max {MAX_PATH_HOPS})")
    addresses = [packet.destination, packet.source, *packet.path]
    frame = bytearray()
    last_index = len(addresses) - 1
    for index, address in enumerate(addresses):
        frame.extend(encode_address(address, last=index == last_index))
    frame.append(CONTROL_UI)
    frame.append(PID_NO_LAYER3)
    frame.extend(packet.payload.encode("utf-8"))
    return bytes(frame)


def encode_address(address: AX25Address, *, last: bool = False) -> bytes:
    callsign = address.callsign.upper()
    if not _AX25_CALLSIGN.match(callsign):
        raise AX25EncodeError(f"Callsign {address.callsign!r} cannot be encoded in AX.25")
    field_bytes = bytearray(ord(char) << 1 for char in callsign.ljust(6))
    ssid_byte = ((address.ssid & 0x0F) << 1) | _RESERVED_BITS
    if address.has_been_repeated:
        ssid_byte |= _REPEATED_BIT
    if last:
        ssid_byte |= _END_OF_ADDRESS_BIT
    field_bytes.append(ssid_byte)
    return bytes(field_bytes)


def _parse_address_fields(payload: bytes) -> tuple[list[AX25Address], int]:
    addresses: list[AX25Address] = []
    offset = 0
    while offset + _ADDRESS_LENGTH <= len(payload):
        field_bytes = payload[offset : offset + _ADDRESS_LENGTH]
        offset += _ADDRESS_LENGTH
        callsign = _decode_callsign(field_bytes[:6])
        if not callsign:
            raise AddressDecodeFailure(f"Empty callsign in address field {len(addresses)}")
        ssid = (field_bytes[6] >> 1) & 0x0F
        has_been_repeated = bool(field_bytes[6] & _REPEATED_BIT)
        try:
            addresses.append(AX25Address(callsign, ssid, has_been_repeated))
        except ValueError as exc:
            raise AddressDecodeFailure(str(exc)) from exc
        if field_bytes[6] & _END_OF_ADDRESS_BIT:
            break
    else:
        raise AddressDecodeFailure("AX.25 address extension bit not found")
    return addresses, offset


def _decode_callsign(raw: bytes) -> str:
    chars = []
    for byte in raw:
        value = (byte >> 1) & 0x7F
        if value == 0x20:
            chars.append(" ")
        elif value != 0:
            chars.append(chr(value))
    return "".join(chars).strip()
