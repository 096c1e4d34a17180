"""KISS framing: stream reassembly and byte escaping."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

FEND = 0xC0
FESC = 0xDB
TFEND = 0xDC
TFESC = 0xDD


class KISSCommand(IntEnum):
    DATA = 0x00
    TX_DELAY = 0x01
    PERSISTENCE = 0x02
    SLOT_TIME = 0x03
    TX_TAIL = 0x04
    FULL_DUPLEX = 0x05
    SET_HARDWARE = 0x06
    RETURN = 0x0F


@dataclass(slots=True)
class KISSFrame:
    port: int
    command: int
    payload: bytes


class KissFramer:
    """Reassemble KISS frames from an arbitrarily chunked byte stream.

    The framer keeps whatever follows the last FEND it saw, so a frame split
    across several reads is emitted once its closing FEND arrives. Only data
    frames are returned; other commands are dropped.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def push(self, data: bytes | bytearray) -> list[KISSFrame]:
        self._buffer.extend(data)
        frames: list[KISSFrame] = []
        while True:
            start = self._buffer.find(FEND)
            if start == -1:
                # Nothing but line noise so far.
                self._buffer.clear()
                break
            if start > 0:
                del self._buffer[:start]
            end = self._buffer.find(FEND, 1)
            if end == -1:
                break
            raw = bytes(self._buffer[1:end])
            # Keep the closing FEND; it may also open the next frame.
            del self._buffer[:end]
            if not raw:
                continue
            frame = _split_frame(raw)
            if frame is not None:
                frames.append(frame)
        return frames

    def reset(self) -> None:
        """Discard any partially received frame."""
        self._buffer.clear()

    @property
    def pending(self) -> int:
        return len(self._buffer)


def _split_frame(raw: bytes) -> KISSFrame | None:
    header = raw[0]
    command = header & 0x0F
    if command != KISSCommand.DATA:
        return None
    return KISSFrame(port=(header & 0xF0) >> 4, command=command, payload=kiss_unescape(raw[1:]))


def encode_kiss_frame(payload: bytes | bytearray, *, port: int = 0, command: int = KISSCommand.DATA) -> bytes:
    """Wrap a payload as ``FEND <type> <escaped payload> FEND``."""
    frame = bytearray()
    frame.append(FEND)
    frame.append(((port & 0x0F) << 4) | (int(command) & 0x0F))
    frame.extend(kiss_escape(payload))
    frame.append(FEND)
    return bytes(frame)


def kiss_escape(payload: bytes | bytearray) -> bytes:
    """Escape a payload per the KISS protocol rules."""
    escaped = bytearray()
    for value in bytes(payload):
        if value == FEND:
            escaped.extend((FESC, TFEND))
        elif value == FESC:
            escaped.extend((FESC, TFESC))
        else:
            escaped.append(value)
    return bytes(escaped)


def kiss_unescape(payload: bytes | bytearray) -> bytes:
    """Reverse KISS-specific escape sequences within a payload.

    A FESC followed by anything other than TFEND/TFESC is a protocol
    violation; both bytes are dropped rather than failing the frame.
    """
    decoded = bytearray()
    iterator = iter(bytes(payload))
    for value in iterator:
        if value != FESC:
            decoded.append(value)
            continue
        nxt = next(iterator, None)
        if nxt == TFEND:
            decoded.append(FEND)
        elif nxt == TFESC:
            decoded.append(FESC)
    return bytes(decoded)
