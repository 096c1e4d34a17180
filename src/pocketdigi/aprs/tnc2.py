"""TNC2 text form of APRS packets (``SRC>DEST,PATH:PAYLOAD``) as used on APRS-IS."""

from __future__ import annotations

from pocketdigi.aprs.ax25 import APRSPacket, AX25Address


class MalformedTnc2Line(ValueError):
    """Raised when a text line is not a parseable TNC2 packet."""


def parse_tnc2(line: str | bytes) -> APRSPacket:
    """Parse a TNC2 line into an :class:`APRSPacket`.

    Address case is preserved so q-constructs such as ``qAR`` survive.
    Server comments (lines starting with ``#``) and empty lines are rejected.
    """
    if isinstance(line, (bytes, bytearray)):
        line = bytes(line).decode("utf-8", errors="replace")
    text = line.rstrip("\r\n")
    if not text or text.startswith("#"):
        raise MalformedTnc2Line("Empty line or server comment")
    header, sep, payload = text.partition(":")
    if not sep:
        raise MalformedTnc2Line(f"Missing ':' payload separator in {text!r}")
    source_text, sep, rest = header.partition(">")
    if not sep:
        raise MalformedTnc2Line(f"Missing '>' source separator in {text!r}")
    tokens = rest.split(",")
    try:
        source = _unmarked(AX25Address.from_tnc2(source_text))
        destination = _unmarked(AX25Address.from_tnc2(tokens[0]))
        path = tuple(AX25Address.from_tnc2(token) for token in tokens[1:])
    except ValueError as exc:
        raise MalformedTnc2Line(f"Invalid address in {text!r}: {exc}") from exc
    return APRSPacket(source=source, destination=destination, path=path, payload=payload)


def format_tnc2(packet: APRSPacket) -> str:
    """Render ``packet`` as a TNC2 line (no trailing newline).

    Only path hops carry the ``*`` marker; the flag is meaningless on source
    and destination and both codecs clear it there.
    """
    addresses = [packet.destination.to_tnc2(include_asterisk=False)]
    addresses.extend(hop.to_tnc2() for hop in packet.path)
    return f"{packet.source.to_tnc2(include_asterisk=False)}>{','.join(addresses)}:{packet.payload}"


def _unmarked(address: AX25Address) -> AX25Address:
    return AX25Address(address.callsign, address.ssid)
