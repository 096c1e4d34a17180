"""Loop-prevention rules for gating between RF and APRS-IS."""

from __future__ import annotations

from pocketdigi.aprs.ax25 import APRSPacket, AX25Address

Q_CONSTRUCT_PREFIX = "qa"
RF_Q_CONSTRUCT = "qAR"


def has_q_construct(packet: APRSPacket) -> bool:
    """True when any hop is a ``qA?`` marker, i.e. the packet came through APRS-IS."""
    return any(hop.callsign.lower().startswith(Q_CONSTRUCT_PREFIX) for hop in packet.path)


def should_gate_to_internet(packet: APRSPacket) -> bool:
    return not has_q_construct(packet)


def should_gate_to_rf(packet: APRSPacket, own_callsign: str) -> bool:
    """Never put our own traffic heard back from APRS-IS on the air."""
    return packet.source.callsign.upper() != own_callsign.upper()


def add_q_construct(packet: APRSPacket, igate: AX25Address, q_type: str = RF_Q_CONSTRUCT) -> APRSPacket:
    """Return a copy of ``packet`` with ``<q_type>,<igate>`` appended to its path.

    Callers check :func:`should_gate_to_internet` first; this never inspects
    the existing path.
    """
    return packet.with_path([*packet.path, AX25Address(q_type), AX25Address(igate.callsign, igate.ssid)])
