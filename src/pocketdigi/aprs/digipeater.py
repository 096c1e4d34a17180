"""WIDEn-N (New-N paradigm) digipeater path rewriting."""

from __future__ import annotations

import logging

from pocketdigi.aprs.ax25 import MAX_PATH_HOPS, APRSPacket, AX25Address
from pocketdigi.settings import StationIdentity, StationSettings

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# Aliases that are consumed outright, with our call inserted after them.
FINAL_HOP_ALIASES = ("WIDE1-1", "WIDE2-1")
# Aliases that are decremented in place, with our call inserted before them.
DECREMENT_ALIASES = {"WIDE2-2": AX25Address("WIDE2", 1)}


class DigipeaterEngine:
    """Decide whether a heard packet is repeated and build the repeated copy.

    Packets are never modified; a repeat is a new :class:`APRSPacket` with a
    freshly built path. Only the first unused hop matching a known alias is
    acted on, and nothing is done if our callsign already appears anywhere in
    the path.
    """

    def __init__(self, settings: StationSettings) -> None:
        self._settings = settings

    def process(self, packet: APRSPacket) -> APRSPacket | None:
        identity = self._settings.snapshot()
        if not identity.digipeater_enabled:
            return None
        if packet.source.callsign == identity.callsign:
            logger.debug("Not repeating own packet %s", packet)
            return None

        own_call_in_path = False
        new_path: list[AX25Address] = []
        modified = False
        for hop in packet.path:
            if hop.callsign == identity.callsign:
                own_call_in_path = True
            if modified or hop.has_been_repeated:
                new_path.append(hop)
                continue
            replacement = _rewrite_hop(hop, identity)
            if replacement is None:
                new_path.append(hop)
                continue
            new_path.extend(replacement)
            modified = True

        if own_call_in_path:
            logger.debug("Already repeated by %s, ignoring %s", identity.callsign, packet)
            return None
        if not modified:
            return None
        if len(new_path) > MAX_PATH_HOPS:
            logger.debug("Path full, not repeating %s", packet)
            return None
        return packet.with_path(new_path)


def _rewrite_hop(hop: AX25Address, identity: StationIdentity) -> list[AX25Address] | None:
    mine = AX25Address(identity.callsign, identity.ssid, has_been_repeated=True)
    for alias in FINAL_HOP_ALIASES:
        if hop.matches(alias):
            return [AX25Address(hop.callsign, hop.ssid, has_been_repeated=True), mine]
    for alias, decremented in DECREMENT_ALIASES.items():
        if hop.matches(alias):
            return [mine, decremented]
    return None
