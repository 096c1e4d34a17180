"""Position beacons: uncompressed position report payloads and the beacon timer."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional, Tuple

from pocketdigi.aprs.ax25 import APRSPacket, AX25Address
from pocketdigi.settings import StationIdentity

# Alternate table overlay "I" with the digipeater symbol.
SYMBOL_TABLE = "I"
SYMBOL_CODE = "#"
DEFAULT_DESTINATION = "APRS"
DEFAULT_PATH = ("WIDE1-1", "WIDE2-1")
DEFAULT_INTERVAL_S = 600.0

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

PositionSource = Callable[[], Optional[Tuple[float, float]]]


def format_latitude(latitude: float) -> str:
    """Format as ``DDMM.mmN`` / ``DDMM.mmS``."""
    if not -90.0 <= latitude <= 90.0:
        raise ValueError(f"Latitude out of range: {latitude}")
    degrees, minutes = _degrees_minutes(latitude)
    hemisphere = "N" if latitude >= 0 else "S"
    return f"{degrees:02d}{minutes:05.2f}{hemisphere}"


def format_longitude(longitude: float) -> str:
    """Format as ``DDDMM.mmE`` / ``DDDMM.mmW``."""
    if not -180.0 <= longitude <= 180.0:
        raise ValueError(f"Longitude out of range: {longitude}")
    degrees, minutes = _degrees_minutes(longitude)
    hemisphere = "E" if longitude >= 0 else "W"
    return f"{degrees:03d}{minutes:05.2f}{hemisphere}"


def _degrees_minutes(value: float) -> tuple[int, float]:
    # Round in hundredths of a minute so 59.999' carries into the degree.
    hundredths = round(abs(value) * 6000)
    degrees, remainder = divmod(hundredths, 6000)
    return int(degrees), remainder / 100


def build_position_payload(
    latitude: float,
    longitude: float,
    comment: str = "",
    *,
    symbol_table: str = SYMBOL_TABLE,
    symbol_code: str = SYMBOL_CODE,
) -> str:
    """Return ``!<lat><table><lon><code><comment>`` (no-timestamp, no messaging)."""
    if len(symbol_table) != 1 or len(symbol_code) != 1:
        raise ValueError("Symbol table and code must be single characters")
    return f"!{format_latitude(latitude)}{symbol_table}{format_longitude(longitude)}{symbol_code}{comment}"


def build_beacon_packet(
    identity: StationIdentity,
    latitude: float,
    longitude: float,
    comment: str = "",
    *,
    destination: str = DEFAULT_DESTINATION,
    path: Iterable[str] = DEFAULT_PATH,
) -> APRSPacket:
    return APRSPacket(
        source=AX25Address(identity.callsign, identity.ssid),
        destination=AX25Address.from_tnc2(destination),
        path=tuple(AX25Address.from_tnc2(hop) for hop in path),
        payload=build_position_payload(latitude, longitude, comment),
    )


class BeaconScheduler:
    """Call ``send_beacon`` once immediately and then every ``interval`` seconds."""

    def __init__(self, send_beacon: Callable[[], None], interval: float = DEFAULT_INTERVAL_S) -> None:
        if interval <= 0:
            raise ValueError("Beacon interval must be positive")
        self._send_beacon = send_beacon
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="beacon", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1)
        self._thread = None

    def _run(self) -> None:
        while True:
            try:
                self._send_beacon()
            except Exception:  # pragma: no cover - keep the timer alive
                logger.exception("Beacon transmission failed")
            if self._stop_event.wait(self._interval):
                break
