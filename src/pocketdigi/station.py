"""Packet engine tying the radio link, digipeater, APRS-IS gateway and beacons together.

Data flow::

    radio bytes -> KissFramer -> decode_packet -> DigipeaterEngine -> TransmitQueue
                                               \\-> (iGate) -> UplinkQueue -> APRS-IS
    APRS-IS line -> parse_tnc2 -> loop check -> TransmitQueue
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from pocketdigi.aprs.aprsis_client import (
    DEFAULT_RADIUS_KM,
    APRSISClient,
    APRSISClientError,
    APRSISConfig,
    build_range_filter,
)
from pocketdigi.aprs.ax25 import AX25Address, AX25DecodeError, NotAUIFrame, APRSPacket, decode_packet
from pocketdigi.aprs.beacon import (
    DEFAULT_DESTINATION,
    DEFAULT_INTERVAL_S,
    DEFAULT_PATH,
    BeaconScheduler,
    PositionSource,
    build_beacon_packet,
)
from pocketdigi.aprs.digipeater import DigipeaterEngine
from pocketdigi.aprs.gating import add_q_construct, should_gate_to_internet, should_gate_to_rf
from pocketdigi.aprs.kiss import KissFramer
from pocketdigi.aprs.kiss_client import KISSClient, KISSClientError
from pocketdigi.aprs.tnc2 import MalformedTnc2Line, format_tnc2, parse_tnc2
from pocketdigi.errors import TransportError
from pocketdigi.events import ConnectionStatus, EventBus, EventBusLogHandler, EventKind
from pocketdigi.settings import StationSettings
from pocketdigi.transmit import PacketOrigin, TransmitQueue, UplinkQueue

RADIO_LINK = "radio"
APRSIS_LINK = "aprs-is"
_RADIO_POLL_S = 1.0

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

APRSISFactory = Callable[..., APRSISClient]


@dataclass(slots=True)
class BeaconOptions:
    comment: str = ""
    destination: str = DEFAULT_DESTINATION
    path: tuple[str, ...] = field(default_factory=lambda: DEFAULT_PATH)
    interval: float = DEFAULT_INTERVAL_S


@dataclass(slots=True)
class StationCounters:
    heard: int = 0
    digipeated: int = 0
    gated_to_is: int = 0
    gated_to_rf: int = 0
    beaconed: int = 0
    dropped: int = 0


class Station:
    """Stateful packet engine for one radio link and one APRS-IS session."""

    def __init__(
        self,
        settings: StationSettings,
        *,
        events: EventBus | None = None,
        position_source: PositionSource | None = None,
        beacon: BeaconOptions | None = None,
        software_name: str = "pocketdigi",
        software_version: str = "0.0.0",
        aprsis_factory: APRSISFactory = APRSISClient,
    ) -> None:
        self.settings = settings
        self.events = events or EventBus()
        self.counters = StationCounters()
        self._position_source = position_source
        self._beacon = beacon or BeaconOptions()
        self._software_name = software_name
        self._software_version = software_version
        self._aprsis_factory = aprsis_factory

        self._framer = KissFramer()
        self._digipeater = DigipeaterEngine(settings)
        self._tx = TransmitQueue(events=self.events, on_error=self._on_radio_error)
        self._tx.start()
        self._uplink = UplinkQueue(self._deliver_to_internet)
        self._uplink.start()
        self._radio: KISSClient | None = None
        self._radio_thread: threading.Thread | None = None
        self._radio_stop = threading.Event()
        self._aprsis: APRSISClient | None = None
        self._beacon_scheduler: BeaconScheduler | None = None
        self._lock = threading.Lock()

        self._log_handler = EventBusLogHandler(self.events)
        logging.getLogger("pocketdigi").addHandler(self._log_handler)

    # -- radio link -----------------------------------------------------

    @property
    def radio_connected(self) -> bool:
        return self._radio is not None

    def attach_radio(self, client: KISSClient) -> None:
        """Start reading from an already connected KISS link and route TX to it."""
        self.detach_radio()
        self._radio = client
        self._framer.reset()
        self._radio_stop.clear()
        self._tx.set_writer(client.send_frame)
        self._publish_status(RADIO_LINK, True, None)
        logger.info("Radio link established")
        thread = threading.Thread(target=self._radio_loop, args=(client,), name="radio-rx", daemon=True)
        self._radio_thread = thread
        thread.start()

    def detach_radio(self, reason: str | None = None) -> None:
        """Stop the radio listener and discard any partial frame."""
        with self._lock:
            client = self._radio
            self._radio = None
        if client is None:
            return
        self._radio_stop.set()
        self._tx.set_writer(None)
        client.close()
        thread = self._radio_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2)
        self._radio_thread = None
        self._framer.reset()
        if reason:
            logger.warning("Radio link lost: %s", reason)
        else:
            logger.info("Radio link closed")
        self._publish_status(RADIO_LINK, False, reason)

    def _radio_loop(self, client: KISSClient) -> None:
        while not self._radio_stop.is_set():
            try:
                chunk = client.recv(timeout=_RADIO_POLL_S)
            except TimeoutError:
                continue
            except KISSClientError as exc:
                if not self._radio_stop.is_set():
                    self.detach_radio(str(exc))
                return
            self.handle_radio_bytes(chunk)

    def _on_radio_error(self, exc: TransportError) -> None:
        self.detach_radio(str(exc))

    def handle_radio_bytes(self, data: bytes) -> None:
        for frame in self._framer.push(data):
            self.handle_ax25_frame(frame.payload)

    def handle_ax25_frame(self, payload: bytes) -> APRSPacket | None:
        try:
            packet = decode_packet(payload)
        except NotAUIFrame as exc:
            logger.debug("Ignoring frame: %s", exc)
            return None
        except AX25DecodeError as exc:
            logger.warning("Skipping undecodable frame: %s", exc)
            return None

        self._bump("heard")
        repeat = self._digipeater.process(packet)
        if repeat is not None:
            self._bump("digipeated")
            self._tx.submit(repeat, PacketOrigin.DIGIPEAT)
        self.events.publish(EventKind.RF_PACKET, packet)

        self._gate_to_internet(packet)
        return packet

    def _gate_to_internet(self, packet: APRSPacket) -> None:
        client = self._aprsis
        if client is None or not client.is_connected:
            return
        if not should_gate_to_internet(packet):
            logger.debug("Not gating %s: already passed through APRS-IS", packet)
            return
        identity = self.settings.snapshot()
        gated = add_q_construct(packet, AX25Address(identity.callsign, identity.ssid))
        self._uplink.submit(format_tnc2(gated), gated=True)

    # -- APRS-IS --------------------------------------------------------

    @property
    def aprsis_connected(self) -> bool:
        client = self._aprsis
        return client is not None and client.is_connected

    def enable_igate(
        self,
        *,
        server: str | None = None,
        port: int | None = None,
        radius_km: int = DEFAULT_RADIUS_KM,
        passcode: str | int | None = None,
    ) -> bool:
        """Open the APRS-IS session using the station position as the range filter."""
        identity = self.settings.snapshot()
        if not identity.callsign:
            logger.error("Set a callsign before enabling the iGate")
            return False
        position = self._current_position()
        if position is None:
            logger.error("Cannot enable iGate without a location")
            return False
        self.disable_igate()
        config = APRSISConfig(
            callsign=identity.full_callsign,
            passcode=passcode,
            filter_string=build_range_filter(position[0], position[1], radius_km),
            software_name=self._software_name,
            software_version=self._software_version,
        )
        if server:
            config.host = server
        if port:
            config.port = port
        client = self._aprsis_factory(config, on_packet=self.handle_internet_line, on_status=self._on_aprsis_status)
        try:
            client.connect()
        except APRSISClientError as exc:
            logger.error("APRS-IS connection failed: %s", exc)
            return False
        self._aprsis = client
        self.settings.set_igate_enabled(True)
        return True

    def disable_igate(self) -> None:
        client = self._aprsis
        self._aprsis = None
        if client is not None:
            client.disconnect()
        if self.settings.snapshot().igate_enabled:
            self.settings.set_igate_enabled(False)

    def _on_aprsis_status(self, connected: bool, reason: str | None) -> None:
        self._publish_status(APRSIS_LINK, connected, reason)

    def handle_internet_line(self, line: str) -> APRSPacket | None:
        try:
            packet = parse_tnc2(line)
        except MalformedTnc2Line as exc:
            logger.debug("Ignoring APRS-IS line: %s", exc)
            return None

        self.events.publish(EventKind.IS_PACKET, packet)
        identity = self.settings.snapshot()
        if not should_gate_to_rf(packet, identity.callsign):
            logger.debug("Not gating own packet back to RF: %s", packet)
            return packet
        self._bump("gated_to_rf")
        self._tx.submit(packet, PacketOrigin.IGATE)
        return packet

    def _deliver_to_internet(self, line: str, gated: bool) -> None:
        client = self._aprsis
        if client is None or not client.is_connected:
            self._bump("dropped")
            logger.debug("APRS-IS session closed, dropping %s", line)
            return
        try:
            client.send_packet(line)
        except APRSISClientError as exc:
            self._bump("dropped")
            logger.warning("APRS-IS send error: %s", exc)
            return
        if gated:
            self._bump("gated_to_is")

    # -- beacons --------------------------------------------------------

    def start_beacons(self) -> None:
        self.stop_beacons()
        scheduler = BeaconScheduler(self.send_beacon, interval=self._beacon.interval)
        self._beacon_scheduler = scheduler
        scheduler.start()

    def stop_beacons(self) -> None:
        scheduler = self._beacon_scheduler
        self._beacon_scheduler = None
        if scheduler is not None:
            scheduler.stop()

    def send_beacon(self) -> APRSPacket | None:
        position = self._current_position()
        if position is None:
            logger.warning("Cannot send beacon: no location data")
            return None
        identity = self.settings.snapshot()
        try:
            packet = build_beacon_packet(
                identity,
                position[0],
                position[1],
                self._beacon.comment,
                destination=self._beacon.destination,
                path=self._beacon.path,
            )
        except ValueError as exc:
            logger.error("Error creating beacon: %s", exc)
            return None
        self._bump("beaconed")
        self._tx.submit(packet, PacketOrigin.BEACON)
        if self.aprsis_connected:
            self._uplink.submit(format_tnc2(packet))
        return packet

    def _current_position(self) -> Optional[tuple[float, float]]:
        if self._position_source is None:
            return None
        return self._position_source()

    # -- lifecycle ------------------------------------------------------

    def flush(self) -> None:
        """Wait until every queued radio and APRS-IS transmission has been handled."""
        self._tx.join()
        self._uplink.join()

    def shutdown(self) -> None:
        self.stop_beacons()
        self.disable_igate()
        self.detach_radio()
        self._tx.stop()
        self._uplink.stop()
        logging.getLogger("pocketdigi").removeHandler(self._log_handler)

    def __enter__(self) -> "Station":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _bump(self, counter: str) -> None:
        with self._lock:
            setattr(self.counters, counter, getattr(self.counters, counter) + 1)

    def _publish_status(self, link: str, connected: bool, reason: str | None) -> None:
        self.events.publish(EventKind.CONNECTION_STATUS, ConnectionStatus(link, connected, reason))
