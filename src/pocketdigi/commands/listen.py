"""Runtime command implementation for the digipeater / iGate listener."""

from __future__ import annotations

import logging
import signal
import threading
import time
from argparse import Namespace
from datetime import datetime, timezone
from queue import Empty
from typing import Any

from pocketdigi import __version__
from pocketdigi import config as config_module
from pocketdigi.aprs.aprsis_client import RetryBackoff
from pocketdigi.aprs.kiss_client import KISSClient, KISSClientConfig, KISSClientError
from pocketdigi.events import ConnectionStatus, EventKind, TransmittedPacket, drain
from pocketdigi.settings import StationSettings
from pocketdigi.station import RADIO_LINK, BeaconOptions, Station

_SOFTWARE_NAME = "pocketdigi"
_STATS_INTERVAL_S = 60.0
_POLL_S = 0.5

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def run_listen(args: Namespace) -> int:
    """Run the digipeater / iGate loop until interrupted or the radio link drops."""
    config_path = config_module.resolve_config_path(getattr(args, "config", None))
    try:
        station_config = config_module.load_config(config_path)
    except FileNotFoundError:
        logger.error("Config not found at %s; run `pocketdigi setup` first.", config_path)
        return 1
    except ValueError as exc:
        logger.error("Config invalid: %s", exc)
        return 1

    kiss_host = getattr(args, "kiss_host", None) or station_config.kiss_host
    kiss_port = getattr(args, "kiss_port", None) or station_config.kiss_port
    if getattr(args, "no_digipeater", False):
        station_config.digipeater_enabled = False
    aprs_enabled = station_config.igate_enabled and not getattr(args, "no_aprsis", False)
    beacons_enabled = not getattr(args, "no_beacon", False)

    logger.info(
        "pocketdigi v%s starting (callsign=%s, kiss=%s:%s)",
        __version__,
        station_config.callsign,
        kiss_host,
        kiss_port,
    )

    settings = StationSettings.from_config(station_config)
    beacon = BeaconOptions(
        comment=station_config.beacon_comment or f"PocketDigi v{__version__}",
        destination=station_config.destination,
        path=tuple(station_config.beacon_path),
        interval=float(station_config.beacon_interval_s),
    )
    station = Station(
        settings,
        position_source=station_config.position,
        beacon=beacon,
        software_name=_SOFTWARE_NAME,
        software_version=__version__,
    )
    rf_queue = station.events.subscribe(EventKind.RF_PACKET)
    is_queue = station.events.subscribe(EventKind.IS_PACKET)
    tx_queue = station.events.subscribe(EventKind.TX_PACKET)
    status_queue = station.events.subscribe(EventKind.CONNECTION_STATUS)

    stop_event = threading.Event()
    previous_signals = {
        signal.SIGINT: signal.getsignal(signal.SIGINT),
        signal.SIGTERM: signal.getsignal(signal.SIGTERM),
    }

    def _restore_signals() -> None:
        for sig, previous in previous_signals.items():
            signal.signal(sig, previous)

    def _handle_shutdown(signum, frame):  # type: ignore[override]
        stop_event.set()
        raise KeyboardInterrupt

    for sig in previous_signals:
        signal.signal(sig, _handle_shutdown)

    client = KISSClient(KISSClientConfig(host=kiss_host, port=kiss_port, timeout=2.0))
    if not _wait_for_kiss(client, attempts=10, delay=0.5):
        logger.error("Unable to connect to KISS TNC at %s:%s.", kiss_host, kiss_port)
        station.shutdown()
        _restore_signals()
        return 1
    station.attach_radio(client)
    logger.info("Connected to KISS TNC at %s:%s; awaiting frames...", kiss_host, kiss_port)

    aprs_backoff = RetryBackoff(base_delay=2.0, max_delay=120.0, multiplier=2.0)
    if aprs_enabled and station_config.position() is None:
        logger.error("iGate enabled but no location configured; APRS-IS uplink disabled")
        aprs_enabled = False
    elif not aprs_enabled:
        logger.info("APRS-IS uplink disabled (RF-only mode)")

    def _attempt_aprs_connect() -> None:
        if not aprs_enabled or station.aprsis_connected or not aprs_backoff.ready():
            return
        connected = station.enable_igate(
            server=station_config.aprs_server,
            port=station_config.aprs_port,
            radius_km=station_config.radius_km,
            passcode=station_config.passcode,
        )
        if connected:
            aprs_backoff.reset()
            return
        delay = aprs_backoff.record_failure()
        logger.warning("APRS-IS unavailable; retrying in %ss", int(delay))

    if beacons_enabled:
        station.start_beacons()

    once = getattr(args, "once", False)
    frame_count = 0
    exit_code = 0
    next_stats_report = time.monotonic() + _STATS_INTERVAL_S

    try:
        while not stop_event.is_set():
            _attempt_aprs_connect()

            radio_lost = False
            for status in drain(status_queue):
                if _display_status(status) and status.link == RADIO_LINK:
                    radio_lost = True
            if radio_lost:
                exit_code = 1
                break

            try:
                packet = rf_queue.get(timeout=_POLL_S)
            except Empty:
                packet = None
            rf_packets = [] if packet is None else [packet, *drain(rf_queue)]
            for packet in rf_packets:
                frame_count += 1
                _display_frame(frame_count, "RF", packet)
            for packet in drain(is_queue):
                logger.debug("IS  %s", packet)
            for item in drain(tx_queue):
                _display_transmit(item)

            if once and rf_packets:
                station.flush()
                for item in drain(tx_queue):
                    _display_transmit(item)
                break

            if time.monotonic() >= next_stats_report:
                _log_stats(station)
                next_stats_report = time.monotonic() + _STATS_INTERVAL_S
    except KeyboardInterrupt:
        logger.info("Stopping listener...")
    finally:
        station.shutdown()
        _restore_signals()

    counters = station.counters
    logger.info(
        "Frames heard: %s (digipeated=%s, to APRS-IS=%s, to RF=%s, beacons=%s)",
        counters.heard,
        counters.digipeated,
        counters.gated_to_is,
        counters.gated_to_rf,
        counters.beaconed,
    )
    return exit_code


def _wait_for_kiss(client: KISSClient, *, attempts: int, delay: float) -> bool:
    for _ in range(attempts):
        try:
            client.connect()
            return True
        except KISSClientError as exc:
            logger.debug("KISS connect failed: %s", exc)
            time.sleep(delay)
    return False


def _display_frame(count: int, label: str, packet: Any) -> None:
    snippet = str(packet)
    if len(snippet) > 120:
        snippet = snippet[:117] + "..."
    logger.info("[%06d] %s %s", count, label, snippet)


def _display_transmit(item: TransmittedPacket) -> None:
    logger.info("TX  [%s] %s", item.origin.value, item.packet)


def _display_status(status: ConnectionStatus) -> bool:
    """Log a link status change; return True when a link was lost with an error."""
    state = "up" if status.connected else "down"
    if status.reason:
        logger.info("Link %s %s (%s)", status.link, state, status.reason)
    else:
        logger.debug("Link %s %s", status.link, state)
    return not status.connected and bool(status.reason)


def _log_stats(station: Station) -> None:
    counters = station.counters
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    logger.info(
        "[stats %s] heard=%s digipeated=%s igated=%s to_rf=%s beacons=%s dropped=%s aprsis=%s",
        timestamp,
        counters.heard,
        counters.digipeated,
        counters.gated_to_is,
        counters.gated_to_rf,
        counters.beaconed,
        counters.dropped,
        "up" if station.aprsis_connected else "down",
    )

