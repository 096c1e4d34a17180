"""APRS-IS client session: login, range filter, line I/O."""

from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from pocketdigi.errors import TransportError

DEFAULT_SERVER = "rotate.aprs.net"
DEFAULT_PORT = 14580
DEFAULT_RADIUS_KM = 50
_READ_CHUNK_BYTES = 4096

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class APRSISClientError(TransportError):
    """Raised when APRS-IS connection or transmission fails."""


def aprs_passcode(callsign: str) -> int:
    """Return the APRS-IS passcode for ``callsign`` (SSID ignored)."""
    base = callsign.strip().split("-", 1)[0].upper()
    code = 0x73E2
    for i in range(0, len(base), 2):
        code ^= ord(base[i]) << 8
        if i + 1 < len(base):
            code ^= ord(base[i + 1])
    return code & 0x7FFF


def build_range_filter(latitude: float, longitude: float, radius_km: int = DEFAULT_RADIUS_KM) -> str:
    return f"r/{latitude:.4f}/{longitude:.4f}/{radius_km}"


@dataclass(slots=True)
class APRSISConfig:
    """Connection parameters and metadata for APRS-IS sessions."""

    callsign: str
    passcode: int | str | None = None
    host: str = DEFAULT_SERVER
    port: int = DEFAULT_PORT
    software_name: str = "pocketdigi"
    software_version: str = "0.0.0"
    filter_string: str | None = None
    timeout: float = 10.0

    @property
    def resolved_passcode(self) -> str:
        if self.passcode in (None, ""):
            return str(aprs_passcode(self.callsign))
        return str(self.passcode)


class RetryBackoff:
    """Exponential reconnect delay: ``base_delay`` doubling up to ``max_delay``."""

    def __init__(
        self,
        *,
        base_delay: float = 2.0,
        max_delay: float = 120.0,
        multiplier: float = 2.0,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if max_delay < base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        self._base = base_delay
        self._max = max_delay
        self._multiplier = multiplier
        self._clock = clock or time.monotonic
        self._current = base_delay
        self._next_attempt = 0.0

    @property
    def current_delay(self) -> float:
        return self._current

    def ready(self) -> bool:
        return self._clock() >= self._next_attempt

    def record_failure(self) -> float:
        """Schedule the next attempt and return how long until it is allowed."""
        delay = self._current
        self._next_attempt = self._clock() + delay
        self._current = min(self._current * self._multiplier, self._max)
        return delay

    def reset(self) -> None:
        self._current = self._base
        self._next_attempt = 0.0


LineCallback = Callable[[str], None]
StatusCallback = Callable[[bool, Optional[str]], None]


class APRSISClient:
    """Manage one APRS-IS session.

    ``connect`` writes the login line and starts a reader thread. Lines
    starting with ``#`` are server comments and are only logged; every other
    non-empty line is handed to ``on_packet``. A read error or EOF tears the
    session down and reports it through ``on_status``; reconnecting is left
    to the caller.
    """

    def __init__(
        self,
        config: APRSISConfig,
        *,
        on_packet: LineCallback | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        self._config = config
        self._on_packet = on_packet
        self._on_status = on_status
        self._socket: Optional[socket.socket] = None
        self._reader_thread: Optional[threading.Thread] = None
        self._write_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._line_buffer = bytearray()

    @property
    def config(self) -> APRSISConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._socket is not None

    def connect(self) -> None:
        if self._socket is not None:
            logger.debug("APRS-IS session already active for %s:%s", self._config.host, self._config.port)
            return
        if self._config.filter_string:
            logger.info("Connecting to APRS-IS with filter: %s", self._config.filter_string)
        try:
            sock = socket.create_connection((self._config.host, self._config.port), timeout=self._config.timeout)
        except OSError as exc:
            raise APRSISClientError(
                f"Unable to connect to APRS-IS server {self._config.host}:{self._config.port}: {exc}"
            ) from exc
        sock.settimeout(None)
        try:
            sock.sendall(self.build_login_line().encode("ascii", errors="replace") + b"\n")
        except OSError as exc:
            sock.close()
            raise APRSISClientError(f"Failed to send APRS-IS login: {exc}") from exc
        with self._state_lock:
            self._socket = sock
            self._line_buffer.clear()
        logger.info("Connected to APRS-IS %s:%s as %s", self._config.host, self._config.port, self._config.callsign)
        self._notify_status(True, None)
        thread = threading.Thread(target=self._read_loop, args=(sock,), name="aprsis-reader", daemon=True)
        self._reader_thread = thread
        thread.start()

    def send_packet(self, packet: str | bytes) -> None:
        sock = self._socket
        if sock is None:
            raise APRSISClientError("APRS-IS connection not established")
        packet_bytes = packet.encode("utf-8", errors="replace") if isinstance(packet, str) else bytes(packet)
        packet_bytes = packet_bytes.rstrip(b"\r\n") + b"\n"
        try:
            with self._write_lock:
                sock.sendall(packet_bytes)
        except OSError as exc:
            self._teardown(sock, f"send failed: {exc}")
            raise APRSISClientError(f"Failed to send packet to APRS-IS: {exc}") from exc

    def disconnect(self) -> None:
        """Close the session; a no-op when already disconnected."""
        sock = self._socket
        if sock is None:
            logger.debug("APRS-IS disconnect requested with no active session")
            return
        self._teardown(sock, None)
        thread = self._reader_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1)
        self._reader_thread = None

    def __enter__(self) -> "APRSISClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def build_login_line(self) -> str:
        base = (
            f"user {self._config.callsign} pass {self._config.resolved_passcode} "
            f"vers {self._config.software_name} {self._config.software_version}"
        )
        if self._config.filter_string:
            base += f" filter {self._config.filter_string}"
        return base

    def feed(self, data: bytes) -> list[str]:
        """Split received bytes into complete lines, buffering any partial tail."""
        self._line_buffer.extend(data)
        lines: list[str] = []
        while True:
            index = self._line_buffer.find(b"\n")
            if index == -1:
                break
            raw = bytes(self._line_buffer[:index])
            del self._line_buffer[: index + 1]
            line = raw.decode("utf-8", errors="replace").strip()
            if line:
                lines.append(line)
        return lines

    def handle_line(self, line: str) -> None:
        if line.startswith("#"):
            lowered = line.lower()
            if lowered.startswith("# logresp") and "unverified" in lowered:
                logger.warning("APRS-IS: %s", line)
            else:
                logger.info("APRS-IS: %s", line)
            return
        if self._on_packet is not None:
            self._on_packet(line)

    def _read_loop(self, sock: socket.socket) -> None:
        reason: str | None = "server closed connection"
        while self._socket is sock:
            try:
                chunk = sock.recv(_READ_CHUNK_BYTES)
            except OSError as exc:
                reason = f"read failed: {exc}"
                break
            if not chunk:
                break
            for line in self.feed(chunk):
                try:
                    self.handle_line(line)
                except Exception:  # pragma: no cover - consumer bug
                    logger.exception("APRS-IS line handler failed for %r", line)
        if self._socket is sock:
            logger.warning("APRS-IS session lost: %s", reason)
            self._teardown(sock, reason)

    def _teardown(self, sock: socket.socket, reason: str | None) -> None:
        with self._state_lock:
            if self._socket is not sock:
                return
            self._socket = None
            self._line_buffer.clear()
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            sock.close()
        except OSError:
            pass
        logger.info("Closed APRS-IS connection to %s:%s", self._config.host, self._config.port)
        self._notify_status(False, reason)

    def _notify_status(self, connected: bool, reason: str | None) -> None:
        if self._on_status is not None:
            self._on_status(connected, reason)
