"""Single-writer outbound queues for the radio link and the APRS-IS session."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from queue import Queue
from typing import Callable, Optional

from pocketdigi.aprs.ax25 import APRSPacket, AX25EncodeError, encode_packet
from pocketdigi.errors import TransportError
from pocketdigi.events import EventBus, EventKind, TransmittedPacket

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

FrameWriter = Callable[[bytes], None]


class PacketOrigin(str, Enum):
    DIGIPEAT = "digipeat"
    IGATE = "igate"
    BEACON = "beacon"


class TransmitQueue:
    """Serialise every radio transmission through one worker thread.

    Digipeats, gated packets and beacons are queued in arrival order; the
    worker encodes each to AX.25 and hands it to ``writer`` so at most one
    frame is ever being written. A :class:`TransportError` from the writer is
    reported to ``on_error`` and the packet is dropped.
    """

    def __init__(
        self,
        writer: Optional[FrameWriter] = None,
        *,
        events: EventBus | None = None,
        on_error: Callable[[TransportError], None] | None = None,
    ) -> None:
        self._writer = writer
        self._events = events
        self._on_error = on_error
        self._queue: "Queue[Optional[TransmittedPacket]]" = Queue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def set_writer(self, writer: Optional[FrameWriter]) -> None:
        with self._lock:
            self._writer = writer

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="radio-tx", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        thread = self._thread
        if thread is None:
            return
        self._queue.put(None)
        thread.join(timeout=timeout)
        self._thread = None

    def submit(self, packet: APRSPacket, origin: PacketOrigin) -> None:
        self._queue.put(TransmittedPacket(packet, origin))

    def join(self) -> None:
        """Block until everything queued so far has been handled."""
        self._queue.join()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                self.transmit(item)
            finally:
                self._queue.task_done()

    def transmit(self, item: TransmittedPacket) -> bool:
        with self._lock:
            writer = self._writer
        if writer is None:
            logger.warning("TX error: radio not connected, dropping %s packet", item.origin.value)
            return False
        try:
            frame = encode_packet(item.packet)
        except AX25EncodeError as exc:
            logger.warning("TX error: cannot encode %s: %s", item.packet, exc)
            return False
        try:
            writer(frame)
        except TransportError as exc:
            logger.error("TX error: %s", exc)
            if self._on_error is not None:
                self._on_error(exc)
            return False
        logger.debug("TX [%s] %s", item.origin.value, item.packet)
        if self._events is not None:
            self._events.publish(EventKind.TX_PACKET, item)
        return True


LineSender = Callable[[str, bool], None]


class UplinkQueue:
    """Hand lines bound for APRS-IS to their own writer thread.

    ``sender`` is called as ``sender(line, gated)`` on the worker thread, one
    line at a time, so a stalled server only backs up this queue and never
    the radio reader. ``gated`` is True for traffic heard on RF.
    """

    def __init__(self, sender: LineSender) -> None:
        self._sender = sender
        self._queue: "Queue[Optional[tuple[str, bool]]]" = Queue()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="aprsis-tx", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        thread = self._thread
        if thread is None:
            return
        self._queue.put(None)
        thread.join(timeout=timeout)
        self._thread = None

    def submit(self, line: str, *, gated: bool = False) -> None:
        self._queue.put((line, gated))

    def join(self) -> None:
        self._queue.join()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                self._sender(*item)
            except Exception:  # pragma: no cover - sender bug
                logger.exception("APRS-IS uplink failed for %r", item)
            finally:
                self._queue.task_done()
