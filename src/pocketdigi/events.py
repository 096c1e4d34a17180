"""Queue-per-category event plumbing consumed by presentation layers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from queue import Empty, Queue
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from pocketdigi.aprs.ax25 import APRSPacket
    from pocketdigi.transmit import PacketOrigin


class EventKind(str, Enum):
    SYSTEM_LOG = "system_log"
    RF_PACKET = "rf_packet"
    IS_PACKET = "is_packet"
    TX_PACKET = "tx_packet"
    CONNECTION_STATUS = "connection_status"


@dataclass(frozen=True, slots=True)
class TransmittedPacket:
    packet: APRSPacket
    origin: PacketOrigin


@dataclass(frozen=True, slots=True)
class ConnectionStatus:
    link: str
    connected: bool
    reason: str | None = None


class EventBus:
    """Fan each published item out to every subscriber queue of its kind."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[EventKind, list["Queue[Any]"]] = {kind: [] for kind in EventKind}

    def subscribe(self, kind: EventKind, maxsize: int = 0) -> "Queue[Any]":
        queue: "Queue[Any]" = Queue(maxsize=maxsize)
        with self._lock:
            self._subscribers[kind].append(queue)
        return queue

    def unsubscribe(self, kind: EventKind, queue: "Queue[Any]") -> None:
        with self._lock:
            try:
                self._subscribers[kind].remove(queue)
            except ValueError:
                pass

    def publish(self, kind: EventKind, item: Any) -> None:
        with self._lock:
            targets = list(self._subscribers[kind])
        for queue in targets:
            queue.put(item)


def drain(queue: "Queue[Any]") -> list[Any]:
    """Return every item currently waiting in ``queue`` without blocking."""
    items: list[Any] = []
    while True:
        try:
            items.append(queue.get_nowait())
        except Empty:
            return items


class EventBusLogHandler(logging.Handler):
    """Publish formatted log records as ``SYSTEM_LOG`` events."""

    def __init__(self, bus: EventBus, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._bus = bus
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._bus.publish(EventKind.SYSTEM_LOG, self.format(record))
        except Exception:  # pragma: no cover - logging must not raise
            self.handleError(record)
