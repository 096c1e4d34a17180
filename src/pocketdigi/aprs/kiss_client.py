"""Minimal KISS TCP client for a TNC, Direwolf, or a Bluetooth-to-TCP bridge."""

from __future__ import annotations

import socket
import threading
from dataclasses import dataclass
from typing import Optional

from pocketdigi.aprs.kiss import KISSCommand, encode_kiss_frame
from pocketdigi.errors import TransportError

_READ_CHUNK_BYTES = 4096


class KISSClientError(TransportError):
    pass


@dataclass(slots=True)
class KISSClientConfig:
    host: str = "127.0.0.1"
    port: int = 8001
    timeout: float = 2.0


class KISSClient:
    """Byte-level KISS link: raw reads, framed writes.

    Reassembly of received bytes is the caller's job (see
    :class:`pocketdigi.aprs.kiss.KissFramer`).
    """

    def __init__(self, config: KISSClientConfig | None = None) -> None:
        self._config = config or KISSClientConfig()
        self._socket: socket.socket | None = None
        self._write_lock = threading.Lock()

    @property
    def config(self) -> KISSClientConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._socket is not None

    def connect(self) -> None:
        if self._socket is not None:
            return
        try:
            sock = socket.create_connection(
                (self._config.host, self._config.port), timeout=self._config.timeout
            )
        except OSError as exc:
            raise KISSClientError(
                f"Unable to connect to KISS server at {self._config.host}:{self._config.port}: {exc}"
            ) from exc
        sock.settimeout(self._config.timeout)
        self._socket = sock

    def recv(self, timeout: Optional[float] = None) -> bytes:
        """Return the next chunk of raw bytes from the link."""
        sock = self._require_socket()
        try:
            sock.settimeout(timeout if timeout is not None else self._config.timeout)
            chunk = sock.recv(_READ_CHUNK_BYTES)
        except socket.timeout as exc:
            raise TimeoutError("Timed out waiting for KISS data") from exc
        except OSError as exc:
            raise KISSClientError(f"Socket error while reading: {exc}") from exc
        if not chunk:
            raise KISSClientError("KISS connection closed by remote host")
        return chunk

    def send_frame(
        self,
        payload: bytes | bytearray,
        *,
        port: int = 0,
        command: KISSCommand | int = KISSCommand.DATA,
    ) -> None:
        sock = self._require_socket()
        frame = encode_kiss_frame(payload, port=port, command=int(KISSCommand(command)))
        try:
            with self._write_lock:
                sock.sendall(frame)
        except OSError as exc:
            raise KISSClientError(f"Failed to send KISS frame: {exc}") from exc

    def close(self) -> None:
        if self._socket is None:
            return
        sock = self._socket
        self._socket = None
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()

    def __enter__(self) -> "KISSClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_socket(self) -> socket.socket:
        if self._socket is None:
            raise KISSClientError("KISS connection not established")
        return self._socket
