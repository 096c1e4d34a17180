"""Runtime station identity shared by the RF and APRS-IS receive paths."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from pocketdigi.config import StationConfig

CALLSIGN_PATTERN = re.compile(r"^([A-Z0-9]{1,6})(?:-([0-9]{1,2}))?$")

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def split_callsign(value: str) -> tuple[str, int]:
    """Split ``CALL`` / ``CALL-SSID`` into an uppercase callsign and SSID."""
    match = CALLSIGN_PATTERN.match(value.strip().upper())
    if match is None:
        raise ValueError(f"Invalid callsign {value!r}; expected CALL or CALL-SSID")
    ssid = int(match.group(2) or 0)
    if ssid > 15:
        raise ValueError(f"SSID must be between 0 and 15, got {ssid}")
    return match.group(1), ssid


@dataclass(frozen=True, slots=True)
class StationIdentity:
    callsign: str = "N0CALL"
    ssid: int = 0
    digipeater_enabled: bool = True
    igate_enabled: bool = False

    @property
    def full_callsign(self) -> str:
        return f"{self.callsign}-{self.ssid}" if self.ssid else self.callsign


class StationSettings:
    """Lock-protected holder of the current :class:`StationIdentity`.

    Readers always get a complete snapshot; writers replace it atomically.
    """

    def __init__(self, identity: StationIdentity | None = None) -> None:
        self._lock = threading.Lock()
        self._identity = identity or StationIdentity()

    @classmethod
    def from_config(cls, config: StationConfig) -> StationSettings:
        callsign, ssid = split_callsign(config.callsign)
        return cls(
            StationIdentity(
                callsign=callsign,
                ssid=ssid,
                digipeater_enabled=config.digipeater_enabled,
                igate_enabled=config.igate_enabled,
            )
        )

    def snapshot(self) -> StationIdentity:
        with self._lock:
            return self._identity

    def set_callsign(self, value: str) -> StationIdentity:
        callsign, ssid = split_callsign(value)
        identity = self._update(callsign=callsign, ssid=ssid)
        logger.info("Callsign set to %s-%s", callsign, ssid)
        return identity

    def set_digipeater_enabled(self, enabled: bool) -> StationIdentity:
        identity = self._update(digipeater_enabled=enabled)
        logger.info("Digipeater %s", "enabled" if enabled else "disabled")
        return identity

    def set_igate_enabled(self, enabled: bool) -> StationIdentity:
        identity = self._update(igate_enabled=enabled)
        logger.info("iGate %s", "enabled" if enabled else "disabled")
        return identity

    def _update(self, **changes: object) -> StationIdentity:
        with self._lock:
            self._identity = replace(self._identity, **changes)  # type: ignore[arg-type]
            return self._identity
