"""Tests for runtime station identity."""

from __future__ import annotations

import threading

import pytest

from pocketdigi.config import StationConfig
from pocketdigi.settings import StationIdentity, StationSettings, split_callsign


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("N0CALL", ("N0CALL", 0)),
        ("n0call-10", ("N0CALL", 10)),
        (" K1ABC-7 ", ("K1ABC", 7)),
    ],
)
def test_split_callsign(value: str, expected: tuple[str, int]) -> None:
    assert split_callsign(value) == expected


@pytest.mark.parametrize("value", ["", "TOOLONGX", "N0CALL-", "N0CALL-16", "N0 CALL"])
def test_split_callsign_rejects(value: str) -> None:
    with pytest.raises(ValueError):
        split_callsign(value)


def test_full_callsign_omits_zero_ssid() -> None:
    assert StationIdentity(callsign="N0CALL").full_callsign == "N0CALL"
    assert StationIdentity(callsign="N0CALL", ssid=9).full_callsign == "N0CALL-9"


def test_from_config() -> None:
    cfg = StationConfig(callsign="N0CALL-10", digipeater_enabled=False, igate_enabled=True)
    identity = StationSettings.from_config(cfg).snapshot()
    assert identity == StationIdentity("N0CALL", 10, digipeater_enabled=False, igate_enabled=True)


def test_updates_replace_snapshot() -> None:
    settings = StationSettings()
    before = settings.snapshot()
    settings.set_callsign("K1ABC-3")
    settings.set_digipeater_enabled(False)
    settings.set_igate_enabled(True)
    after = settings.snapshot()

    assert before == StationIdentity()
    assert after == StationIdentity("K1ABC", 3, digipeater_enabled=False, igate_enabled=True)


def test_invalid_callsign_leaves_snapshot_untouched() -> None:
    settings = StationSettings(StationIdentity(callsign="N0CALL"))
    with pytest.raises(ValueError):
        settings.set_callsign("bad call")
    assert settings.snapshot().callsign == "N0CALL"


def test_concurrent_writers_never_tear_snapshot() -> None:
    settings = StationSettings()
    calls = ["AA1AA-1", "BB2BB-2"]

    def writer(value: str) -> None:
        for _ in range(200):
            settings.set_callsign(value)

    threads = [threading.Thread(target=writer, args=(value,)) for value in calls]
    for thread in threads:
        thread.start()
    seen = set()
    for _ in range(200):
        identity = settings.snapshot()
        seen.add((identity.callsign, identity.ssid))
    for thread in threads:
        thread.join()

    assert seen <= {("N0CALL", 0), ("AA1AA", 1), ("BB2BB", 2)}
