"""Tests for configuration helpers."""

from __future__ import annotations

import stat

import pytest

from pocketdigi import config as config_module
from pocketdigi.config import StationConfig


def test_save_and_load_roundtrip(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("POCKETDIGI_IGATE__SERVER", raising=False)
    cfg = StationConfig(
        callsign="N0CALL-10",
        latitude=12.34,
        longitude=-56.78,
        beacon_comment="Testing",
        beacon_interval_s=900,
        beacon_path=["WIDE2-2"],
        digipeater_enabled=False,
        igate_enabled=True,
        aprs_server="noam.aprs2.net",
        radius_km=75,
        passcode="13023",
        kiss_host="192.168.1.5",
        kiss_port=8100,
    )

    path = tmp_path / "config.toml"
    config_module.save_config(cfg, path=path)

    assert config_module.load_config(path) == cfg
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_minimal_file_uses_defaults(tmp_path) -> None:
    path = tmp_path / "config.toml"
    path.write_text('[station]\ncallsign = "n0call"\n', encoding="utf-8")

    cfg = config_module.load_config(path)

    assert cfg.callsign == "N0CALL"
    assert cfg.beacon_interval_s == 600
    assert cfg.beacon_path == ["WIDE1-1", "WIDE2-1"]
    assert cfg.digipeater_enabled is True
    assert cfg.igate_enabled is False
    assert (cfg.aprs_server, cfg.aprs_port) == ("rotate.aprs.net", 14580)
    assert (cfg.kiss_host, cfg.kiss_port) == ("127.0.0.1", 8001)
    assert cfg.position() is None


def test_env_overrides_applied_on_load(tmp_path, monkeypatch) -> None:
    path = tmp_path / "config.toml"
    config_module.save_config(StationConfig(callsign="N0CALL"), path=path)
    monkeypatch.setenv("POCKETDIGI_KISS__PORT", "9001")
    monkeypatch.setenv("POCKETDIGI_IGATE__ENABLED", "true")

    cfg = config_module.load_config(path)

    assert cfg.kiss_port == 9001
    assert cfg.igate_enabled is True


def test_position_prefers_coordinates_over_grid() -> None:
    cfg = StationConfig(callsign="N0CALL", latitude=1.0, longitude=2.0, grid="FN31")
    assert cfg.position() == (1.0, 2.0)


def test_position_falls_back_to_grid() -> None:
    cfg = StationConfig(callsign="N0CALL", grid="FN31")
    assert cfg.position() == pytest.approx((41.5, -73.0))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"callsign": "NOT A CALL"},
        {"callsign": "N0CALL-16"},
        {"callsign": "N0CALL", "grid": "ZZ99"},
        {"callsign": "N0CALL", "beacon_interval_s": 0},
    ],
)
def test_invalid_values_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        StationConfig(**kwargs)


def test_missing_callsign_rejected(tmp_path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[kiss]\nport = 8001\n", encoding="utf-8")
    with pytest.raises(ValueError, match="callsign"):
        config_module.load_config(path)


def test_unsupported_version_rejected() -> None:
    with pytest.raises(ValueError, match="version"):
        StationConfig.from_dict({"version": 99, "station": {"callsign": "N0CALL"}})


def test_resolve_config_path_env_override(monkeypatch, tmp_path) -> None:
    path = tmp_path / "custom.toml"
    monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(path))

    assert config_module.resolve_config_path() == path


def test_resolve_config_path_explicit_wins(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(tmp_path / "env.toml"))
    explicit = tmp_path / "explicit.toml"

    assert config_module.resolve_config_path(explicit) == explicit


def test_default_paths_follow_xdg(monkeypatch, tmp_path) -> None:
    monkeypatch.delenv(config_module.CONFIG_ENV_VAR, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    assert config_module.resolve_config_path() == tmp_path / "cfg" / "pocketdigi" / "config.toml"
    assert config_module.get_logs_dir() == tmp_path / "data" / "pocketdigi" / "logs"


def test_config_summary_mentions_key_settings() -> None:
    cfg = StationConfig(callsign="N0CALL-10", grid="FN31pr", igate_enabled=True)
    summary = config_module.config_summary(cfg)
    assert "N0CALL-10" in summary
    assert "grid FN31pr" in summary
    assert "rotate.aprs.net:14580" in summary
