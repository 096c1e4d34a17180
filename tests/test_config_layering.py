"""Tests for environment-variable configuration overrides."""

from __future__ import annotations

from pocketdigi.config_layering import (
    _deep_merge,
    _extract_env_overrides,
    _parse_env_value,
    apply_env_overrides,
)


def test_deep_merge_nested_dicts() -> None:
    base = {"igate": {"server": "a", "port": 1}, "kiss": {"host": "h"}}
    override = {"igate": {"server": "b"}}

    assert _deep_merge(base, override) == {"igate": {"server": "b", "port": 1}, "kiss": {"host": "h"}}
    assert base["igate"]["server"] == "a"


def test_deep_merge_replaces_non_dict_values() -> None:
    assert _deep_merge({"station": "x"}, {"station": {"callsign": "N0CALL"}}) == {
        "station": {"callsign": "N0CALL"}
    }


def test_extract_env_overrides_sections_and_top_level() -> None:
    environ = {
        "POCKETDIGI_IGATE__SERVER": "localhost",
        "POCKETDIGI_KISS__PORT": "9000",
        "POCKETDIGI_VERSION": "1",
        "POCKETDIGI_CONFIG_PATH": "/tmp/ignored.toml",
        "POCKETDIGI_LOG_LEVEL": "debug",
        "OTHER_VAR": "ignored",
    }

    assert _extract_env_overrides(environ) == {
        "igate": {"server": "localhost"},
        "kiss": {"port": 9000},
        "version": 1,
    }


def test_extract_env_overrides_skips_deep_keys() -> None:
    assert _extract_env_overrides({"POCKETDIGI_A__B__C": "x"}) == {}


def test_parse_env_value_types() -> None:
    assert _parse_env_value("true") is True
    assert _parse_env_value("FALSE") is False
    assert _parse_env_value("42") == 42
    assert _parse_env_value("-71.5") == -71.5
    assert _parse_env_value("rotate.aprs.net") == "rotate.aprs.net"


def test_apply_env_overrides_without_matches_returns_input() -> None:
    data = {"station": {"callsign": "N0CALL"}}
    assert apply_env_overrides(data, environ={}) is data


def test_apply_env_overrides_merges() -> None:
    data = {"station": {"callsign": "N0CALL", "latitude": 1.0}}
    result = apply_env_overrides(data, environ={"POCKETDIGI_STATION__LATITUDE": "42.5"})
    assert result == {"station": {"callsign": "N0CALL", "latitude": 42.5}}
