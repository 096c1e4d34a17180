"""Configuration loading and persistence helpers."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w  # type: ignore[import]

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

from pocketdigi.aprs.maidenhead import GridSyntaxError, parse_grid
from pocketdigi.config_layering import apply_env_overrides
from pocketdigi.settings import split_callsign

CONFIG_VERSION = 1
CONFIG_ENV_VAR = "POCKETDIGI_CONFIG_PATH"
CONFIG_DIR_NAME = "pocketdigi"
CONFIG_FILENAME = "config.toml"

DEFAULT_BEACON_PATH = ["WIDE1-1", "WIDE2-1"]


def _xdg_path(env_var: str, default: Path) -> Path:
    value = os.environ.get(env_var)
    if value:
        return Path(value).expanduser()
    return default


def get_config_dir() -> Path:
    """Return the directory containing configuration files."""
    default = Path.home() / ".config"
    return _xdg_path("XDG_CONFIG_HOME", default) / CONFIG_DIR_NAME


def get_data_dir() -> Path:
    """Return the directory for runtime data/log files."""
    default = Path.home() / ".local" / "share"
    return _xdg_path("XDG_DATA_HOME", default) / CONFIG_DIR_NAME


def get_logs_dir() -> Path:
    return get_data_dir() / "logs"


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Resolve the configuration file path, honouring overrides."""
    if path is not None:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return get_config_dir() / CONFIG_FILENAME


@dataclass(slots=True)
class StationConfig:
    """Station identity, location, beacon, digipeater, iGate and KISS settings."""

    callsign: str
    latitude: float | None = None
    longitude: float | None = None
    grid: str | None = None
    beacon_comment: str | None = None
    beacon_interval_s: int = 600
    beacon_path: list[str] = field(default_factory=lambda: list(DEFAULT_BEACON_PATH))
    destination: str = "APRS"
    digipeater_enabled: bool = True
    igate_enabled: bool = False
    aprs_server: str = "rotate.aprs.net"
    aprs_port: int = 14580
    radius_km: int = 50
    passcode: str | None = None
    kiss_host: str = "127.0.0.1"
    kiss_port: int = 8001

    def __post_init__(self) -> None:
        split_callsign(self.callsign)
        if self.grid:
            parse_grid(self.grid)
        if self.beacon_interval_s <= 0:
            raise ValueError("beacon_interval_s must be positive")

    def position(self) -> tuple[float, float] | None:
        """Return (lat, lon) from explicit coordinates, else from the grid locator."""
        if self.latitude is not None and self.longitude is not None:
            return self.latitude, self.longitude
        if self.grid:
            return parse_grid(self.grid)
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert the configuration to a TOML-serialisable dictionary."""
        return {
            "version": CONFIG_VERSION,
            "station": _drop_none(
                {
                    "callsign": self.callsign,
                    "latitude": self.latitude,
                    "longitude": self.longitude,
                    "grid": self.grid,
                    "beacon_comment": self.beacon_comment,
                    "beacon_interval_s": self.beacon_interval_s,
                    "beacon_path": list(self.beacon_path),
                    "destination": self.destination,
                }
            ),
            "digipeater": {"enabled": self.digipeater_enabled},
            "igate": _drop_none(
                {
                    "enabled": self.igate_enabled,
                    "server": self.aprs_server,
                    "port": self.aprs_port,
                    "radius_km": self.radius_km,
                    "passcode": self.passcode,
                }
            ),
            "kiss": {
                "host": self.kiss_host,
                "port": self.kiss_port,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StationConfig:
        """Construct from a dictionary (typically parsed from TOML)."""
        version = data.get("version", 1)
        if version != CONFIG_VERSION:
            raise ValueError(f"Unsupported config version: {version}")

        station = data.get("station", {})
        digipeater = data.get("digipeater", {})
        igate = data.get("igate", {})
        kiss = data.get("kiss", {})

        callsign = station.get("callsign")
        if not callsign:
            raise ValueError("Configuration missing required callsign")

        passcode = igate.get("passcode")
        try:
            return cls(
                callsign=str(callsign).upper(),
                latitude=_optional_float(station.get("latitude")),
                longitude=_optional_float(station.get("longitude")),
                grid=station.get("grid") or None,
                beacon_comment=station.get("beacon_comment"),
                beacon_interval_s=int(station.get("beacon_interval_s", 600)),
                beacon_path=[str(hop) for hop in station.get("beacon_path", DEFAULT_BEACON_PATH)],
                destination=str(station.get("destination", "APRS")),
                digipeater_enabled=_as_bool(digipeater.get("enabled", True)),
                igate_enabled=_as_bool(igate.get("enabled", False)),
                aprs_server=str(igate.get("server", "rotate.aprs.net")),
                aprs_port=int(igate.get("port", 14580)),
                radius_km=int(igate.get("radius_km", 50)),
                passcode=None if passcode in (None, "") else str(passcode),
                kiss_host=str(kiss.get("host", "127.0.0.1")),
                kiss_port=int(kiss.get("port", 8001)),
            )
        except GridSyntaxError as exc:
            raise ValueError(f"Invalid grid locator in configuration: {exc}") from exc


def _optional_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _drop_none(mapping: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in mapping.items() if value is not None}


def load_config(path: str | Path | None = None) -> StationConfig:
    """Load persisted configuration, applying POCKETDIGI_* environment overrides."""
    config_path = resolve_config_path(path)
    with config_path.open("rb") as handle:
        data = tomllib.load(handle)
    return StationConfig.from_dict(apply_env_overrides(data))


def save_config(config: StationConfig, path: str | Path | None = None) -> Path:
    """Persist configuration to disk and return the file path."""
    config_path = resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    toml_text = tomli_w.dumps(config.to_dict())
    config_path.write_text(toml_text, encoding="utf-8")
    try:
        os.chmod(config_path, stat.S_IRUSR | stat.S_IWUSR)
    except PermissionError:  # pragma: no cover - some FS disallow chmod
        pass
    return config_path


def config_summary(config: StationConfig) -> str:
    """Generate a human-readable summary of key settings."""
    location = "not set"
    if config.latitude is not None and config.longitude is not None:
        location = f"{config.latitude:.4f}, {config.longitude:.4f}"
    elif config.grid:
        location = f"grid {config.grid}"
    igate = f"{config.aprs_server}:{config.aprs_port}" if config.igate_enabled else "disabled"
    return (
        f"  Callsign   : {config.callsign}\n"
        f"  Location   : {location}\n"
        f"  Digipeater : {'enabled' if config.digipeater_enabled else 'disabled'}\n"
        f"  iGate      : {igate}\n"
        f"  Beacon     : every {config.beacon_interval_s}s via {','.join(config.beacon_path)}\n"
        f"  KISS       : {config.kiss_host}:{config.kiss_port}"
    )
