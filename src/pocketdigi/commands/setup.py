"""Onboarding command implementation."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path

from pocketdigi import config as config_module
from pocketdigi.aprs.aprsis_client import aprs_passcode
from pocketdigi.aprs.maidenhead import parse_grid
from pocketdigi.commands.diagnostics import probe_tcp_endpoint
from pocketdigi.commands.setup_io import PromptSession
from pocketdigi.config import StationConfig
from pocketdigi.settings import split_callsign

_MISSING_CONFIG_SENTINEL = "missing"


def run_setup(args: Namespace, session: PromptSession | None = None) -> int:
    """Run the onboarding workflow."""
    config_path = config_module.resolve_config_path(getattr(args, "config", None))

    if getattr(args, "reset", False):
        removed = config_path.exists()
        if removed and not getattr(args, "dry_run", False):
            config_path.unlink()
            print(f"Removed existing configuration at {config_path}")
        elif removed:
            print(f"Dry run: would remove {config_path}")

    if getattr(args, "non_interactive", False):
        return _run_non_interactive(config_path)

    existing, load_error = _load_existing(config_path)
    if load_error is not None and load_error != _MISSING_CONFIG_SENTINEL:
        print(f"Warning: existing configuration invalid ({load_error}); starting fresh")

    session = session or PromptSession()
    try:
        new_config = _interactive_prompt(session, existing)
    except (KeyboardInterrupt, EOFError):
        print("\nSetup cancelled by user")
        return 1

    if getattr(args, "dry_run", False):
        print("Dry run: configuration not written")
        print(config_module.config_summary(new_config))
        return 0

    saved_path = config_module.save_config(new_config, path=config_path)
    print(f"Configuration saved to {saved_path}")
    print(config_module.config_summary(new_config))
    if session.ask_yes_no("Check KISS and APRS-IS reachability now?", default=False):
        _report_connectivity(new_config)
    return 0


def _run_non_interactive(config_path: Path) -> int:
    """Validate an existing config file without prompting the user."""

    config, load_error = _load_existing(config_path)
    if config is None:
        if load_error == _MISSING_CONFIG_SENTINEL:
            print(f"Configuration not found at {config_path}; run interactive setup first")
        else:
            print(f"Configuration invalid: {load_error}")
        return 1

    print("Configuration OK:")
    print(config_module.config_summary(config))
    return 0


def _load_existing(config_path: Path) -> tuple[StationConfig | None, str | None]:
    if not config_path.exists():
        return None, _MISSING_CONFIG_SENTINEL
    try:
        return config_module.load_config(config_path), None
    except ValueError as exc:
        return None, str(exc)


def _interactive_prompt(session: PromptSession, existing: StationConfig | None) -> StationConfig:
    """Collect station details, seeding defaults from an existing config."""

    prompt = session.prompt

    callsign = prompt.string(
        "Callsign (CALL or CALL-SSID)",
        default=_default(existing, "callsign"),
        transform=str.upper,
        validator=_validate_callsign,
    )
    session.say("Location: enter latitude/longitude, or leave them blank and give a grid locator.")
    latitude = prompt.optional_float(
        "Station latitude", default=_default(existing, "latitude"), minimum=-90.0, maximum=90.0
    )
    longitude = prompt.optional_float(
        "Station longitude", default=_default(existing, "longitude"), minimum=-180.0, maximum=180.0
    )
    grid = None
    if latitude is None or longitude is None:
        grid = prompt.optional_string(
            "Maidenhead grid locator",
            default=_default(existing, "grid"),
            validator=_validate_grid,
        )
        if grid is None:
            session.say("No location set: beacons and the iGate will stay idle.")

    beacon_comment = prompt.optional_string(
        "Beacon comment",
        default=_default(existing, "beacon_comment"),
    )
    beacon_interval_s = prompt.integer(
        "Beacon interval (seconds)",
        default=_default(existing, "beacon_interval_s", fallback=600),
        minimum=60,
    )
    digipeater_enabled = session.ask_yes_no(
        "Enable WIDEn-N digipeater?",
        default=bool(_default(existing, "digipeater_enabled", fallback=True)),
    )
    igate_enabled = session.ask_yes_no(
        "Enable APRS-IS iGate?",
        default=bool(_default(existing, "igate_enabled", fallback=False)),
    )

    aprs_server = str(_default(existing, "aprs_server", fallback="rotate.aprs.net"))
    aprs_port = int(_default(existing, "aprs_port", fallback=14580))  # type: ignore[arg-type]
    radius_km = int(_default(existing, "radius_km", fallback=50))  # type: ignore[arg-type]
    passcode = _default(existing, "passcode")
    if igate_enabled:
        aprs_server = prompt.string("APRS-IS server", default=aprs_server)
        aprs_port = prompt.integer("APRS-IS port", default=aprs_port, minimum=1, maximum=65535)
        radius_km = prompt.integer("Receive filter radius (km)", default=radius_km, minimum=1)
        session.say(f"Computed APRS-IS passcode for {callsign}: {aprs_passcode(callsign)}")
        passcode = prompt.optional_string("APRS-IS passcode override", default=passcode)

    kiss_host = prompt.string(
        "KISS TNC host",
        default=_default(existing, "kiss_host", fallback="127.0.0.1"),
    )
    kiss_port = prompt.integer(
        "KISS TNC port",
        default=_default(existing, "kiss_port", fallback=8001),
        minimum=1,
        maximum=65535,
    )

    base = existing or StationConfig(callsign=callsign)
    return StationConfig(
        callsign=callsign,
        latitude=latitude,
        longitude=longitude,
        grid=grid,
        beacon_comment=beacon_comment,
        beacon_interval_s=beacon_interval_s,
        beacon_path=list(base.beacon_path),
        destination=base.destination,
        digipeater_enabled=digipeater_enabled,
        igate_enabled=igate_enabled,
        aprs_server=aprs_server,
        aprs_port=aprs_port,
        radius_km=radius_km,
        passcode=None if passcode is None else str(passcode),
        kiss_host=kiss_host,
        kiss_port=kiss_port,
    )


def _default(config: StationConfig | None, attr: str, fallback: object | None = None) -> object | None:
    if config is None:
        return fallback
    value = getattr(config, attr)
    return fallback if value is None else value


def _validate_callsign(value: str) -> None:
    split_callsign(value)


def _validate_grid(value: str) -> None:
    parse_grid(value)


def _report_connectivity(config: StationConfig) -> None:
    """Print connectivity status for the KISS and APRS-IS endpoints."""

    result = probe_tcp_endpoint(config.kiss_host, config.kiss_port, timeout=1.0)
    if result.success:
        print(f"[OK     ] KISS: reachable at {config.kiss_host}:{config.kiss_port}")
    else:
        print(f"[WARNING] KISS: unable to reach {config.kiss_host}:{config.kiss_port} ({result.error})")

    if not config.igate_enabled:
        return
    aprs_result = probe_tcp_endpoint(config.aprs_server, config.aprs_port, timeout=2.0)
    if aprs_result.success:
        print(f"[OK     ] APRS-IS: reachable at {config.aprs_server}:{config.aprs_port}")
    else:
        print(
            f"[WARNING] APRS-IS: unable to reach {config.aprs_server}:{config.aprs_port} ({aprs_result.error})"
        )
