"""Diagnostics command implementation."""

from __future__ import annotations

import json
import logging
import socket
import sys
import time
from argparse import Namespace
from dataclasses import dataclass
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any, Iterable

from pocketdigi import __version__
from pocketdigi import config as config_module
from pocketdigi.aprs.aprsis_client import aprs_passcode, build_range_filter
from pocketdigi.config import StationConfig

SectionStatus = str

_REQUIRED_PACKAGES = ("tomli-w",)

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass(slots=True)
class Section:
    """Represents the status of a diagnostic check."""

    name: str
    status: SectionStatus
    message: str
    details: dict[str, Any]


@dataclass(slots=True)
class ConnectivityResult:
    success: bool
    latency_ms: float | None = None
    error: str | None = None


def probe_tcp_endpoint(host: str, port: int, timeout: float = 1.0) -> ConnectivityResult:
    """Open and immediately close a TCP connection, timing the handshake."""
    start = time.perf_counter()
    try:
        with socket.create_connection((host, port), timeout=timeout):
            elapsed = time.perf_counter() - start
    except OSError as exc:
        return ConnectivityResult(success=False, error=str(exc))
    return ConnectivityResult(success=True, latency_ms=round(elapsed * 1000, 1))


def run_diagnostics(args: Namespace) -> int:
    """Run station diagnostics and emit results in the requested format."""
    config_path = config_module.resolve_config_path(getattr(args, "config", None))

    sections: list[Section] = [_check_environment()]
    config_section, station_config = _check_config(config_path)
    sections.append(config_section)
    sections.append(_check_station(station_config))
    sections.append(_check_kiss(station_config))
    sections.append(_check_aprs_is(station_config))

    summary = _summarize_sections(sections)

    if getattr(args, "json", False):
        report = _sections_to_mapping(sections)
        report["meta"] = {
            "tool": "pocketdigi",
            "version": __version__,
            "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        report["summary"] = summary
        indent = 2 if getattr(args, "verbose", False) else None
        print(json.dumps(report, indent=indent, default=str))
    else:
        _print_text_report(sections, verbose=getattr(args, "verbose", False))
        _log_summary(summary)

    return 1 if summary["errors"] else 0


def _check_environment() -> Section:
    venv_active = sys.prefix != getattr(sys, "base_prefix", sys.prefix)
    packages: dict[str, str | None] = {}
    missing: list[str] = []
    for package in _REQUIRED_PACKAGES:
        try:
            packages[package] = importlib_metadata.version(package)
        except importlib_metadata.PackageNotFoundError:
            packages[package] = None
            missing.append(package)

    status: SectionStatus = "ok"
    message = "Virtualenv active" if venv_active else "Using system interpreter"
    if missing:
        status = "warning"
        message += f"; Missing packages: {', '.join(missing)}"

    details = {
        "python_version": sys.version.split()[0],
        "venv_active": venv_active,
        "packages": packages,
    }
    return Section("Environment", status, message, details)


def _check_config(config_path: Path) -> tuple[Section, StationConfig | None]:
    if not config_path.exists():
        return Section("Config", "warning", f"No config file found at {config_path}", {"path": str(config_path)}), None

    try:
        config = config_module.load_config(config_path)
    except (ValueError, OSError) as exc:
        return Section("Config", "error", f"Failed to load configuration: {exc}", {"path": str(config_path)}), None

    details = {
        "path": str(config_path),
        "callsign": config.callsign,
        "summary": config_module.config_summary(config),
    }
    return Section("Config", "ok", f"Loaded config for {config.callsign}", details), config


def _check_station(config: StationConfig | None) -> Section:
    if config is None:
        return Section("Station", "warning", "Configuration unavailable; skipping station checks", {})

    details: dict[str, Any] = {
        "digipeater": config.digipeater_enabled,
        "igate": config.igate_enabled,
        "passcode": config.passcode or aprs_passcode(config.callsign),
    }
    position = config.position()
    if position is None:
        message = "No location configured; beacons and iGate disabled"
        return Section("Station", "warning", message, details)

    details["position"] = f"{position[0]:.4f}, {position[1]:.4f}"
    details["filter"] = build_range_filter(position[0], position[1], config.radius_km)
    if config.passcode and str(config.passcode) != str(aprs_passcode(config.callsign)):
        return Section("Station", "warning", "Configured passcode does not match callsign", details)
    return Section("Station", "ok", f"{config.callsign} located at {details['position']}", details)


def _check_kiss(config: StationConfig | None) -> Section:
    if config is None:
        return Section("KISS", "warning", "Configuration unavailable; skipping KISS connectivity check", {})

    host, port = config.kiss_host, config.kiss_port
    result = probe_tcp_endpoint(host, port, timeout=1.0)
    if result.success:
        return Section("KISS", "ok", f"KISS TNC reachable at {host}:{port}", {"latency_ms": result.latency_ms})
    return Section("KISS", "error", f"Unable to reach KISS TNC at {host}:{port}", {"error": result.error})


def _check_aprs_is(config: StationConfig | None) -> Section:
    if config is None:
        return Section("APRS-IS", "warning", "Configuration unavailable; skipping APRS-IS connectivity check", {})
    if not config.igate_enabled:
        return Section("APRS-IS", "ok", "iGate disabled; APRS-IS check skipped", {})

    host, port = config.aprs_server, config.aprs_port
    result = probe_tcp_endpoint(host, port, timeout=2.0)
    if result.success:
        return Section("APRS-IS", "ok", f"Reachable APRS-IS server {host}:{port}", {"latency_ms": result.latency_ms})
    return Section("APRS-IS", "warning", f"Unable to reach APRS-IS server {host}:{port}", {"error": result.error})


def _sections_to_mapping(sections: Iterable[Section]) -> dict[str, Any]:
    report: dict[str, Any] = {}
    for section in sections:
        key = section.name.lower().replace(" ", "_").replace("-", "_")
        report[key] = {
            "status": section.status,
            "message": section.message,
            "details": section.details,
        }
    return report


def _summarize_sections(sections: Iterable[Section]) -> dict[str, Any]:
    errors: list[str] = []
    warnings: list[str] = []
    for section in sections:
        if section.status == "error":
            errors.append(section.name)
        elif section.status == "warning":
            warnings.append(section.name)
    return {
        "errors": len(errors),
        "warnings": len(warnings),
        "error_sections": errors,
        "warning_sections": warnings,
    }


def _log_summary(summary: dict[str, Any]) -> None:
    level = logging.INFO
    if summary["errors"]:
        level = logging.ERROR
    elif summary["warnings"]:
        level = logging.WARNING
    logger.log(
        level,
        "Diagnostics summary: errors=%s warnings=%s error_sections=%s warning_sections=%s",
        summary["errors"],
        summary["warnings"],
        ", ".join(summary["error_sections"]) or "-",
        ", ".join(summary["warning_sections"]) or "-",
    )


def _print_text_report(sections: Iterable[Section], *, verbose: bool) -> None:
    for section in sections:
        logger.info("[%s] %s: %s", section.status.upper().ljust(7), section.name, section.message)
        if not verbose:
            continue
        for key, value in section.details.items():
            logger.info("    %s: %s", key, _format_detail_value(value))


def _format_detail_value(value: Any) -> str:
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items()) or "{}"
    if isinstance(value, (list, tuple, set)):
        return ", ".join(map(str, value))
    return str(value)
