"""Command-line interface entry points for PocketDigi."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from argparse import Namespace
from typing import Protocol

from pocketdigi import __version__
from pocketdigi import config as config_module
from pocketdigi.commands import (
    run_diagnostics,
    run_grid,
    run_listen,
    run_passcode,
    run_setup,
)

DEFAULT_COMMAND = "listen"
LOG_LEVEL_ENV_VAR = "POCKETDIGI_LOG_LEVEL"

_LOG_LEVEL_ALIASES: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class CommandHandler(Protocol):
    """Callable signature for CLI subcommands."""

    def __call__(self, args: Namespace) -> int:  # pragma: no cover - typing hook
        ...


def _resolve_log_level(candidate: str | None) -> int:
    for value in (candidate, os.getenv(LOG_LEVEL_ENV_VAR)):
        if not value:
            continue
        stripped = value.strip()
        if not stripped:
            continue
        lower = stripped.lower()
        if lower in _LOG_LEVEL_ALIASES:
            return _LOG_LEVEL_ALIASES[lower]
        if stripped.isdigit():
            return int(stripped)
    return logging.INFO


def _configure_logging(level_name: str | None) -> None:
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter("%(message)s"))
    handlers: list[logging.Handler] = [stream_handler]

    try:
        log_dir = config_module.get_logs_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "pocketdigi.log", encoding="utf-8")
        file_formatter = logging.Formatter(
            "%(asctime)sZ %(levelname)s %(name)s %(message)s", datefmt="%Y-%m-%dT%H:%M:%S"
        )
        file_formatter.converter = time.gmtime
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)
    except OSError:
        # If we can't create the log directory or file, continue without file logging.
        pass

    logging.basicConfig(
        level=_resolve_log_level(level_name),
        handlers=handlers,
        force=True,
    )


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        help="Path to configuration file (overrides default location)",
    )
    parser.add_argument(
        "--log-level",
        choices=sorted(_LOG_LEVEL_ALIASES),
        help="Logging level",
    )


def build_parser(handlers: dict[str, CommandHandler] | None = None) -> argparse.ArgumentParser:
    """Construct the top-level argument parser."""

    handlers = handlers or _command_handlers()

    parser = argparse.ArgumentParser(
        prog="pocketdigi",
        description="APRS digipeater and iGate for a KISS TNC",
    )
    parser.add_argument("--version", action="version", version=f"pocketdigi {__version__}")
    parser.set_defaults(command=DEFAULT_COMMAND, handler=handlers[DEFAULT_COMMAND])

    subparsers = parser.add_subparsers(dest="command", required=False)

    listen_parser = subparsers.add_parser(
        "listen", help="Run the digipeater / iGate on the KISS link"
    )
    listen_parser.set_defaults(command="listen", handler=handlers["listen"])
    _add_common_flags(listen_parser)
    listen_parser.add_argument("--kiss-host", help="KISS TCP host (overrides config)")
    listen_parser.add_argument("--kiss-port", type=int, help="KISS TCP port (overrides config)")
    listen_parser.add_argument(
        "--once",
        action="store_true",
        help="Exit after the first packet heard on RF (debug/testing)",
    )
    listen_parser.add_argument(
        "--no-aprsis",
        action="store_true",
        help="Disable the APRS-IS gateway even if enabled in config",
    )
    listen_parser.add_argument(
        "--no-digipeater",
        action="store_true",
        help="Do not repeat packets heard on RF",
    )
    listen_parser.add_argument(
        "--no-beacon",
        action="store_true",
        help="Do not transmit position beacons",
    )

    setup_parser = subparsers.add_parser("setup", help="Run the onboarding wizard")
    setup_parser.set_defaults(command="setup", handler=handlers["setup"])
    _add_common_flags(setup_parser)
    setup_parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete existing configuration before starting",
    )
    setup_parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Validate the existing config file instead of prompting",
    )
    setup_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run validation without writing any files",
    )

    diagnostics_parser = subparsers.add_parser(
        "diagnostics", help="Check configuration and link reachability"
    )
    diagnostics_parser.set_defaults(command="diagnostics", handler=handlers["diagnostics"])
    _add_common_flags(diagnostics_parser)
    diagnostics_parser.add_argument(
        "--json",
        action="store_true",
        help="Emit diagnostics in JSON format",
    )
    diagnostics_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show extended diagnostic information",
    )

    passcode_parser = subparsers.add_parser("passcode", help="Print the APRS-IS passcode for a callsign")
    passcode_parser.set_defaults(command="passcode", handler=handlers["passcode"])
    passcode_parser.add_argument("callsign", help="Callsign, optionally with SSID (e.g. N0CALL-10)")

    grid_parser = subparsers.add_parser("grid", help="Convert a Maidenhead locator to latitude/longitude")
    grid_parser.set_defaults(command="grid", handler=handlers["grid"])
    grid_parser.add_argument("locator", help="4 or 6 character locator (e.g. FN31pr)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Process CLI arguments and dispatch to the requested command."""

    handlers = _command_handlers()
    parser = build_parser(handlers)

    argv_list = list(sys.argv[1:] if argv is None else argv)
    normalized = _normalize_argv(argv_list, handlers)
    args = parser.parse_args(normalized)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 0

    _configure_logging(getattr(args, "log_level", None))
    return handler(args)


def _command_handlers() -> dict[str, CommandHandler]:
    """Return the mapping of subcommand names to handler callables."""

    return {
        "listen": run_listen,
        "setup": run_setup,
        "diagnostics": run_diagnostics,
        "passcode": run_passcode,
        "grid": run_grid,
    }


def _normalize_argv(argv: list[str], handlers: dict[str, CommandHandler]) -> list[str]:
    """Inject a default subcommand when the user omits one."""

    if not argv:
        return [DEFAULT_COMMAND]

    first = argv[0]
    if first in ("-h", "--help", "--version"):
        return argv

    if first.startswith("-"):
        return [DEFAULT_COMMAND, *argv]

    return argv


if __name__ == "__main__":  # pragma: no cover - direct CLI execution path
    raise SystemExit(main())
