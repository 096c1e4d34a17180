"""Subcommand implementations for the pocketdigi CLI."""

from .diagnostics import run_diagnostics
from .listen import run_listen
from .setup import run_setup
from .tools import run_grid, run_passcode

__all__ = ["run_diagnostics", "run_grid", "run_listen", "run_passcode", "run_setup"]
