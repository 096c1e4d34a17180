"""Small offline helpers: APRS-IS passcode and grid locator lookup."""

from __future__ import annotations

import sys
from argparse import Namespace

from pocketdigi.aprs.aprsis_client import aprs_passcode
from pocketdigi.aprs.maidenhead import GridSyntaxError, parse_grid
from pocketdigi.settings import split_callsign


def run_passcode(args: Namespace) -> int:
    """Print the APRS-IS passcode for ``args.callsign``."""
    try:
        callsign, _ = split_callsign(args.callsign)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    print(aprs_passcode(callsign))
    return 0


def run_grid(args: Namespace) -> int:
    """Print the centre of a Maidenhead cell as ``lat lon``."""
    try:
        latitude, longitude = parse_grid(args.locator)
    except GridSyntaxError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    print(f"{latitude:.6f} {longitude:.6f}")
    return 0
