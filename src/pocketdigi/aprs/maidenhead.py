"""Maidenhead grid locator to coordinate conversion."""

from __future__ import annotations

import re
from typing import Tuple

GRID_PATTERN = re.compile(r"^[A-R]{2}[0-9]{2}(?:[A-X]{2})?$")

# Cell sizes in degrees (longitude, latitude)
FIELD_SIZE = (20.0, 10.0)
SQUARE_SIZE = (2.0, 1.0)
SUBSQUARE_SIZE = (5.0 / 60.0, 2.5 / 60.0)


class GridSyntaxError(ValueError):
    """Raised when a string is not a 4 or 6 character grid locator."""


def parse_grid(grid: str) -> Tuple[float, float]:
    """Convert a grid locator (``FN31`` or ``FN31pr``) to the centre of its cell.

    Args:
        grid: 4 or 6 character locator, case-insensitive.

    Returns:
        Tuple of (latitude, longitude) in decimal degrees.

    Raises:
        GridSyntaxError: If the locator does not match ``[A-R]{2}[0-9]{2}([A-X]{2})?``.
    """
    normalized = grid.strip().upper()
    if not GRID_PATTERN.match(normalized):
        raise GridSyntaxError(f"Invalid grid locator: {grid!r}")

    lon = (ord(normalized[0]) - ord("A")) * FIELD_SIZE[0] - 180.0
    lat = (ord(normalized[1]) - ord("A")) * FIELD_SIZE[1] - 90.0

    lon += int(normalized[2]) * SQUARE_SIZE[0]
    lat += int(normalized[3]) * SQUARE_SIZE[1]
    finest = SQUARE_SIZE

    if len(normalized) == 6:
        lon += (ord(normalized[4]) - ord("A")) * SUBSQUARE_SIZE[0]
        lat += (ord(normalized[5]) - ord("A")) * SUBSQUARE_SIZE[1]
        finest = SUBSQUARE_SIZE

    return lat + finest[1] / 2, lon + finest[0] / 2


def grid_to_latlon(grid: str) -> Tuple[float, float] | None:
    """Like :func:`parse_grid` but returns ``None`` for invalid locators."""
    try:
        return parse_grid(grid)
    except GridSyntaxError:
        return None
