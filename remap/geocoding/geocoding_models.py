"""
Value types shared by the geocoding components and the pin draft.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .geocoding_errors import CoordinateValidationError


LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


@dataclass(frozen=True)
class Coordinate:
    """A validated point with the address shown to the user."""
    lat: float
    lng: float
    address: str = ""


@dataclass(frozen=True)
class GeocodeResult:
    """Normalized provider answer for a forward geocoding request."""
    lat: float
    lng: float
    display_address: str


def coordinate_error(lat, lng) -> Optional[str]:
    """
    Check a latitude/longitude pair against the geographic ranges.
    
    Args:
        lat: Latitude candidate
        lng: Longitude candidate
        
    Returns:
        None when valid, otherwise a human-readable reason
    """
    for name, value, (low, high) in (
        ("latitude", lat, LATITUDE_RANGE),
        ("longitude", lng, LONGITUDE_RANGE),
    ):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return f"Invalid {name}: {value!r} is not a number"
        if math.isnan(value) or not (low <= value <= high):
            return f"Invalid {name}: {value} (must be between {low:g} and {high:g})"
    return None


def validate_coordinate(lat, lng) -> None:
    """
    Raise if the pair is out of range.
    
    Raises:
        CoordinateValidationError: With the first violated range
    """
    error = coordinate_error(lat, lng)
    if error:
        raise CoordinateValidationError(error)


def format_coordinate_pair(lat: float, lng: float) -> str:
    """Render a pair the way a dropped pin is labelled: 6 decimal places."""
    return f"{lat:.6f}, {lng:.6f}"
