"""
Custom exceptions for the geocoding module.

These exceptions separate provider failures, which the resolver absorbs,
from coordinate validation failures, which are reported to the caller.
"""


class GeocodingError(Exception):
    """Raised when the geocoding provider fails or cannot be reached."""
    pass


class CoordinateValidationError(Exception):
    """Raised when a latitude/longitude pair lies outside the valid range."""
    pass
