"""
Geocoding module for the ReMap pin pipeline.

This module provides functionality for:
- Resolving typed location text to coordinates (debounced, cached, throttled)
- Reverse geocoding coordinates to display addresses
- Accepting GPS fixes and dragged pins without network calls

Main classes:
- GeocodingResolver: Entry point used by the pin draft controller
- NominatimGeocoder / GoogleMapsGeocoder: Provider adapters
- GeocodeCache: Session-scoped query cache
- MinIntervalRateLimiter: Outbound request throttle

Errors:
- GeocodingError: Provider failures
- CoordinateValidationError: Out-of-range coordinates
"""

from .geocoding_cache import GeocodeCache, GeocodeCacheEntry
from .geocoding_client import (
    GeocodingProvider,
    GoogleMapsGeocoder,
    NominatimGeocoder,
    create_geocoding_provider,
)
from .geocoding_config import GeocodingConfig
from .geocoding_errors import CoordinateValidationError, GeocodingError
from .geocoding_models import Coordinate, GeocodeResult
from .geocoding_rate_limiter import MinIntervalRateLimiter
from .geocoding_resolver import GeocodingResolver

__all__ = [
    # Main classes
    "GeocodingResolver",
    "GeocodingProvider",
    "NominatimGeocoder",
    "GoogleMapsGeocoder",
    "create_geocoding_provider",
    "GeocodeCache",
    "GeocodeCacheEntry",
    "MinIntervalRateLimiter",
    "GeocodingConfig",
    
    # Value types
    "Coordinate",
    "GeocodeResult",
    
    # Errors
    "GeocodingError",
    "CoordinateValidationError",
]
