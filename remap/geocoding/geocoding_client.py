"""
Geocoding provider adapters.

Wraps the public Nominatim HTTP API (requests) and the googlemaps SDK
behind one interface for forward (text -> coordinate) and reverse
(coordinate -> address) lookups. Both always ask for a single result
and identify the client in every request.
"""

from abc import ABC, abstractmethod
from typing import Optional

import googlemaps
import requests

from ..config.logger_module import log_info, log_error
from .geocoding_config import GeocodingConfig
from .geocoding_errors import GeocodingError
from .geocoding_models import GeocodeResult


class GeocodingProvider(ABC):
    """Abstract base class for geocoding providers (blocking calls)."""

    @abstractmethod
    def forward_geocode(self, text: str) -> Optional[GeocodeResult]:
        """
        Resolve free text to the best matching coordinate.
        
        Returns:
            The first result, or None when the provider found nothing
            
        Raises:
            GeocodingError: On transport or API failure
        """
        pass

    @abstractmethod
    def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        """
        Resolve a coordinate to a display address.
        
        Returns:
            The display address, or None when the provider found nothing
            
        Raises:
            GeocodingError: On transport or API failure
        """
        pass


class NominatimGeocoder(GeocodingProvider):
    """
    OpenStreetMap Nominatim client.
    
    The usage policy requires an identifying User-Agent and at most one
    request per second; throttling is the caller's job.
    """

    def __init__(self,
                 user_agent: str,
                 base_url: str = "https://nominatim.openstreetmap.org",
                 request_timeout: int = 10,
                 session: requests.Session = None):
        """
        Initialize the Nominatim client.
        
        Args:
            user_agent: Client identifier sent with every request
            base_url: Nominatim server root
            request_timeout: HTTP request timeout in seconds
            session: Optional pre-built requests session
        """
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        
        self._session = session or requests.Session()
        self._session.headers.update({
            'User-Agent': user_agent,
            'Accept': 'application/json',
        })
        
        log_info(f"NominatimGeocoder initialized ({self.base_url})")

    def _get_json(self, path: str, params: dict):
        url = f"{self.base_url}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self.request_timeout)
        except requests.exceptions.Timeout:
            log_error(f"Timeout calling Nominatim {path}")
            raise GeocodingError("Request timeout")
        except requests.exceptions.RequestException as e:
            log_error(f"Request error calling Nominatim {path}: {e}")
            raise GeocodingError(f"Request failed: {str(e)}")
        
        if response.status_code != 200:
            log_error(
                f"HTTP {response.status_code} from Nominatim {path}: "
                f"{response.text[:200]}"
            )
            raise GeocodingError(f"Geocoding API error: {response.status_code}")
        
        try:
            return response.json()
        except ValueError as e:
            raise GeocodingError(f"Invalid JSON from Nominatim: {e}")

    def forward_geocode(self, text: str) -> Optional[GeocodeResult]:
        if not text or not text.strip():
            raise GeocodingError("Empty query provided")
        
        log_info(f"Geocoding query: {text}")
        data = self._get_json("/search", {
            "format": "json",
            "q": text,
            "limit": 1,
            "addressdetails": 1,
        })
        
        if not data:
            log_info(f"No results for '{text}'")
            return None
        
        location = data[0]
        try:
            result = GeocodeResult(
                lat=float(location["lat"]),
                lng=float(location["lon"]),
                display_address=location.get("display_name") or text,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError(f"Malformed Nominatim result for '{text}': {e}")
        
        log_info(f"Geocoded '{text}' to ({result.lat}, {result.lng})")
        return result

    def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        log_info(f"Reverse geocoding ({lat}, {lng})")
        data = self._get_json("/reverse", {
            "format": "json",
            "lat": lat,
            "lon": lng,
        })
        
        if not isinstance(data, dict) or "error" in data:
            return None
        return data.get("display_name") or None


class GoogleMapsGeocoder(GeocodingProvider):
    """
    Wraps the googlemaps SDK for forward and reverse geocoding.
    """

    def __init__(self,
                 api_key: str,
                 user_agent: str,
                 request_timeout: int = 10):
        """
        Initialize the Google Maps client.
        
        Args:
            api_key: Google Maps API key
            user_agent: Client identifier sent with every request
            request_timeout: HTTP request timeout in seconds
        """
        if not api_key:
            raise ValueError("GOOGLE_MAPS_API_KEY not provided or found in config")
        
        self._gmaps = googlemaps.Client(
            key=api_key,
            timeout=request_timeout,
            requests_kwargs={"headers": {"User-Agent": user_agent}},
        )
        
        log_info("GoogleMapsGeocoder initialized")

    def forward_geocode(self, text: str) -> Optional[GeocodeResult]:
        if not text or not text.strip():
            raise GeocodingError("Empty query provided")
        
        try:
            log_info(f"Geocoding query: {text}")
            results = self._gmaps.geocode(text)
        except googlemaps.exceptions.Timeout as e:
            log_error(f"Timeout geocoding '{text}': {e}")
            raise GeocodingError(f"Timeout geocoding '{text}'")
        except (googlemaps.exceptions.ApiError,
                googlemaps.exceptions.TransportError) as e:
            log_error(f"Google Maps API error for '{text}': {e}")
            raise GeocodingError(f"API error geocoding '{text}': {str(e)}")
        
        if not results:
            log_info(f"No results for '{text}'")
            return None
        
        try:
            first = results[0]
            location = first['geometry']['location']
            result = GeocodeResult(
                lat=float(location['lat']),
                lng=float(location['lng']),
                display_address=first.get('formatted_address') or text,
            )
        except (KeyError, TypeError, ValueError) as e:
            log_error(f"Malformed Google Maps result for '{text}': {e}")
            raise GeocodingError(f"Malformed Google Maps result for '{text}': {e}")
        
        log_info(f"Geocoded '{text}' to ({result.lat}, {result.lng})")
        return result

    def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        try:
            log_info(f"Reverse geocoding ({lat}, {lng})")
            results = self._gmaps.reverse_geocode((lat, lng))
        except googlemaps.exceptions.Timeout as e:
            log_error(f"Timeout reverse geocoding ({lat}, {lng}): {e}")
            raise GeocodingError("Timeout reverse geocoding")
        except (googlemaps.exceptions.ApiError,
                googlemaps.exceptions.TransportError) as e:
            log_error(f"Google Maps API error reverse geocoding ({lat}, {lng}): {e}")
            raise GeocodingError(f"API error reverse geocoding: {str(e)}")
        
        if not results:
            return None
        return results[0].get('formatted_address') or None


def create_geocoding_provider(config: GeocodingConfig) -> GeocodingProvider:
    """Build the provider adapter selected by the configuration."""
    if config.provider == "google":
        return GoogleMapsGeocoder(
            api_key=config.google_api_key,
            user_agent=config.user_agent,
            request_timeout=config.request_timeout,
        )
    return NominatimGeocoder(
        user_agent=config.user_agent,
        base_url=config.nominatim_base_url,
        request_timeout=config.request_timeout,
    )
