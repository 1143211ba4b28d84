"""
Resolves the draft's location from typed text, GPS fixes or pin drags.

Typed text is debounced, then answered from the session cache or, when
the rate limiter allows, from the provider. Provider failures, empty
results and throttled attempts leave the previous coordinate in place
and are only logged: the next edit of the query is the retry. Every
applied update carries a sequence number so a slow, older request can
never overwrite a newer result.
"""

import asyncio
from typing import Callable, Optional

from ..config.logger_module import log_debug, log_info, log_warning
from ..media.media_devices import LocationProvider
from ..media.media_errors import PermissionDeniedError
from .geocoding_cache import GeocodeCache
from .geocoding_client import GeocodingProvider
from .geocoding_config import GeocodingConfig
from .geocoding_debounce import DebouncedTask
from .geocoding_errors import GeocodingError
from .geocoding_models import Coordinate, coordinate_error, format_coordinate_pair
from .geocoding_rate_limiter import MinIntervalRateLimiter


class GeocodingResolver:
    """
    Turns location input into a validated Coordinate for the draft.
    
    Combines:
    - a debounced entry point for keystrokes
    - the session geocode cache
    - the minimum-interval rate limiter
    - the provider adapter, called off the event loop
    """

    def __init__(self,
                 provider: GeocodingProvider,
                 config: GeocodingConfig = None,
                 on_update: Callable[[Coordinate], None] = None,
                 cache: GeocodeCache = None,
                 rate_limiter: MinIntervalRateLimiter = None):
        """
        Initialize the resolver.
        
        Args:
            provider: Geocoding provider adapter
            config: Geocoding configuration (defaults if None)
            on_update: Receives every accepted coordinate
            cache: Session cache (a fresh one if None)
            rate_limiter: Request throttle (built from config if None)
        """
        self.provider = provider
        self.config = config or GeocodingConfig()
        self.on_update = on_update
        self.cache = cache or GeocodeCache()
        self.rate_limiter = rate_limiter or MinIntervalRateLimiter(
            self.config.min_request_interval_seconds
        )
        
        self._debouncer = DebouncedTask(self.config.debounce_seconds, self.resolve_now)
        self._issued_seq = 0
        self._applied_seq = 0
        
        self.latest_text = ""
        self.current: Optional[Coordinate] = None
        self.last_rejection: Optional[str] = None
        
        log_info(
            f"GeocodingResolver initialized "
            f"(debounce={self.config.debounce_seconds}s, "
            f"min_query_length={self.config.min_query_length})"
        )

    # ---- sequencing -------------------------------------------------

    def _next_seq(self) -> int:
        self._issued_seq += 1
        return self._issued_seq

    def _apply(self, seq: int, coordinate: Coordinate) -> bool:
        if seq <= self._applied_seq:
            log_info(
                f"Discarding stale location result #{seq} "
                f"(#{self._applied_seq} already applied)"
            )
            return False
        
        self._applied_seq = seq
        self.current = coordinate
        self.last_rejection = None
        if self.on_update is not None:
            self.on_update(coordinate)
        return True

    def _reject(self, reason: str) -> None:
        self.last_rejection = reason
        log_warning(f"Rejected coordinate: {reason}")

    # ---- forward geocoding ------------------------------------------

    def on_query_text_changed(self, text: str) -> None:
        """
        Record the latest raw text and restart the debounce timer.
        
        Only the last call inside the quiet period results in a
        resolution attempt.
        """
        self.latest_text = text
        self._debouncer.schedule(text)

    async def resolve_now(self, text: str) -> Optional[Coordinate]:
        """
        Resolve query text immediately.
        
        Workflow:
        1. Ignore queries shorter than the minimum length
        2. Apply a cached result with no network call
        3. Skip silently if the rate limiter refuses
        4. Ask the provider for one result, region-biased
        5. Validate, cache and apply it unless a newer result landed first
        
        Args:
            text: Raw query text
            
        Returns:
            The applied coordinate, or None if nothing changed
        """
        query = (text or "").strip()
        if len(query) < self.config.min_query_length:
            log_debug(f"Query '{query}' below minimum length, skipping")
            return None
        
        entry = self.cache.lookup(query)
        if entry is not None:
            seq = self._next_seq()
            return entry.coordinate if self._apply(seq, entry.coordinate) else None
        
        if not self.rate_limiter.try_acquire():
            log_info(f"Geocoding for '{query}' deferred to the next edit (rate limited)")
            return None
        
        seq = self._next_seq()
        try:
            result = await asyncio.to_thread(
                self.provider.forward_geocode, query + self.config.region_bias
            )
        except GeocodingError as e:
            log_warning(f"Geocoding failed for '{query}', keeping previous location: {e}")
            return None
        
        if result is None:
            log_info(f"No geocoding result for '{query}', keeping previous location")
            return None
        
        error = coordinate_error(result.lat, result.lng)
        if error:
            self._reject(f"{error} (from provider for '{query}')")
            return None
        
        coordinate = Coordinate(result.lat, result.lng, result.display_address or query)
        self.cache.insert(query, coordinate)
        
        return coordinate if self._apply(seq, coordinate) else None

    # ---- reverse geocoding and direct input -------------------------

    async def resolve_from_coordinates(self, lat: float, lng: float) -> Optional[Coordinate]:
        """
        Apply a coordinate and look up its display address.
        
        The address falls back to the formatted coordinate pair whenever
        the provider fails, finds nothing, or is throttled, so the result
        never has a blank address.
        
        Returns:
            The applied coordinate, or None if rejected or superseded
        """
        error = coordinate_error(lat, lng)
        if error:
            self._reject(error)
            return None
        
        self._debouncer.cancel()
        seq = self._next_seq()
        fallback = format_coordinate_pair(lat, lng)
        address = None
        
        if self.rate_limiter.try_acquire():
            try:
                address = await asyncio.to_thread(self.provider.reverse_geocode, lat, lng)
            except GeocodingError as e:
                log_warning(f"Reverse geocoding failed for ({lat}, {lng}): {e}")
        else:
            log_info(f"Reverse geocoding for ({lat}, {lng}) rate limited, using coordinates")
        
        coordinate = Coordinate(lat, lng, (address or "").strip() or fallback)
        return coordinate if self._apply(seq, coordinate) else None

    def accept_direct_coordinate(self, lat: float, lng: float, label: str) -> Optional[Coordinate]:
        """
        Apply a coordinate with a known label, with no network call.
        
        Any pending debounced query is cancelled and any in-flight one
        is superseded, so typed text cannot overwrite this input.
        
        Returns:
            The applied coordinate, or None if out of range
        """
        error = coordinate_error(lat, lng)
        if error:
            self._reject(error)
            return None
        
        self._debouncer.cancel()
        coordinate = Coordinate(lat, lng, (label or "").strip() or format_coordinate_pair(lat, lng))
        self._apply(self._next_seq(), coordinate)
        return coordinate

    def accept_pin_drag(self, lat: float, lng: float) -> Optional[Coordinate]:
        """Apply a manually dragged pin, labelled with its coordinates."""
        label = "" if coordinate_error(lat, lng) else format_coordinate_pair(lat, lng)
        return self.accept_direct_coordinate(lat, lng, label)

    async def use_device_location(self, location: LocationProvider) -> Optional[Coordinate]:
        """
        Apply the device GPS fix, then reverse geocode it.
        
        Raises:
            PermissionDeniedError: If foreground location access is refused
            LocationUnavailableError: If the device has no fix
        """
        if not await location.request_permission():
            log_warning("Location permission denied")
            raise PermissionDeniedError(
                "location",
                "Please enable location access in your device settings to use GPS location."
            )
        
        lat, lng = await location.get_current_position()
        log_info(f"Device location fix: ({lat}, {lng})")
        return await self.resolve_from_coordinates(lat, lng)

    # ---- lifecycle --------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait for any pending or running debounced resolution."""
        await self._debouncer.wait_idle()

    def close(self) -> None:
        """
        Cancel the pending debounced resolution and supersede any lookup
        still in flight, so its late result is never applied.
        """
        self._debouncer.cancel()
        self._issued_seq += 1
        self._applied_seq = self._issued_seq

    def reset(self) -> None:
        """End the creation session: drop in-flight work, state and the cache."""
        self.close()
        self.latest_text = ""
        self.current = None
        self.last_rejection = None
        self.cache.clear_cache()
