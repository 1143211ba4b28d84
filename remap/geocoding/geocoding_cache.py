"""
Session-scoped cache of resolved geocoding queries.

Entries are keyed by the trimmed, lower-cased query text and are never
expired or mutated while the session lives. There is no eviction policy,
so a cache reused across sessions grows without bound.
"""

import time
from dataclasses import dataclass
from typing import Dict, Optional

from ..config.logger_module import log_debug, log_info
from .geocoding_models import Coordinate


def normalize_query(query: str) -> str:
    """Cache key for a query: surrounding whitespace removed, lower-cased."""
    return (query or "").strip().lower()


@dataclass(frozen=True)
class GeocodeCacheEntry:
    """One resolved query."""
    normalized_query: str
    coordinate: Coordinate
    resolved_at: float

    @property
    def address(self) -> str:
        return self.coordinate.address


class GeocodeCache:
    """
    In-memory map from normalized query text to a resolved coordinate.
    
    Lookups are case-insensitive and ignore surrounding whitespace.
    An insert for a key that is already present keeps the original entry.
    """

    def __init__(self):
        self._entries: Dict[str, GeocodeCacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def lookup(self, query: str) -> Optional[GeocodeCacheEntry]:
        """
        Find the cached resolution for a query.
        
        Args:
            query: Raw query text
            
        Returns:
            The cache entry, or None on a miss
        """
        key = normalize_query(query)
        entry = self._entries.get(key)
        
        if entry is None:
            self._misses += 1
            log_debug(f"Geocode cache miss: '{key}'")
            return None
        
        self._hits += 1
        log_info(f"Using cached geocoding result for '{key}'")
        return entry

    def insert(self, query: str, coordinate: Coordinate) -> GeocodeCacheEntry:
        """
        Record the resolution of a query.
        
        Args:
            query: Raw query text the coordinate was resolved from
            coordinate: Resolved coordinate including its display address
            
        Returns:
            The stored entry (the existing one if the key was already cached)
        """
        key = normalize_query(query)
        existing = self._entries.get(key)
        if existing is not None:
            log_debug(f"Geocode cache already holds '{key}', keeping original entry")
            return existing
        
        entry = GeocodeCacheEntry(
            normalized_query=key,
            coordinate=coordinate,
            resolved_at=time.time(),
        )
        self._entries[key] = entry
        log_info(f"Cached geocoding result for '{key}' -> ({coordinate.lat}, {coordinate.lng})")
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, query: str) -> bool:
        return normalize_query(query) in self._entries

    def get_cache_stats(self) -> Dict[str, int]:
        """Entry count plus hit/miss counters since the session started."""
        return {
            "total_entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
        }

    def clear_cache(self) -> None:
        """Drop every entry, used when a creation session ends."""
        log_info(f"Clearing geocode cache ({len(self._entries)} entries)")
        self._entries.clear()
