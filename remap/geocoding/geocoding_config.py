"""
Configuration for the geocoding module.

Defines the provider choice, the client identifier sent with every
request, and the timing values for debouncing and self-throttling.
"""

from dataclasses import dataclass
from typing import Optional

from ..config.config_module import get_config, get_config_float, get_config_int


SUPPORTED_PROVIDERS = ("nominatim", "google")


@dataclass
class GeocodingConfig:
    """Settings for forward/reverse geocoding in a pin creation session."""
    
    # Which provider adapter to build: "nominatim" or "google"
    provider: str = "nominatim"
    
    # Distinguishing client identifier (Nominatim usage policy)
    user_agent: str = "ReMapApp/1.0.0 (memory-mapping-app; contact@remap.app)"
    
    # Appended to every forward query to bias results to the home region
    region_bias: str = ", Melbourne, Australia"
    
    # Quiet period before a typed query is resolved
    debounce_seconds: float = 1.0
    
    # Minimum gap between outbound provider requests
    min_request_interval_seconds: float = 1.0
    
    # Queries shorter than this (after trimming) are ignored
    min_query_length: int = 3
    
    # Transport timeout for provider requests
    request_timeout: int = 10
    
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    google_api_key: Optional[str] = None
    
    def __post_init__(self):
        """Validate configuration values."""
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Invalid provider: {self.provider}. "
                f"Must be one of {', '.join(SUPPORTED_PROVIDERS)}"
            )
        
        if not self.user_agent or not self.user_agent.strip():
            raise ValueError("user_agent cannot be empty")
        
        if self.debounce_seconds < 0:
            raise ValueError(
                f"debounce_seconds cannot be negative, got {self.debounce_seconds}"
            )
        
        if not 1.0 <= self.min_request_interval_seconds <= 3.0:
            raise ValueError(
                f"min_request_interval_seconds must be between 1 and 3, "
                f"got {self.min_request_interval_seconds}"
            )
        
        if self.min_query_length < 1:
            raise ValueError(
                f"min_query_length must be at least 1, got {self.min_query_length}"
            )
        
        if self.provider == "google" and not self.google_api_key:
            raise ValueError("google_api_key is required for the google provider")
    
    @classmethod
    def from_env(cls) -> "GeocodingConfig":
        """Build the configuration from environment variables."""
        defaults = cls()
        provider = get_config("REMAP_GEOCODER", defaults.provider)
        return cls(
            provider=provider,
            user_agent=get_config("REMAP_GEOCODER_USER_AGENT", defaults.user_agent),
            region_bias=get_config("REMAP_REGION_BIAS", defaults.region_bias),
            debounce_seconds=get_config_float(
                "REMAP_DEBOUNCE_SECONDS", defaults.debounce_seconds
            ),
            min_request_interval_seconds=get_config_float(
                "REMAP_RATE_LIMIT_SECONDS", defaults.min_request_interval_seconds
            ),
            min_query_length=get_config_int(
                "REMAP_MIN_QUERY_LENGTH", defaults.min_query_length
            ),
            google_api_key=(
                get_config("GOOGLE_MAPS_API_KEY") if provider == "google" else None
            ),
        )
