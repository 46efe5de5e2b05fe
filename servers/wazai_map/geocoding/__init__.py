"""Address resolution: normalization, gazetteer, network geocoders."""

from .backends import (
    GeocoderBackend,
    GeocoderError,
    GoogleMapsGeocoder,
    NominatimGeocoder,
    PositionStackGeocoder,
)
from .cache import NOT_CACHED, GeocodeCache, RateLimiter
from .chain import GeocodingChain
from .gazetteer import (
    DEFAULT_GAZETTEER,
    JAPAN_GAZETTEER,
    TAIWAN_GAZETTEER,
    WORLD_CITIES,
    GazetteerEntry,
    GazetteerResolver,
    Tier,
)
from .normalize import extract_region_token, is_online_venue, normalize_address

__all__ = [
    "GeocodingChain",
    "GeocoderBackend",
    "GeocoderError",
    "GoogleMapsGeocoder",
    "NominatimGeocoder",
    "PositionStackGeocoder",
    "GeocodeCache",
    "RateLimiter",
    "NOT_CACHED",
    "GazetteerResolver",
    "GazetteerEntry",
    "Tier",
    "DEFAULT_GAZETTEER",
    "JAPAN_GAZETTEER",
    "TAIWAN_GAZETTEER",
    "WORLD_CITIES",
    "normalize_address",
    "extract_region_token",
    "is_online_venue",
]
