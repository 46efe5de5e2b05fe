"""
Address -> coordinates resolution with ordered fallback.

Resolution order, stopping at the first hit:
1. Normalize the address (the normalized text is the cache key)
2. Chain cache (a cached miss also stops here)
3. Offline gazetteer
4. Network backends: Google Maps (if keyed) -> Nominatim -> PositionStack (if keyed)
5. Caller's default coordinate

``resolve`` never raises; an unresolvable address yields the default.
"""

import asyncio
from typing import Any, Iterable, Optional

import structlog

from ..config.settings import Settings
from ..models import Coordinates, Country
from ..resilience import FallbackChain, FallbackExhaustedError
from .backends import GeocoderBackend, GoogleMapsGeocoder, NominatimGeocoder, PositionStackGeocoder
from .cache import NOT_CACHED, GeocodeCache, RateLimiter
from .gazetteer import DEFAULT_GAZETTEER, TAIWAN_GAZETTEER, GazetteerResolver
from .normalize import extract_region_token, is_online_venue, normalize_address

logger = structlog.get_logger()

REGION_GAZETTEERS = {Country.JAPAN: DEFAULT_GAZETTEER, Country.TAIWAN: TAIWAN_GAZETTEER}
REGION_DEFAULTS = {Country.JAPAN: Coordinates.tokyo, Country.TAIWAN: Coordinates.taipei}


class GeocodingChain:
    """Gazetteer first, then network geocoders, then a default."""

    def __init__(
        self,
        backends: Iterable[GeocoderBackend] = (),
        gazetteer: GazetteerResolver = DEFAULT_GAZETTEER,
        cache: Optional[GeocodeCache] = None,
        default: Optional[Coordinates] = None,
    ):
        self.backends = list(backends)
        self.gazetteer = gazetteer
        self.cache = cache or GeocodeCache(name="chain")
        self.default = default or Coordinates.tokyo()
        self._strategies = FallbackChain(*(backend.geocode for backend in self.backends))
        self._key_locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        region: Country = Country.JAPAN,
        nominatim_limiter: Optional[RateLimiter] = None,
    ) -> "GeocodingChain":
        """Build the chain for one region; API keys decide which paid backends take part.

        Every backend is pinned to ``region`` (country code, bounding box and
        query suffixes), so an address is never answered from another country.
        """
        backends: list[GeocoderBackend] = []

        if settings.has_google_maps:
            backends.append(
                GoogleMapsGeocoder(
                    settings.google_maps_api_key,
                    timeout=settings.geocode_timeout,
                    region=region,
                    verify_region=settings.geocode_verify_region,
                )
            )

        backends.append(
            NominatimGeocoder(
                settings.nominatim_user_agent,
                min_interval=settings.nominatim_min_interval,
                timeout=settings.geocode_timeout,
                region=region,
                rate_limiter=nominatim_limiter,
            )
        )

        if settings.has_positionstack:
            backends.append(
                PositionStackGeocoder(
                    settings.positionstack_api_key,
                    timeout=settings.geocode_timeout,
                    region=region,
                )
            )

        logger.info("geocoding_chain_ready", region=region.value, backends=[b.name for b in backends])
        return cls(
            backends,
            gazetteer=REGION_GAZETTEERS.get(region, DEFAULT_GAZETTEER),
            default=REGION_DEFAULTS.get(region, Coordinates.tokyo)(),
            cache=GeocodeCache(max_entries=settings.geocode_cache_max_entries, name="chain"),
        )

    @classmethod
    def for_regions(
        cls,
        settings: Settings,
        regions: Iterable[Country] = (Country.JAPAN, Country.TAIWAN),
    ) -> dict[Country, "GeocodingChain"]:
        """One chain per region, all sharing a single Nominatim rate limiter."""
        limiter = RateLimiter(settings.nominatim_min_interval, name="nominatim")
        return {region: cls.from_settings(settings, region, nominatim_limiter=limiter) for region in regions}

    async def resolve(self, raw_address: Optional[str], default: Optional[Coordinates] = None) -> Coordinates:
        """Resolve an address, falling back to ``default`` (or the chain default)."""
        fallback = default or self.default
        try:
            found = await self.lookup(raw_address)
        except Exception as e:
            logger.error("geocode_failed", address=raw_address, error=str(e))
            return fallback
        return found or fallback

    async def lookup(self, raw_address: Optional[str]) -> Optional[Coordinates]:
        """Like ``resolve`` but returns None instead of a default."""
        if not raw_address or not raw_address.strip():
            return None

        key = normalize_address(raw_address)
        cached = self.cache.get(key)
        if cached is not NOT_CACHED:
            logger.debug("geocode_cache_hit", address=key, found=cached is not None)
            return cached

        # One lookup per key at a time; latecomers read the cache afterwards
        lock = self._key_locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                cached = self.cache.get(key)
                if cached is not NOT_CACHED:
                    return cached

                coords = await self._lookup_uncached(key)
                self.cache.put(key, coords)
                return coords
        finally:
            if not lock.locked():
                self._key_locks.pop(key, None)

    async def _lookup_uncached(self, key: str) -> Optional[Coordinates]:
        if is_online_venue(key):
            logger.debug("geocode_online_venue", address=key)
            return None

        coords = self.gazetteer.lookup(key)
        if coords is not None:
            logger.debug("gazetteer_hit", address=key, coordinates=str(coords))
            return coords

        if not self.backends:
            return None

        try:
            return await self._strategies.execute(key, extract_region_token(key))
        except FallbackExhaustedError as e:
            logger.info(
                "geocode_miss",
                address=key,
                strategies=e.names,
                last_error=str(e.last_error) if e.last_error else None,
            )
            return None

    def get_status(self) -> dict[str, Any]:
        return {
            "cache": self.cache.stats(),
            "gazetteer_entries": len(self.gazetteer),
            "backends": [
                {
                    "name": backend.name,
                    "cache": backend.cache.stats(),
                    "circuit": backend.breaker.get_status(),
                }
                for backend in self.backends
            ],
        }
