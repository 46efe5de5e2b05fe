"""
Network geocoder backends.

- GoogleMapsGeocoder: Paid, most accurate for Japanese addresses (needs key)
- NominatimGeocoder: Free OpenStreetMap service, max 1 request per second
- PositionStackGeocoder: Paid alternative (needs key)

Each backend keeps its own cache, rate limiter and circuit breaker, and
rejects answers that fall outside the target country's bounding box.
"""

import unicodedata
from dataclasses import dataclass
from typing import Iterable, Optional

import httpx
import structlog

from ..models import COUNTRY_BOUNDS, Coordinates, Country
from ..resilience import CircuitBreaker, CircuitBreakerOpenError
from .cache import NOT_CACHED, GeocodeCache, RateLimiter
from .normalize import strip_building

logger = structlog.get_logger()


GOOGLE_MAPS_URL = "https://maps.googleapis.com/maps/api/geocode/json"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
POSITIONSTACK_URL = "http://api.positionstack.com/v1/forward"

COUNTRY_CODES = {Country.JAPAN: "jp", Country.TAIWAN: "tw"}
LANGUAGES = {Country.JAPAN: "ja", Country.TAIWAN: "zh-TW"}

# Appended to a query that returned nothing, in order
NATIONALITY_SUFFIXES = {
    Country.JAPAN: (" 東京", " 日本"),
    Country.TAIWAN: (" 台灣",),
}


class GeocoderError(Exception):
    """The upstream answered, but with an error status (quota, denied key...)."""


@dataclass(frozen=True)
class GeocodeResult:
    coordinates: Coordinates
    formatted_address: Optional[str] = None


def _fold(text: str) -> str:
    return unicodedata.normalize("NFKC", text).casefold()


class GeocoderBackend:
    """Base class: caching, rate limiting, breaker and result validation.

    Subclasses implement ``_request`` for a single query string.
    A backend returns None for "no usable result"; transport and API errors
    are raised so the caller can log them and move on.
    """

    name = "geocoder"

    def __init__(
        self,
        timeout: float = 10.0,
        min_interval: float = 0.0,
        region: Country = Country.JAPAN,
        verify_region: bool = False,
        cache: Optional[GeocodeCache] = None,
        breaker: Optional[CircuitBreaker] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.timeout = timeout
        self.region = region
        self.verify_region = verify_region
        self.bounds = COUNTRY_BOUNDS.get(region)
        self.cache = cache or GeocodeCache(name=self.name)
        self.rate_limiter = rate_limiter or RateLimiter(min_interval, name=self.name)
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=5, recovery_timeout=300, name=self.name
        )

    async def geocode(self, query: str, region_token: Optional[str] = None) -> Optional[Coordinates]:
        """Resolve ``query``; None when nothing acceptable was found.

        Raises:
            httpx.HTTPError, GeocoderError: On upstream failure (not cached)
        """
        cached = self.cache.get(query)
        if cached is not NOT_CACHED:
            return cached

        try:
            coords = await self.breaker.call(self._resolve(query, region_token))
        except CircuitBreakerOpenError:
            logger.debug("geocoder_skipped_open_circuit", geocoder=self.name, query=query)
            return None

        self.cache.put(query, coords)
        return coords

    async def _resolve(self, query: str, region_token: Optional[str]) -> Optional[Coordinates]:
        for candidate in self.candidates(query):
            await self.rate_limiter.wait()
            logger.debug("geocoding", geocoder=self.name, query=candidate)

            result = await self._request(candidate)
            if result is None:
                continue
            if self._accept(result, region_token, candidate):
                logger.info(
                    "geocoded",
                    geocoder=self.name,
                    query=candidate,
                    coordinates=str(result.coordinates),
                )
                return result.coordinates

        logger.debug("geocode_no_result", geocoder=self.name, query=query)
        return None

    def candidates(self, query: str) -> Iterable[str]:
        """Query strings to try, in order."""
        return (query,)

    def _accept(self, result: GeocodeResult, region_token: Optional[str], query: str) -> bool:
        if self.bounds is not None and not self.bounds.contains(result.coordinates):
            logger.warning(
                "geocode_out_of_bounds",
                geocoder=self.name,
                query=query,
                coordinates=str(result.coordinates),
                region=self.region.value,
            )
            return False

        if self.verify_region and region_token and result.formatted_address:
            if _fold(region_token) not in _fold(result.formatted_address):
                logger.warning(
                    "geocode_region_mismatch",
                    geocoder=self.name,
                    query=query,
                    expected=region_token,
                    formatted_address=result.formatted_address,
                )
                return False

        return True

    async def _request(self, query: str) -> Optional[GeocodeResult]:
        raise NotImplementedError


class GoogleMapsGeocoder(GeocoderBackend):
    """Google Maps Geocoding API, the premium strategy."""

    name = "google_maps"

    def __init__(self, api_key: str, **kwargs):
        kwargs.setdefault("verify_region", True)
        super().__init__(**kwargs)
        self.api_key = api_key

    async def _request(self, query: str) -> Optional[GeocodeResult]:
        params = {
            "address": query,
            "key": self.api_key,
            "language": LANGUAGES.get(self.region, "en"),
        }
        if self.region in COUNTRY_CODES:
            params["region"] = COUNTRY_CODES[self.region]

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(GOOGLE_MAPS_URL, params=params)
            response.raise_for_status()
            data = response.json()

        status = data.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            raise GeocoderError(f"Google Maps status {status}: {data.get('error_message', '')}")

        results = data.get("results") or []
        if not results:
            return None

        first = results[0]
        location = first["geometry"]["location"]
        return GeocodeResult(
            coordinates=Coordinates(latitude=float(location["lat"]), longitude=float(location["lng"])),
            formatted_address=first.get("formatted_address"),
        )


class NominatimGeocoder(GeocoderBackend):
    """OpenStreetMap Nominatim, the free default.

    Usage policy: at most one request per second and an identifying
    User-Agent header.
    """

    name = "nominatim"

    def __init__(self, user_agent: str, min_interval: float = 1.1, **kwargs):
        super().__init__(min_interval=min_interval, **kwargs)
        self.user_agent = user_agent

    def candidates(self, query: str) -> Iterable[str]:
        yield query
        for suffix in NATIONALITY_SUFFIXES.get(self.region, ()):
            yield query + suffix

    async def _request(self, query: str) -> Optional[GeocodeResult]:
        params = {"q": query, "format": "json", "limit": 1}
        if self.region in COUNTRY_CODES:
            params["countrycodes"] = COUNTRY_CODES[self.region]

        async with httpx.AsyncClient(
            timeout=self.timeout, headers={"User-Agent": self.user_agent}
        ) as client:
            response = await client.get(NOMINATIM_URL, params=params)
            response.raise_for_status()
            results = response.json()

        if not isinstance(results, list) or not results:
            return None

        first = results[0]
        return GeocodeResult(
            coordinates=Coordinates(latitude=float(first["lat"]), longitude=float(first["lon"])),
            formatted_address=first.get("display_name"),
        )


class PositionStackGeocoder(GeocoderBackend):
    """PositionStack forward geocoding, the alternate paid strategy.

    Building names and floors confuse it, so they are stripped first.
    """

    name = "positionstack"

    def __init__(self, api_key: str, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    def candidates(self, query: str) -> Iterable[str]:
        stripped = strip_building(query)
        return (stripped or query,)

    async def _request(self, query: str) -> Optional[GeocodeResult]:
        params = {"access_key": self.api_key, "query": query, "limit": 1}
        if self.region in COUNTRY_CODES:
            params["country"] = COUNTRY_CODES[self.region].upper()

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(POSITIONSTACK_URL, params=params)
            response.raise_for_status()
            data = response.json()

        if "error" in data:
            raise GeocoderError(f"PositionStack error: {data['error']}")

        results = data.get("data") or []
        first = results[0] if results else None
        if not isinstance(first, dict) or first.get("latitude") is None:
            return None

        return GeocodeResult(
            coordinates=Coordinates(
                latitude=float(first["latitude"]), longitude=float(first["longitude"])
            ),
            formatted_address=first.get("label"),
        )
