"""
Connpass event search.

API: https://connpass.com/about/api/v2/
Auth: API token (bearer)
Coverage: Japanese tech meetups and study groups
"""

from typing import Any, Optional

import structlog

from ..geocoding import GeocodingChain
from ..models import Coordinates, Country, DataSource, Event, EventType, MapItem
from .base import ActivityProvider, clean_text, fetch_json, join_address, parse_datetime, to_float
from .url_validator import safe_link

logger = structlog.get_logger()

CONNPASS_API_URL = "https://connpass.com/api/v2/events/"
RESULT_COUNT = 10


class ConnpassProvider(ActivityProvider):
    name = "Connpass"

    def __init__(
        self,
        api_token: Optional[str],
        geocoder: GeocodingChain,
        timeout: float = 15.0,
        count: int = RESULT_COUNT,
    ):
        self.api_token = api_token
        self.geocoder = geocoder
        self.timeout = timeout
        self.count = count

    async def _search(self, keyword: Optional[str]) -> list[MapItem]:
        params: dict[str, Any] = {"count": self.count, "order": 2}
        if keyword and keyword.strip():
            params["keyword"] = keyword.strip()

        headers = {}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        else:
            logger.warning("connpass_token_missing")

        data = await fetch_json(
            "GET", CONNPASS_API_URL, timeout=self.timeout, params=params, headers=headers
        )
        events = data.get("events") or []
        logger.info("connpass_fetched", count=len(events), keyword=keyword)

        return await self.build_items(events, self._to_event)

    async def _to_event(self, raw: dict) -> Event:
        event_id = raw.get("id", raw.get("event_id"))
        place = raw.get("place")
        address = raw.get("address")

        return Event(
            id=f"connpass-{event_id}",
            title=raw["title"],
            description=self._description(raw),
            url=safe_link(raw.get("url") or raw.get("event_url")),
            coordinates=await self._coordinates(raw),
            address=join_address(place, address),
            start_time=parse_datetime(raw.get("started_at")),
            end_time=parse_datetime(raw.get("ended_at")),
            event_type=EventType.TECH_MEETUP,
            source=DataSource.CONNPASS,
            country=Country.JAPAN,
        )

    @staticmethod
    def _description(raw: dict) -> str:
        catch = clean_text(raw.get("catch"))
        if catch:
            return catch
        return join_address(raw.get("place"), raw.get("address"), separator=" - ") or ""

    async def _coordinates(self, raw: dict) -> Coordinates:
        lat, lon = to_float(raw.get("lat")), to_float(raw.get("lon"))
        if lat is not None and lon is not None:
            return Coordinates(latitude=lat, longitude=lon)
        return await self.geocoder.resolve(raw.get("address") or raw.get("place"))
