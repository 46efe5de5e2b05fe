"""
Doorkeeper event search.

API: https://www.doorkeeper.jp/developer/api
Auth: API token (bearer), required
Paging: 25 events per page, at most PAGES_TO_FETCH pages
"""

from typing import Any, Optional

import structlog

from ..geocoding import GeocodingChain
from ..matching import filter_by_keyword, is_blank
from ..models import Coordinates, Country, DataSource, Event, EventType, MapItem
from .base import ActivityProvider, clean_text, fetch_json, join_address, parse_datetime, to_float
from .url_validator import safe_link

logger = structlog.get_logger()

DOORKEEPER_API_URL = "https://api.doorkeeper.jp/events"
PAGES_TO_FETCH = 4
RESULTS_PER_PAGE = 25
DESCRIPTION_LIMIT = 300


class DoorkeeperProvider(ActivityProvider):
    name = "Doorkeeper"

    def __init__(
        self,
        api_token: Optional[str],
        geocoder: GeocodingChain,
        timeout: float = 15.0,
        pages: int = PAGES_TO_FETCH,
    ):
        self.api_token = api_token
        self.geocoder = geocoder
        self.timeout = timeout
        self.pages = pages

    async def _search(self, keyword: Optional[str]) -> list[MapItem]:
        if not self.api_token:
            logger.warning("doorkeeper_token_missing")
            return []

        if is_blank(keyword):
            return await self._fetch_events(None)

        found = await self._fetch_events(keyword)
        if found:
            return found

        # The API search is strict; fall back to filtering the latest events
        logger.debug("doorkeeper_local_filter_fallback", keyword=keyword)
        return filter_by_keyword(await self._fetch_events(None), keyword)

    async def _fetch_events(self, keyword: Optional[str]) -> list[MapItem]:
        items: list[MapItem] = []

        for page in range(1, self.pages + 1):
            try:
                wrappers = await self._fetch_page(page, keyword)
            except Exception as e:
                logger.warning("doorkeeper_page_failed", page=page, error=str(e))
                break

            if not wrappers:
                break

            events = [w.get("event") for w in wrappers if isinstance(w, dict)]
            events = [e for e in events if e and (e.get("title") or "").strip()]
            items.extend(await self.build_items(events, self._to_event))

            if len(wrappers) < RESULTS_PER_PAGE:
                break

        logger.info("doorkeeper_fetched", count=len(items), keyword=keyword)
        return items

    async def _fetch_page(self, page: int, keyword: Optional[str]) -> list[dict]:
        params: dict[str, Any] = {"page": page, "sort": "published_at", "locale": "ja"}
        if keyword and keyword.strip():
            params["q"] = keyword.strip()

        data = await fetch_json(
            "GET",
            DOORKEEPER_API_URL,
            timeout=self.timeout,
            params=params,
            headers={"Authorization": f"Bearer {self.api_token}"},
        )
        return data if isinstance(data, list) else []

    async def _to_event(self, raw: dict) -> Event:
        return Event(
            id=f"doorkeeper-{raw['id']}",
            title=raw["title"],
            description=clean_text(raw.get("description"), limit=DESCRIPTION_LIMIT, strip_html=True),
            url=safe_link(raw.get("public_url")),
            coordinates=await self._coordinates(raw),
            address=join_address(raw.get("venue_name"), raw.get("address")),
            start_time=parse_datetime(raw.get("starts_at")),
            end_time=parse_datetime(raw.get("ends_at")),
            event_type=EventType.TECH_MEETUP,
            source=DataSource.DOORKEEPER,
            country=Country.JAPAN,
        )

    async def _coordinates(self, raw: dict) -> Coordinates:
        lat, lon = to_float(raw.get("lat")), to_float(raw.get("long"))
        if lat is not None and lon is not None:
            return Coordinates(latitude=lat, longitude=lon)
        return await self.geocoder.resolve(raw.get("address") or raw.get("venue_name"))
