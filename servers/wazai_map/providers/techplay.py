"""
TechPlay event scraper.

Cost: Free (httpx + BeautifulSoup)
Method:
1. Scrape the listing pages for links to https://techplay.jp/event/<id>
2. Fetch every detail page (bounded concurrency) and read its JSON-LD block

TechPlay has no public API; the JSON-LD embedded for search engines is the
most stable structured data on the page.
"""

import asyncio
import json
import re
from typing import Any, Optional

import structlog
from bs4 import BeautifulSoup

from ..geocoding import GeocodingChain, is_online_venue
from ..matching import filter_by_keyword
from ..models import Coordinates, Country, DataSource, Event, EventType, MapItem
from ..resilience import with_default
from .base import ActivityProvider, clean_text, fetch_text, join_address, parse_datetime
from .url_validator import UnsafeUrlError, validate_url

logger = structlog.get_logger()

EVENT_LIST_URL = "https://techplay.jp/event"
EVENT_URL_PATTERN = re.compile(r"^https://techplay\.jp/event/(\d+)/?$")
ALLOWED_DOMAINS = {"techplay.jp"}
ONLINE_INDICATOR = "オンライン"
DESCRIPTION_LIMIT = 300
DETAIL_CONCURRENCY = 8


def extract_event_urls(html: str) -> list[str]:
    """Detail page links on a listing page, first occurrence order."""
    soup = BeautifulSoup(html, "html.parser")
    urls: list[str] = []
    for link in soup.select('a[href^="https://techplay.jp/event/"]'):
        href = link.get("href", "").strip()
        if EVENT_URL_PATTERN.match(href) and href not in urls:
            urls.append(href)
    return urls


def extract_json_ld(html: str) -> Optional[dict]:
    """First schema.org Event object embedded in the page, if any."""
    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except json.JSONDecodeError:
            continue
        candidates = data if isinstance(data, list) else [data]
        for candidate in candidates:
            if isinstance(candidate, dict) and "name" in candidate:
                return candidate
    return None


class TechPlayProvider(ActivityProvider):
    name = "TechPlay"

    def __init__(
        self,
        geocoder: GeocodingChain,
        pages: int = 10,
        timeout: float = 10.0,
        concurrency: int = DETAIL_CONCURRENCY,
    ):
        self.geocoder = geocoder
        self.pages = pages
        self.timeout = timeout
        self.concurrency = concurrency

    async def _search(self, keyword: Optional[str]) -> list[MapItem]:
        urls = await self._collect_event_urls()
        events = await self._fetch_details(urls)
        logger.info("techplay_fetched", pages=self.pages, links=len(urls), events=len(events))
        return filter_by_keyword(events, keyword)

    async def _collect_event_urls(self) -> list[str]:
        urls: list[str] = []
        for page in range(1, self.pages + 1):
            try:
                html = await fetch_text(EVENT_LIST_URL, timeout=self.timeout, params={"page": page})
            except Exception as e:
                logger.warning("techplay_page_failed", page=page, error=str(e))
                continue
            for url in extract_event_urls(html):
                if url not in urls:
                    urls.append(url)
        return urls

    async def _fetch_details(self, urls: list[str]) -> list[MapItem]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch_one(url: str) -> Optional[Event]:
            async with semaphore:
                return await with_default(self._fetch_event, None, url)

        results = await asyncio.gather(*(fetch_one(url) for url in urls))

        # Same event linked twice keeps its first position
        by_id: dict[str, Event] = {}
        for event in results:
            if event is not None and event.id not in by_id:
                by_id[event.id] = event
        return list(by_id.values())

    async def _fetch_event(self, url: str) -> Optional[Event]:
        try:
            url = validate_url(url, allowed_domains=ALLOWED_DOMAINS)
        except UnsafeUrlError as e:
            logger.warning("techplay_url_rejected", url=url, error=str(e))
            return None

        json_ld = extract_json_ld(await fetch_text(url, timeout=self.timeout))
        if json_ld is None:
            return None
        items = await self.build_items([(url, json_ld)], self._to_event)
        return items[0] if items else None

    async def _to_event(self, page: tuple[str, dict]) -> Optional[Event]:
        url, json_ld = page
        title = clean_text(json_ld.get("name"))
        if not title:
            return None

        coordinates, address = await self._location(json_ld.get("location"))
        event_id = EVENT_URL_PATTERN.match(url).group(1)

        return Event(
            id=f"techplay-{event_id}",
            title=title,
            description=clean_text(json_ld.get("description"), limit=DESCRIPTION_LIMIT),
            url=url,
            coordinates=coordinates,
            address=address,
            start_time=parse_datetime(json_ld.get("startDate")),
            end_time=parse_datetime(json_ld.get("endDate")),
            event_type=EventType.TECH_MEETUP,
            source=DataSource.TECHPLAY,
            country=Country.JAPAN,
        )

    async def _location(self, location: Any) -> tuple[Coordinates, Optional[str]]:
        """Coordinates and display address for a JSON-LD ``location``."""
        if isinstance(location, list):
            location = location[0] if location else None
        if not isinstance(location, dict):
            return self.geocoder.default, None

        if location.get("@type") == "VirtualLocation":
            return self.geocoder.default, ONLINE_INDICATOR

        venue = clean_text(location.get("name")) or None
        address_text = _address_text(location.get("address"))
        display = join_address(venue, address_text)

        if venue and is_online_venue(venue):
            return self.geocoder.default, ONLINE_INDICATOR

        # Street address first, it is more precise than the venue name
        if address_text:
            return await self.geocoder.resolve(address_text), display
        if venue:
            return await self.geocoder.resolve(venue), display
        return self.geocoder.default, display


def _address_text(address: Any) -> Optional[str]:
    if isinstance(address, str):
        return clean_text(address) or None
    if not isinstance(address, dict):
        return None
    for key in ("name", "streetAddress", "addressLocality"):
        text = clean_text(address.get(key))
        if text:
            return text
    return None
