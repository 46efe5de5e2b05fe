"""
AWS Summit and AWS Community Day events.

Source: the directory search API behind aws.amazon.com event hubs.
Neither directory carries coordinates, so the city named in the location
or title is looked up in the world-city gazetteer.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from ..geocoding import WORLD_CITIES, GazetteerResolver
from ..matching import filter_by_keyword, is_blank
from ..models import Coordinates, Country, DataSource, Event, EventType, MapItem
from .base import ActivityProvider, clean_text, fetch_json, parse_datetime
from .url_validator import safe_link

logger = structlog.get_logger()

AWS_SEARCH_URL = "https://aws.amazon.com/api/dirs/items/search"
DEFAULT_EVENT_URL = "https://aws.amazon.com/events/summits/"
DEFAULT_COORDINATES = Coordinates(latitude=40.7128, longitude=-74.0060)  # New York
PAGE_SIZE = 50
DESCRIPTION_LIMIT = 500

TAIWAN_MARKERS = ("Taipei", "Taiwan")
JAPAN_MARKERS = ("Tokyo", "Osaka", "Japan")


@dataclass(frozen=True)
class AwsDirectory:
    label: str
    directory_id: str
    locale: str
    event_type: EventType
    fallback_description: str  # used when an item has no body
    tag_id: Optional[str] = None


SUMMITS = AwsDirectory(
    label="summit",
    directory_id="events-cards-interactive-summits-cards-interactive-events-summits-hub-interactive-cards1",
    locale="zh_TW",
    event_type=EventType.TECH_CONFERENCE,
    fallback_description="AWS Summit - Official AWS event",
)

COMMUNITY_DAYS = AwsDirectory(
    label="community-day",
    directory_id="developer-cards-interactive-dev-center-activities",
    locale="en_US",
    event_type=EventType.COMMUNITY_GATHERING,
    fallback_description="AWS Community Day - Community-led AWS event",
    tag_id="GLOBAL#local-tags-series#aws-community-days",
)


def country_from_title(title: Optional[str]) -> Country:
    if not title:
        return Country.DEFAULT
    if any(marker in title for marker in TAIWAN_MARKERS):
        return Country.TAIWAN
    if any(marker in title for marker in JAPAN_MARKERS):
        return Country.JAPAN
    return Country.DEFAULT


class AwsEventsProvider(ActivityProvider):
    name = "AWS Events"

    def __init__(
        self,
        timeout: float = 15.0,
        cities: GazetteerResolver = WORLD_CITIES,
        directories: tuple[AwsDirectory, ...] = (SUMMITS, COMMUNITY_DAYS),
    ):
        self.timeout = timeout
        self.cities = cities
        self.directories = directories

    async def _search(self, keyword: Optional[str]) -> list[MapItem]:
        # Global event lists; only worth showing for an explicit search
        if is_blank(keyword):
            return []

        events: list[MapItem] = []
        for directory in self.directories:
            events.extend(await self._fetch_directory(directory))
        return filter_by_keyword(events, keyword)

    async def _fetch_directory(self, directory: AwsDirectory) -> list[MapItem]:
        params = {
            "item.directoryId": directory.directory_id,
            "item.locale": directory.locale,
            "sort_by": "item.additionalFields.publishedDate",
            "sort_order": "asc",
            "size": PAGE_SIZE,
        }
        if directory.tag_id:
            params["tags.id"] = directory.tag_id

        try:
            data = await fetch_json("GET", AWS_SEARCH_URL, timeout=self.timeout, params=params)
        except Exception as e:
            # One directory failing should not hide the other
            logger.warning("aws_directory_failed", directory=directory.label, error=str(e))
            return []

        wrappers = data.get("items") or []
        logger.info("aws_directory_fetched", directory=directory.label, count=len(wrappers))

        async def transform(wrapper: dict) -> Optional[Event]:
            return self._to_event(wrapper.get("item") or {}, directory)

        return await self.build_items(wrappers, transform)

    def _to_event(self, item: dict, directory: AwsDirectory) -> Optional[Event]:
        fields = item.get("additionalFields") or {}
        title = clean_text(fields.get("title")) or clean_text(fields.get("heading"))
        if not title or not item.get("id"):
            return None

        return Event(
            id=f"aws-{directory.label}-{item['id']}",
            title=title,
            description=(
                clean_text(fields.get("body"), limit=DESCRIPTION_LIMIT, strip_html=True)
                or directory.fallback_description
            ),
            url=safe_link(fields.get("ctaLink")) or DEFAULT_EVENT_URL,
            coordinates=self._coordinates(fields),
            address=clean_text(fields.get("location")) or None,
            start_time=_start_time(fields),
            event_type=directory.event_type,
            source=DataSource.AWS_EVENTS,
            country=country_from_title(title),
        )

    def _coordinates(self, fields: dict) -> Coordinates:
        for text in (fields.get("location"), fields.get("title")):
            coords = self.cities.lookup(text)
            if coords is not None:
                return coords
        return DEFAULT_COORDINATES


def _start_time(fields: dict):
    date = (fields.get("date") or "").strip()
    if not date:
        return None
    time = (fields.get("time") or "").strip()
    if time:
        combined = parse_datetime(f"{date}T{time}")
        if combined is not None:
            return combined
    return parse_datetime(date)
