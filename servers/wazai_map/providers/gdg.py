"""
Google Developer Groups (gdg.community.dev) upcoming events.

Active Taiwan and Japan chapters are loaded once, on first use; events are
kept only when they belong to one of those chapters, and are placed at the
chapter's coordinates.
"""

import asyncio
from typing import Optional

import structlog

from ..matching import filter_by_keyword, is_blank
from ..models import Coordinates, Country, DataSource, Event, EventType, MapItem
from .base import ActivityProvider, clean_text, fetch_json, parse_datetime, to_float
from .url_validator import safe_link

logger = structlog.get_logger()

GDG_API_URL = "https://gdg.community.dev/api"
TARGET_COUNTRIES = {"TW": Country.TAIWAN, "JP": Country.JAPAN}
PROXIMITY_KM = 10000
DESCRIPTION_LIMIT = 500


class GdgCommunityProvider(ActivityProvider):
    name = "GDG Community"

    def __init__(self, timeout: float = 15.0):
        self.timeout = timeout
        self.chapters: dict[int, dict] = {}
        self._chapters_lock: Optional[asyncio.Lock] = None

    async def _search(self, keyword: Optional[str]) -> list[MapItem]:
        if is_blank(keyword):
            return []

        await self.ensure_chapters()
        if not self.chapters:
            return []

        data = await fetch_json(
            "GET",
            f"{GDG_API_URL}/search/",
            timeout=self.timeout,
            params={
                "result_types": "upcoming_event",
                "order_by_proximity": "true",
                "proximity": PROXIMITY_KM,
            },
        )
        results = [r for r in data.get("results") or [] if self._chapter_of(r) is not None]
        logger.info("gdg_events_fetched", count=len(results))

        events = await self.build_items(results, self._to_event)
        return filter_by_keyword(events, keyword)

    async def ensure_chapters(self) -> None:
        """Load the chapter table once; an empty or failed load is retried next time."""
        if self.chapters:
            return
        if self._chapters_lock is None:
            self._chapters_lock = asyncio.Lock()

        async with self._chapters_lock:
            if self.chapters:
                return
            regions = await fetch_json(
                "GET",
                f"{GDG_API_URL}/chapter_region",
                timeout=self.timeout,
                params={"chapters": "true"},
            )
            for region in regions or []:
                for chapter in region.get("chapters") or []:
                    if _is_target_chapter(chapter):
                        self.chapters[chapter["id"]] = chapter

            logger.info(
                "gdg_chapters_loaded",
                total=len(self.chapters),
                taiwan=sum(1 for c in self.chapters.values() if c["country"].upper() == "TW"),
                japan=sum(1 for c in self.chapters.values() if c["country"].upper() == "JP"),
            )

    def _chapter_of(self, raw: dict) -> Optional[dict]:
        chapter_id = (raw.get("chapter") or {}).get("id")
        return self.chapters.get(chapter_id) if chapter_id is not None else None

    async def _to_event(self, raw: dict) -> Event:
        chapter = self._chapter_of(raw) or {}

        return Event(
            id=f"gdg-{raw['id']}",
            title=raw["title"],
            description=(
                clean_text(raw.get("description_short"), limit=DESCRIPTION_LIMIT)
                or "GDG Community Event"
            ),
            url=safe_link(raw.get("url")),
            coordinates=_chapter_coordinates(chapter),
            address=clean_text(chapter.get("city")) or None,
            start_time=parse_datetime(raw.get("start_date")),
            end_time=parse_datetime(raw.get("end_date")),
            event_type=EventType.COMMUNITY_GATHERING,
            source=DataSource.GOOGLE_COMMUNITY,
            country=TARGET_COUNTRIES.get((chapter.get("country") or "").upper(), Country.DEFAULT),
        )


def _is_target_chapter(chapter: dict) -> bool:
    return (
        chapter.get("id") is not None
        and (chapter.get("country") or "").upper() in TARGET_COUNTRIES
        and bool(chapter.get("active"))
    )


def _chapter_coordinates(chapter: dict) -> Coordinates:
    lat, lon = to_float(chapter.get("latitude")), to_float(chapter.get("longitude"))
    if lat is None or lon is None:
        return Coordinates.taipei()
    return Coordinates(latitude=lat, longitude=lon)
