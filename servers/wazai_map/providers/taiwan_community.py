"""
Curated Taiwan tech community events and places, read from a YAML file.

File layout::

    events:
      - id: pycon-tw-2025
        title: PyCon Taiwan 2025
        latitude: 25.0216
        longitude: 121.5354
        start: 2025-09-06T09:00:00
        type: CONFERENCE
    places:
      - id: ...
        place_type: COWORKING_SPACE
        business_hours: "Mon-Fri: 09:00-18:00"

Entries without coordinates are geocoded from their address (default
Taipei). An entry with out-of-range coordinates is dropped on its own.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional, Union

import structlog
import yaml

from ..geocoding import GeocodingChain
from ..matching import filter_by_keyword
from ..models import Coordinates, Country, DataSource, Event, EventType, MapItem, Place, PlaceType
from .base import ActivityProvider, clean_text, parse_datetime, to_float
from .url_validator import safe_link

logger = structlog.get_logger()

DEFAULT_DURATION = timedelta(hours=2)


class TaiwanTechCommunityProvider(ActivityProvider):
    name = "Taiwan Tech Community"

    def __init__(self, path: Union[str, Path], geocoder: Optional[GeocodingChain] = None):
        self.path = Path(path)
        self.geocoder = geocoder
        self.items: list[MapItem] = []

    async def _search(self, keyword: Optional[str]) -> list[MapItem]:
        # Reload while empty, so a file added or fixed later is picked up
        if not self.items:
            self.items = await self.load()
        return filter_by_keyword(self.items, keyword)

    async def load(self) -> list[MapItem]:
        data = self._read_file()
        if not data:
            return []

        items: list[MapItem] = []
        items.extend(await self.build_items(data.get("events") or [], self._to_event))
        items.extend(await self.build_items(data.get("places") or [], self._to_place))
        logger.info("taiwan_community_loaded", path=str(self.path), count=len(items))
        return items

    def _read_file(self) -> Optional[dict]:
        if not self.path.exists():
            logger.warning("taiwan_community_file_missing", path=str(self.path))
            return None
        try:
            with self.path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error("taiwan_community_file_invalid", path=str(self.path), error=str(e))
            return None
        if not isinstance(data, dict):
            logger.warning("taiwan_community_file_empty", path=str(self.path))
            return None
        return data

    async def _to_event(self, raw: dict) -> Event:
        start = _as_datetime(raw.get("start"))
        end = _as_datetime(raw.get("end"))
        if end is None and start is not None:
            end = start + DEFAULT_DURATION

        return Event(
            **await self._common_fields(raw),
            start_time=start,
            end_time=end,
            event_type=_enum_value(EventType, raw.get("type"), EventType.CONFERENCE),
        )

    async def _to_place(self, raw: dict) -> Place:
        return Place(
            **await self._common_fields(raw),
            business_hours=clean_text(raw.get("business_hours")) or None,
            place_type=_enum_value(PlaceType, raw.get("place_type"), PlaceType.OTHER),
        )

    async def _common_fields(self, raw: dict) -> dict[str, Any]:
        return {
            "id": str(raw["id"]),
            "title": str(raw["title"]),
            "description": clean_text(raw.get("description")),
            "url": safe_link(raw.get("url")),
            "coordinates": await self._coordinates(raw),
            "address": clean_text(raw.get("address")) or None,
            "source": DataSource.TAIWAN_TECH_COMMUNITY,
            "country": Country.TAIWAN,
        }

    async def _coordinates(self, raw: dict) -> Coordinates:
        lat, lon = to_float(raw.get("latitude")), to_float(raw.get("longitude"))
        if lat is not None and lon is not None:
            return Coordinates(latitude=lat, longitude=lon)
        if self.geocoder is not None and raw.get("address"):
            return await self.geocoder.resolve(raw["address"], default=Coordinates.taipei())
        return Coordinates.taipei()


def _as_datetime(value: Any) -> Optional[datetime]:
    # PyYAML already turns unquoted timestamps into datetime objects
    if isinstance(value, datetime):
        return value
    if value is None:
        return None
    return parse_datetime(str(value))


def _enum_value(enum_type, value: Any, default):
    if value is None:
        return default
    try:
        return enum_type(str(value).strip().upper())
    except ValueError:
        logger.debug("unknown_enum_value", enum=enum_type.__name__, value=value)
        return default
