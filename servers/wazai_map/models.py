"""
Pydantic models for map items and search results.

These models define the core data types used throughout the service:
- Coordinates: Validated latitude/longitude value object
- Event / Place: The two kinds of MapItem that appear on the map
- ProviderStats / SearchReport: Outcome of a fan-out search
"""

import math
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


EARTH_RADIUS_KM = 6371.0


class InvalidCoordinateError(Exception):
    """Raised when a latitude/longitude pair is outside the valid range."""

    def __init__(self, latitude: float, longitude: float):
        super().__init__(
            f"Coordinates out of range: latitude={latitude}, longitude={longitude}"
        )
        self.latitude = latitude
        self.longitude = longitude


class Coordinates(BaseModel):
    """Geographic coordinates (immutable)."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    @model_validator(mode="after")
    def _check_range(self) -> "Coordinates":
        # Not a ValueError on purpose: pydantic would wrap it in ValidationError
        if not -90.0 <= self.latitude <= 90.0 or not -180.0 <= self.longitude <= 180.0:
            raise InvalidCoordinateError(self.latitude, self.longitude)
        return self

    @classmethod
    def of(cls, latitude: float, longitude: float) -> "Coordinates":
        return cls(latitude=latitude, longitude=longitude)

    @classmethod
    def tokyo(cls) -> "Coordinates":
        return cls(latitude=35.6812, longitude=139.7671)

    @classmethod
    def taipei(cls) -> "Coordinates":
        return cls(latitude=25.0330, longitude=121.5654)

    @classmethod
    def kaohsiung(cls) -> "Coordinates":
        return cls(latitude=22.6273, longitude=120.3014)

    @classmethod
    def taichung(cls) -> "Coordinates":
        return cls(latitude=24.1477, longitude=120.6736)

    def distance_to(self, other: "Coordinates") -> float:
        """Great-circle distance to another point in kilometers (Haversine)."""
        lat1 = math.radians(self.latitude)
        lat2 = math.radians(other.latitude)
        d_lat = lat2 - lat1
        d_lon = math.radians(other.longitude - self.longitude)

        a = (
            math.sin(d_lat / 2) ** 2
            + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        return EARTH_RADIUS_KM * c

    def __str__(self) -> str:
        return f"({self.latitude:.4f}, {self.longitude:.4f})"


class BoundingBox(BaseModel):
    """Rectangular lat/lon area used to sanity-check geocoder answers."""

    model_config = ConfigDict(frozen=True)

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, coords: Coordinates) -> bool:
        return (
            self.min_lat <= coords.latitude <= self.max_lat
            and self.min_lon <= coords.longitude <= self.max_lon
        )


class DataSource(str, Enum):
    """Identifies which upstream a map item came from."""

    CONNPASS = "CONNPASS"
    TAIWAN_TECH_COMMUNITY = "TAIWAN_TECH_COMMUNITY"
    GOOGLE_COMMUNITY = "GOOGLE_COMMUNITY"
    AWS_EVENTS = "AWS_EVENTS"
    MEETUP = "MEETUP"
    TECHPLAY = "TECHPLAY"
    DOORKEEPER = "DOORKEEPER"
    INTERNAL_DATABASE = "INTERNAL_DATABASE"
    USER_SUBMITTED = "USER_SUBMITTED"


class Country(str, Enum):
    """Country/region classification of a map item."""

    TAIWAN = "TAIWAN"
    JAPAN = "JAPAN"
    DEFAULT = "DEFAULT"  # Anywhere else


class EventType(str, Enum):
    TECH_MEETUP = "TECH_MEETUP"
    CONFERENCE = "CONFERENCE"
    TECH_CONFERENCE = "TECH_CONFERENCE"  # AWS Summit, Google I/O, etc.
    WORKSHOP = "WORKSHOP"
    COMMUNITY_GATHERING = "COMMUNITY_GATHERING"
    STUDY_GROUP = "STUDY_GROUP"
    HACKATHON = "HACKATHON"


class PlaceType(str, Enum):
    CLINIC = "CLINIC"
    HOSPITAL = "HOSPITAL"
    CAFE = "CAFE"
    COWORKING_SPACE = "COWORKING_SPACE"
    RESTAURANT = "RESTAURANT"
    LIBRARY = "LIBRARY"
    COMMUNITY_CENTER = "COMMUNITY_CENTER"
    OTHER = "OTHER"


COUNTRY_BOUNDS: dict[Country, BoundingBox] = {
    Country.JAPAN: BoundingBox(min_lat=20.0, max_lat=46.0, min_lon=122.0, max_lon=154.0),
    Country.TAIWAN: BoundingBox(min_lat=21.5, max_lat=25.6, min_lon=118.0, max_lon=122.3),
}


class MapItemBase(BaseModel):
    """Fields shared by everything placed on the map."""

    id: str  # Provider-namespaced, e.g. "techplay-986053"
    title: str
    description: str = ""
    url: Optional[str] = None
    coordinates: Coordinates
    address: Optional[str] = None
    source: DataSource
    country: Country = Country.DEFAULT


class Event(MapItemBase):
    """A time-bound activity (meetup, conference, workshop...)."""

    kind: Literal["event"] = "event"
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    event_type: EventType = EventType.TECH_MEETUP


class Place(MapItemBase):
    """A static location (clinic, cafe, coworking space...)."""

    kind: Literal["place"] = "place"
    business_hours: Optional[str] = None  # Free-form, e.g. "Mon-Fri: 09:00-18:00"
    place_type: PlaceType = PlaceType.OTHER

    @staticmethod
    def daily(open_time: str, close_time: str) -> str:
        return f"Daily: {open_time}-{close_time}"

    @staticmethod
    def weekdays(open_time: str, close_time: str) -> str:
        return f"Mon-Fri: {open_time}-{close_time}"

    @staticmethod
    def always_open() -> str:
        return "24/7"


MapItem = Annotated[Union[Event, Place], Field(discriminator="kind")]


class ProviderStats(BaseModel):
    """Statistics from one provider during a search."""

    provider: str
    count: int
    status: str  # success, error, timeout, skipped
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None


class SearchReport(BaseModel):
    """Merged result of a fan-out search with per-provider statistics."""

    items: list[MapItem]
    stats: list[ProviderStats]
    failed_providers: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def total(self) -> int:
        return len(self.items)
