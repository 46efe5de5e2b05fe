"""Shared pytest fixtures for the activity map tests."""

from unittest.mock import MagicMock

import pytest

from servers.wazai_map.geocoding import GeocodingChain
from servers.wazai_map.models import (
    Coordinates,
    Country,
    DataSource,
    Event,
    Place,
    PlaceType,
)
from tests.factories import make_event, mock_backend


@pytest.fixture
def taiwan_event() -> Event:
    return make_event("pycon-tw-2025", title="PyCon Taiwan 2025", country=Country.TAIWAN)


@pytest.fixture
def japan_event() -> Event:
    return make_event("connpass-1", title="Python Meetup Tokyo", country=Country.JAPAN)


@pytest.fixture
def sample_place() -> Place:
    return Place(
        id="tw-coworking-daan",
        title="大安共同工作空間",
        description="Coworking space",
        coordinates=Coordinates(latitude=25.0330, longitude=121.5430),
        address="台北市大安區",
        source=DataSource.TAIWAN_TECH_COMMUNITY,
        country=Country.TAIWAN,
        business_hours=Place.weekdays("09:00", "21:00"),
        place_type=PlaceType.COWORKING_SPACE,
    )


@pytest.fixture
def mixed_items() -> list[Event]:
    """Three Taiwan items and two Japan items."""
    return [
        make_event("tw-1", title="COSCUP", country=Country.TAIWAN),
        make_event("jp-1", title="PyCon JP", country=Country.JAPAN),
        make_event("tw-2", title="JSDC", country=Country.TAIWAN),
        make_event("jp-2", title="Go Conference", country=Country.JAPAN),
        make_event(
            "tw-3",
            title="g0v hackathon",
            country=Country.TAIWAN,
            source=DataSource.TAIWAN_TECH_COMMUNITY,
        ),
    ]


@pytest.fixture
def network_backend() -> MagicMock:
    return mock_backend("nominatim", Coordinates(latitude=35.0, longitude=135.0))


@pytest.fixture
def geocoding_chain(network_backend: MagicMock) -> GeocodingChain:
    """Chain with the default gazetteer and one mocked network backend."""
    return GeocodingChain(backends=[network_backend])


@pytest.fixture
def offline_chain() -> GeocodingChain:
    """Chain with no network backends: gazetteer or default only."""
    return GeocodingChain(backends=[])
