"""Static provider table built once at startup."""

from typing import Optional

import structlog

from ..config.settings import Settings
from ..geocoding import GeocodingChain
from ..models import Country
from .aws_events import AwsEventsProvider
from .base import ProviderRegistration
from .connpass import ConnpassProvider
from .doorkeeper import DoorkeeperProvider
from .gdg import GdgCommunityProvider
from .meetup import MeetupProvider
from .taiwan_community import TaiwanTechCommunityProvider
from .techplay import TechPlayProvider

logger = structlog.get_logger()


def build_registrations(
    settings: Settings,
    geocoder: Optional[GeocodingChain] = None,
    taiwan_geocoder: Optional[GeocodingChain] = None,
) -> list[ProviderRegistration]:
    """Every provider, in the order their results are merged.

    Japanese sources geocode with ``geocoder`` and the Taiwan community file
    with ``taiwan_geocoder``; missing chains are built from ``settings``.
    """
    if geocoder is None or taiwan_geocoder is None:
        chains = GeocodingChain.for_regions(settings)
        geocoder = geocoder or chains[Country.JAPAN]
        taiwan_geocoder = taiwan_geocoder or chains[Country.TAIWAN]
    timeout = settings.provider_timeout

    ports = [
        ConnpassProvider(settings.connpass_api_token, geocoder, timeout=timeout),
        TaiwanTechCommunityProvider(settings.taiwan_events_path, taiwan_geocoder),
        GdgCommunityProvider(timeout=timeout),
        AwsEventsProvider(timeout=timeout),
        MeetupProvider(timeout=timeout),
        TechPlayProvider(geocoder, pages=settings.techplay_pages, timeout=settings.geocode_timeout),
        DoorkeeperProvider(settings.doorkeeper_api_token, geocoder, timeout=timeout),
    ]

    registrations = [ProviderRegistration(port.name, port) for port in ports]
    logger.info("providers_registered", providers=[r.name for r in registrations])
    return registrations
