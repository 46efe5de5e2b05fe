"""
Runtime settings read from the environment.

API keys are optional: their presence switches the matching provider or
geocoder on, their absence leaves it out of the chain.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger()

DEFAULT_TAIWAN_EVENTS_PATH = Path(__file__).parent.parent / "data" / "taiwan-tech-events.yml"
DEFAULT_USER_AGENT = "WazaiMaps/1.0 (https://github.com/koukeneko/wazai)"

# environment variable -> Settings field
ENV_VARS = {
    "GOOGLE_MAPS_API_KEY": "google_maps_api_key",
    "POSITIONSTACK_API_KEY": "positionstack_api_key",
    "CONNPASS_API_TOKEN": "connpass_api_token",
    "DOORKEEPER_API_TOKEN": "doorkeeper_api_token",
    "NOMINATIM_USER_AGENT": "nominatim_user_agent",
    "NOMINATIM_MIN_INTERVAL": "nominatim_min_interval",
    "GEOCODE_TIMEOUT": "geocode_timeout",
    "PROVIDER_TIMEOUT": "provider_timeout",
    "GEOCODE_CACHE_MAX_ENTRIES": "geocode_cache_max_entries",
    "GEOCODE_VERIFY_REGION": "geocode_verify_region",
    "TECHPLAY_PAGES": "techplay_pages",
    "TAIWAN_EVENTS_PATH": "taiwan_events_path",
}


class Settings(BaseModel):
    """Service configuration."""

    google_maps_api_key: Optional[str] = None
    positionstack_api_key: Optional[str] = None
    connpass_api_token: Optional[str] = None
    doorkeeper_api_token: Optional[str] = None

    nominatim_user_agent: str = DEFAULT_USER_AGENT
    nominatim_min_interval: float = Field(default=1.1, ge=0)  # seconds between requests

    geocode_timeout: float = Field(default=10.0, gt=0)
    provider_timeout: float = Field(default=30.0, gt=0)
    geocode_cache_max_entries: Optional[int] = Field(default=None, gt=0)  # None = unbounded
    geocode_verify_region: bool = True

    techplay_pages: int = Field(default=10, ge=1)
    taiwan_events_path: Path = DEFAULT_TAIWAN_EVENTS_PATH

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables; blank values are ignored."""
        environ = os.environ if environ is None else environ
        values = {
            field: environ[var].strip()
            for var, field in ENV_VARS.items()
            if environ.get(var, "").strip()
        }
        settings = cls(**values)
        logger.debug(
            "settings_loaded",
            google_maps=settings.has_google_maps,
            positionstack=settings.has_positionstack,
            connpass=bool(settings.connpass_api_token),
            doorkeeper=bool(settings.doorkeeper_api_token),
        )
        return settings

    @property
    def has_google_maps(self) -> bool:
        return bool(self.google_maps_api_key)

    @property
    def has_positionstack(self) -> bool:
        return bool(self.positionstack_api_key)
