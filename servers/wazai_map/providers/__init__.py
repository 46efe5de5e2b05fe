"""
Activity provider adapters.

Each provider implements:
- name: stable identifier (filtering, listing)
- search(keyword) -> list[MapItem], never raising
"""

from .aws_events import AwsEventsProvider
from .base import ActivityProvider, ProviderRegistration
from .connpass import ConnpassProvider
from .doorkeeper import DoorkeeperProvider
from .gdg import GdgCommunityProvider
from .meetup import MeetupProvider
from .registry import build_registrations
from .taiwan_community import TaiwanTechCommunityProvider
from .techplay import TechPlayProvider

__all__ = [
    "ActivityProvider",
    "ProviderRegistration",
    "build_registrations",
    "ConnpassProvider",
    "TaiwanTechCommunityProvider",
    "GdgCommunityProvider",
    "AwsEventsProvider",
    "MeetupProvider",
    "TechPlayProvider",
    "DoorkeeperProvider",
]
