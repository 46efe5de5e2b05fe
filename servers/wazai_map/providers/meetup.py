"""
Meetup keyword search through the public GraphQL endpoint.

The search is centred on Tokyo; events without venue coordinates cannot be
placed on the map and are dropped.
"""

from typing import Optional

import structlog

from ..matching import filter_by_keyword, is_blank
from ..models import Coordinates, Country, DataSource, Event, EventType, MapItem
from .base import ActivityProvider, clean_text, fetch_json, join_address, parse_datetime, to_float
from .url_validator import safe_link

logger = structlog.get_logger()

MEETUP_GQL_URL = "https://www.meetup.com/gql2"
SEARCH_CENTER = (35.6895, 139.6917)

KEYWORD_SEARCH_QUERY = """
query keywordSearch($query: String!, $lat: Float!, $lon: Float!) {
  keywordSearch(filter: { query: $query, lat: $lat, lon: $lon, source: EVENTS }) {
    edges {
      node {
        id
        title
        shortDescription
        eventUrl
        dateTime
        venue { name address city lat lon }
        group { name }
      }
    }
  }
}
"""


class MeetupProvider(ActivityProvider):
    name = "Meetup"

    def __init__(self, timeout: float = 15.0, center: tuple[float, float] = SEARCH_CENTER):
        self.timeout = timeout
        self.center = center

    async def _search(self, keyword: Optional[str]) -> list[MapItem]:
        # keywordSearch rejects an empty query
        if is_blank(keyword):
            return []

        lat, lon = self.center
        payload = {
            "query": KEYWORD_SEARCH_QUERY,
            "variables": {"query": keyword.strip(), "lat": lat, "lon": lon},
        }
        data = await fetch_json("POST", MEETUP_GQL_URL, timeout=self.timeout, json=payload)

        if data.get("errors"):
            logger.warning("meetup_graphql_errors", errors=data["errors"])

        search = (data.get("data") or {}).get("keywordSearch") or {}
        nodes = [edge.get("node") for edge in search.get("edges") or []]
        nodes = [node for node in nodes if node]
        logger.info("meetup_fetched", count=len(nodes), keyword=keyword)

        events = await self.build_items(nodes, self._to_event)
        return filter_by_keyword(events, keyword)

    async def _to_event(self, node: dict) -> Optional[Event]:
        venue = node.get("venue") or {}
        lat, lon = to_float(venue.get("lat")), to_float(venue.get("lon"))
        if lat is None or lon is None:
            return None

        group_name = (node.get("group") or {}).get("name")
        address = join_address(venue.get("name"), venue.get("address"))
        if venue.get("city"):
            address = join_address(address, venue["city"], separator=", ")

        return Event(
            id=f"meetup-{node['id']}",
            title=node["title"],
            description=clean_text(node.get("shortDescription")) or clean_text(group_name),
            url=safe_link(node.get("eventUrl")),
            coordinates=Coordinates(latitude=lat, longitude=lon),
            address=address,
            start_time=parse_datetime(node.get("dateTime")),
            event_type=EventType.TECH_MEETUP,
            source=DataSource.MEETUP,
            country=Country.JAPAN,
        )
