"""Tests for the TechPlay scraper."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from servers.wazai_map.geocoding import GeocodingChain
from servers.wazai_map.models import Coordinates, DataSource
from servers.wazai_map.providers.techplay import (
    EVENT_LIST_URL,
    TechPlayProvider,
    extract_event_urls,
    extract_json_ld,
)

from tests.factories import error_response, mock_http_client, text_response

LISTING_HTML = """
<html><body>
  <div class="event-list">
    <a href="https://techplay.jp/event/986053">Python勉強会 #12</a>
    <a href="https://techplay.jp/event/986053">詳細</a>
    <a href="https://techplay.jp/event/986054/">Python Online LT</a>
    <a href="https://techplay.jp/event/search">検索</a>
    <a href="https://techplay.jp/event/986055">No JSON-LD</a>
    <a href="https://evil.example/event/1">Elsewhere</a>
  </div>
</body></html>
"""


def detail_page(json_ld) -> str:
    return f"""
<html><head>
  <script type="application/ld+json">{json.dumps(json_ld, ensure_ascii=False)}</script>
</head><body></body></html>
"""


DETAILS = {
    "https://techplay.jp/event/986053": detail_page(
        {
            "@context": "https://schema.org",
            "@type": "Event",
            "name": "Python勉強会 #12",
            "description": "  Pythonの基礎を\n学ぶ会です  ",
            "startDate": "2025-03-10T19:00:00+09:00",
            "endDate": "2025-03-10T21:00:00+09:00",
            "location": {
                "@type": "Place",
                "name": "渋谷ビル",
                "address": {"@type": "PostalAddress", "streetAddress": "東京都渋谷区道玄坂1-2-3"},
            },
        }
    ),
    "https://techplay.jp/event/986054/": detail_page(
        {
            "@type": "Event",
            "name": "Python Online LT",
            "startDate": "2025-03-12T20:00:00+09:00",
            "location": {"@type": "VirtualLocation", "url": "https://zoom.us/j/1"},
        }
    ),
    "https://techplay.jp/event/986055": "<html><body>No structured data</body></html>",
}


def fake_get(details=DETAILS) -> AsyncMock:
    async def respond(url, headers=None, params=None, **kwargs):
        if url == EVENT_LIST_URL:
            return text_response(LISTING_HTML)
        if url in details:
            return text_response(details[url])
        return error_response(404, url)

    return AsyncMock(side_effect=respond)


class TestExtractEventUrls:
    def test_keeps_event_detail_links_once(self):
        assert extract_event_urls(LISTING_HTML) == [
            "https://techplay.jp/event/986053",
            "https://techplay.jp/event/986054/",
            "https://techplay.jp/event/986055",
        ]

    def test_empty_page(self):
        assert extract_event_urls("<html></html>") == []


class TestExtractJsonLd:
    def test_skips_invalid_blocks_and_non_events(self):
        html = """
        <script type="application/ld+json">{not json</script>
        <script type="application/ld+json">
          [{"@type": "BreadcrumbList"}, {"@type": "Event", "name": "Go Conference"}]
        </script>
        """

        assert extract_json_ld(html) == {"@type": "Event", "name": "Go Conference"}

    def test_none_without_json_ld(self):
        assert extract_json_ld("<html><body>plain</body></html>") is None


class TestTechPlayProvider:
    """Tests for TechPlayProvider."""

    @pytest.mark.asyncio
    async def test_scrapes_listing_and_details(self, offline_chain: GeocodingChain):
        provider = TechPlayProvider(offline_chain, pages=1)

        with patch("httpx.AsyncClient") as mock_client:
            client = mock_http_client(mock_client, get=fake_get())
            items = await provider.search("python")

        assert [i.id for i in items] == ["techplay-986053", "techplay-986054"]
        venue, online = items

        assert venue.title == "Python勉強会 #12"
        assert venue.description == "Pythonの基礎を 学ぶ会です"
        assert venue.address == "渋谷ビル / 東京都渋谷区道玄坂1-2-3"
        assert venue.coordinates == Coordinates.of(35.6640, 139.6982)
        assert venue.url == "https://techplay.jp/event/986053"
        assert venue.source == DataSource.TECHPLAY

        assert online.address == "オンライン"
        assert online.coordinates == offline_chain.default

        listing_call = client.get.call_args_list[0]
        assert listing_call.args[0] == EVENT_LIST_URL
        assert listing_call.kwargs["params"] == {"page": 1}

    @pytest.mark.asyncio
    async def test_keyword_filter(self, offline_chain: GeocodingChain):
        provider = TechPlayProvider(offline_chain, pages=1)

        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, get=fake_get())
            items = await provider.search("online")

        assert [i.id for i in items] == ["techplay-986054"]

    @pytest.mark.asyncio
    async def test_failed_detail_page_is_skipped(self, offline_chain: GeocodingChain):
        details = {url: page for url, page in DETAILS.items() if not url.endswith("986053")}
        provider = TechPlayProvider(offline_chain, pages=1)

        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, get=fake_get(details=details))
            items = await provider.search(None)

        assert [i.id for i in items] == ["techplay-986054"]

    @pytest.mark.asyncio
    async def test_same_event_on_two_pages_kept_once(self, offline_chain: GeocodingChain):
        provider = TechPlayProvider(offline_chain, pages=2)

        with patch("httpx.AsyncClient") as mock_client:
            client = mock_http_client(mock_client, get=fake_get())
            items = await provider.search(None)

        assert [i.id for i in items] == ["techplay-986053", "techplay-986054"]
        pages = [c.kwargs["params"] for c in client.get.call_args_list if c.args[0] == EVENT_LIST_URL]
        assert pages == [{"page": 1}, {"page": 2}]

    @pytest.mark.asyncio
    async def test_online_venue_name(self, offline_chain: GeocodingChain):
        provider = TechPlayProvider(offline_chain)

        coordinates, address = await provider._location({"@type": "Place", "name": "オンライン開催"})

        assert coordinates == offline_chain.default
        assert address == "オンライン"

    @pytest.mark.asyncio
    async def test_venue_name_geocoded_without_address(self, offline_chain: GeocodingChain):
        provider = TechPlayProvider(offline_chain)

        coordinates, address = await provider._location([{"@type": "Place", "name": "大阪府大阪市"}])

        assert coordinates == Coordinates.of(34.6937, 135.5023)
        assert address == "大阪府大阪市"

    @pytest.mark.asyncio
    async def test_listing_failure_yields_empty_list(self, offline_chain: GeocodingChain):
        provider = TechPlayProvider(offline_chain, pages=1)

        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, get=AsyncMock(return_value=error_response(403)))
            assert await provider.search(None) == []
