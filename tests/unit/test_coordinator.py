"""Tests for the search coordinator fan-out."""

import asyncio

import pytest

from servers.wazai_map.coordinator import SearchCoordinator, parse_country
from servers.wazai_map.models import Country, DataSource
from servers.wazai_map.providers.base import ProviderRegistration
from servers.wazai_map.resilience import HealthMonitor

from tests.factories import ExplodingPort, StaticProvider, make_event


def register(*ports) -> list[ProviderRegistration]:
    return [ProviderRegistration(port.name, port) for port in ports]


class SlowProvider(StaticProvider):
    def __init__(self, name, items, delay):
        super().__init__(name, items)
        self.delay = delay

    async def _search(self, keyword):
        await asyncio.sleep(self.delay)
        return await super()._search(keyword)


class TestParseCountry:
    @pytest.mark.parametrize(
        "code,expected",
        [("TW", Country.TAIWAN), ("jp", Country.JAPAN), (" tw ", Country.TAIWAN)],
    )
    def test_known_codes(self, code, expected):
        assert parse_country(code) == expected

    @pytest.mark.parametrize("code", [None, "", "ALL", "US", "Taiwan"])
    def test_anything_else_means_no_filter(self, code):
        assert parse_country(code) is None


class TestSearchCoordinator:
    """Tests for SearchCoordinator."""

    @pytest.fixture
    def connpass(self, mixed_items) -> StaticProvider:
        return StaticProvider("Connpass", [i for i in mixed_items if i.country == Country.JAPAN])

    @pytest.fixture
    def community(self, mixed_items) -> StaticProvider:
        return StaticProvider(
            "Taiwan Tech Community", [i for i in mixed_items if i.country == Country.TAIWAN]
        )

    @pytest.mark.asyncio
    async def test_merges_in_registration_order(self, connpass, community):
        coordinator = SearchCoordinator(register(connpass, community))

        items = await coordinator.search_all()

        assert [i.id for i in items] == ["jp-1", "jp-2", "tw-1", "tw-2", "tw-3"]

    @pytest.mark.asyncio
    async def test_order_does_not_follow_completion(self):
        slow = SlowProvider("Slow", [make_event("slow-1")], delay=0.05)
        fast = SlowProvider("Fast", [make_event("fast-1")], delay=0)
        coordinator = SearchCoordinator(register(slow, fast))

        items = await coordinator.search_all("python")

        assert [i.id for i in items] == ["slow-1", "fast-1"]

    @pytest.mark.asyncio
    async def test_failing_provider_is_isolated(self, connpass):
        broken = ExplodingPort("Meetup")
        coordinator = SearchCoordinator(register(broken, connpass))

        report = await coordinator.search_report("python")

        assert [i.id for i in report.items] == ["jp-1", "jp-2"]
        assert report.failed_providers == ["Meetup"]
        meetup = report.stats[0]
        assert meetup.status == "error"
        assert meetup.error_message == "upstream exploded"
        assert broken.calls == 1

    @pytest.mark.asyncio
    async def test_keyword_is_passed_through(self, connpass, community):
        coordinator = SearchCoordinator(register(connpass, community))

        await coordinator.search_all("python")

        assert connpass.calls == ["python"]
        assert community.calls == ["python"]

    @pytest.mark.asyncio
    async def test_country_filter(self, connpass, community):
        coordinator = SearchCoordinator(register(connpass, community))

        items = await coordinator.search_all(country="TW")

        assert len(items) == 3
        assert all(i.country == Country.TAIWAN for i in items)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("country", [None, "ALL", "all", "US"])
    async def test_unknown_country_keeps_everything(self, connpass, community, country):
        coordinator = SearchCoordinator(register(connpass, community))

        assert len(await coordinator.search_all(country=country)) == 5

    @pytest.mark.asyncio
    async def test_provider_filter_only_calls_matching(self, connpass, community):
        coordinator = SearchCoordinator(register(connpass, community))

        report = await coordinator.search_report(provider_filter="connp")

        assert [i.id for i in report.items] == ["jp-1", "jp-2"]
        assert connpass.calls == [None]
        assert community.calls == []
        assert [(s.provider, s.status) for s in report.stats] == [
            ("Connpass", "success"),
            ("Taiwan Tech Community", "skipped"),
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider_filter", [None, "", "ALL", "all"])
    async def test_blank_or_all_filter_selects_everyone(self, connpass, community, provider_filter):
        coordinator = SearchCoordinator(register(connpass, community))

        await coordinator.search_all(provider_filter=provider_filter)

        assert connpass.calls == [None]
        assert community.calls == [None]

    @pytest.mark.asyncio
    async def test_filter_matching_nothing_returns_empty(self, connpass):
        coordinator = SearchCoordinator(register(connpass))

        report = await coordinator.search_report(provider_filter="eventbrite")

        assert report.items == []
        assert report.stats[0].status == "skipped"
        assert connpass.calls == []

    @pytest.mark.asyncio
    async def test_timeout(self, connpass):
        hanging = SlowProvider("TechPlay", [make_event("techplay-1")], delay=1.0)
        coordinator = SearchCoordinator(register(hanging, connpass), provider_timeout=0.05)

        report = await coordinator.search_report()

        assert [i.id for i in report.items] == ["jp-1", "jp-2"]
        assert report.stats[0].status == "timeout"
        assert report.failed_providers == ["TechPlay"]

    @pytest.mark.asyncio
    async def test_stats_count_and_total(self, connpass, community):
        coordinator = SearchCoordinator(register(connpass, community))

        report = await coordinator.search_report(country="JP")

        assert report.total == 2
        assert [s.count for s in report.stats] == [2, 3]

    @pytest.mark.asyncio
    async def test_outcomes_are_recorded_in_health(self, connpass):
        health = HealthMonitor()
        coordinator = SearchCoordinator(register(connpass, ExplodingPort("Meetup")), health=health)

        await coordinator.search_all()

        assert health.get_provider_status("Connpass")["item_count"] == 2
        assert health.get_unhealthy_providers() == ["Meetup"]

    @pytest.mark.asyncio
    async def test_one_healthy_one_broken_end_to_end(self):
        event = make_event(
            "tw-x", title="COSCUP", country=Country.TAIWAN, source=DataSource.TAIWAN_TECH_COMMUNITY
        )
        coordinator = SearchCoordinator(
            register(StaticProvider("A", [event]), ExplodingPort("B"))
        )

        items = await coordinator.search_all(None)

        assert items == [event]

    def test_provider_names(self, connpass, community):
        coordinator = SearchCoordinator(register(connpass, community))

        assert coordinator.get_provider_names() == ["Connpass", "Taiwan Tech Community"]

    def test_no_providers(self):
        assert SearchCoordinator([]).get_provider_names() == []

    @pytest.mark.asyncio
    async def test_search_with_no_providers(self):
        report = await SearchCoordinator([]).search_report("python")

        assert report.items == []
        assert report.stats == []
