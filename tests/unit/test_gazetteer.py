"""Tests for the offline gazetteer."""

import pytest

from servers.wazai_map.geocoding.gazetteer import (
    DEFAULT_GAZETTEER,
    JAPAN_GAZETTEER,
    TAIWAN_GAZETTEER,
    WORLD_CITIES,
    GazetteerEntry,
    GazetteerResolver,
    Tier,
)
from servers.wazai_map.models import Coordinates


class TestJapanGazetteer:
    """Tests for substring matching over Japanese place names."""

    def test_ward_beats_prefecture(self):
        entry = JAPAN_GAZETTEER.match("東京都渋谷区道玄坂1-2-3")

        assert entry.name == "渋谷区"
        assert entry.tier == Tier.WARD
        assert entry.coordinates == Coordinates.of(35.6640, 139.6982)

    def test_kyoto_is_not_found_inside_tokyo(self):
        entry = JAPAN_GAZETTEER.match("東京都")

        assert entry.name == "東京都"
        assert entry.coordinates == Coordinates.of(35.6812, 139.7671)

    def test_kyoto_city(self):
        assert JAPAN_GAZETTEER.lookup("京都府京都市下京区") == Coordinates.of(35.0116, 135.7681)

    def test_tokyo_ward_name_in_osaka_is_ignored(self):
        entry = JAPAN_GAZETTEER.match("大阪府大阪市北区梅田3-1-1")

        assert entry.name == "大阪"
        assert entry.tier == Tier.CITY

    def test_tokyo_ward_name_after_other_city_is_ignored(self):
        assert JAPAN_GAZETTEER.match("大阪市北区").name == "大阪"

    def test_bare_ward_resolves_to_tokyo(self):
        assert JAPAN_GAZETTEER.lookup("北区王子1-1") == Coordinates.of(35.7528, 139.7373)

    def test_ward_with_tokyo_prefecture(self):
        assert JAPAN_GAZETTEER.match("東京都北区王子1-1").name == "北区"

    def test_tokyo_ward_name_in_other_prefecture_is_ignored(self):
        assert JAPAN_GAZETTEER.match("千葉県千葉市中央区").name == "千葉"

    @pytest.mark.parametrize("address", [None, "", "Antarctica"])
    def test_no_match(self, address):
        assert JAPAN_GAZETTEER.lookup(address) is None


class TestTaiwanGazetteer:
    def test_both_spellings_of_taipei(self):
        assert TAIWAN_GAZETTEER.lookup("台北市大安區") == Coordinates.taipei()
        assert TAIWAN_GAZETTEER.lookup("臺北市信義區") == Coordinates.taipei()

    def test_kaohsiung(self):
        assert TAIWAN_GAZETTEER.lookup("高雄市前鎮區") == Coordinates.kaohsiung()


class TestWorldCities:
    def test_city_in_event_title(self):
        assert WORLD_CITIES.lookup("AWS Summit Tokyo") == Coordinates.of(35.6762, 139.6503)

    def test_unknown_city(self):
        assert WORLD_CITIES.lookup("AWS Summit Online") is None


class TestGazetteerResolver:
    def test_earlier_entry_wins_within_a_tier(self):
        resolver = GazetteerResolver(
            [
                GazetteerEntry("Alpha", Coordinates.of(1, 1), Tier.CITY),
                GazetteerEntry("Beta", Coordinates.of(2, 2), Tier.CITY),
            ]
        )

        assert resolver.lookup("Beta near Alpha") == Coordinates.of(1, 1)

    def test_default_gazetteer_covers_both_countries(self):
        assert "渋谷区" in DEFAULT_GAZETTEER
        assert "高雄" in DEFAULT_GAZETTEER
        assert len(DEFAULT_GAZETTEER) == len(JAPAN_GAZETTEER) + len(TAIWAN_GAZETTEER)
