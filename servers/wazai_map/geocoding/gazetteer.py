"""
Offline gazetteer: known place names mapped to fixed coordinates.

Consulted before any network geocoder. Entries are grouped into tiers,
most specific first (Tokyo wards, then cities, then prefectures), and a
match is discarded when it only appears inside a longer matching name, so
"京都" (Kyoto) never wins for an address in "東京都" (Tokyo).
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional

from ..models import Coordinates


class Tier(IntEnum):
    """Specificity tiers; lower values win."""

    WARD = 0
    CITY = 1
    PREFECTURE = 2


@dataclass(frozen=True)
class GazetteerEntry:
    name: str
    coordinates: Coordinates
    tier: Tier
    within: Optional[str] = None  # enclosing prefecture, for names reused elsewhere


@dataclass(frozen=True)
class _Hit:
    entry: GazetteerEntry
    order: int
    start: int
    end: int

    def inside(self, other: "_Hit") -> bool:
        return (
            other.end - other.start > self.end - self.start
            and other.start <= self.start
            and self.end <= other.end
        )


class GazetteerResolver:
    """Substring lookup over an ordered list of place names."""

    def __init__(self, entries: Iterable[GazetteerEntry]):
        self.entries = list(entries)

    def lookup(self, address: Optional[str]) -> Optional[Coordinates]:
        entry = self.match(address)
        return entry.coordinates if entry else None

    def match(self, address: Optional[str]) -> Optional[GazetteerEntry]:
        """Return the most specific entry whose name appears in ``address``."""
        if not address:
            return None

        hits = []
        for order, entry in enumerate(self.entries):
            start = address.find(entry.name)
            while start != -1:
                hits.append(_Hit(entry, order, start, start + len(entry.name)))
                start = address.find(entry.name, start + 1)

        standalone = [hit for hit in hits if not any(hit.inside(other) for other in hits)]
        standalone = [hit for hit in standalone if not _out_of_scope(hit, standalone)]
        if not standalone:
            return None

        best = min(standalone, key=lambda hit: (hit.entry.tier, hit.order))
        return best.entry

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: str) -> bool:
        return any(entry.name == name for entry in self.entries)


def _out_of_scope(hit: _Hit, hits: list[_Hit]) -> bool:
    """A scoped name ("北区") does not count when the address is elsewhere.

    Elsewhere means another prefecture is named, or a known city is named
    before it ("大阪市北区").
    """
    within = hit.entry.within
    if within is None:
        return False
    return any(
        (other.entry.tier == Tier.PREFECTURE and other.entry.name != within)
        or (other.entry.tier == Tier.CITY and other.end <= hit.start)
        for other in hits
    )


def _entries(
    tier: Tier, table: dict[str, tuple[float, float]], within: Optional[str] = None
) -> list[GazetteerEntry]:
    return [
        GazetteerEntry(name, Coordinates(latitude=lat, longitude=lon), tier, within)
        for name, (lat, lon) in table.items()
    ]


TOKYO_WARDS = {
    "渋谷区": (35.6640, 139.6982),
    "新宿区": (35.6938, 139.7034),
    "港区": (35.6581, 139.7514),
    "千代田区": (35.6940, 139.7536),
    "中央区": (35.6707, 139.7720),
    "品川区": (35.6092, 139.7302),
    "目黒区": (35.6413, 139.6983),
    "世田谷区": (35.6463, 139.6532),
    "大田区": (35.5613, 139.7160),
    "江東区": (35.6729, 139.8172),
    "墨田区": (35.7126, 139.8107),
    "台東区": (35.7125, 139.7800),
    "文京区": (35.7081, 139.7522),
    "豊島区": (35.7263, 139.7163),
    "北区": (35.7528, 139.7373),
    "荒川区": (35.7365, 139.7834),
    "板橋区": (35.7514, 139.7097),
    "練馬区": (35.7355, 139.6517),
    "足立区": (35.7752, 139.8045),
    "葛飾区": (35.7436, 139.8477),
    "江戸川区": (35.7067, 139.8683),
    "中野区": (35.7078, 139.6638),
    "杉並区": (35.6994, 139.6364),
}

JAPAN_CITIES = {
    "横浜": (35.4437, 139.6380),
    "大阪": (34.6937, 135.5023),
    "名古屋": (35.1815, 136.9066),
    "札幌": (43.0618, 141.3545),
    "福岡": (33.5902, 130.4017),
    "神戸": (34.6901, 135.1956),
    "京都": (35.0116, 135.7681),
    "仙台": (38.2682, 140.8694),
    "広島": (34.3853, 132.4553),
    "さいたま": (35.8617, 139.6455),
    "千葉": (35.6073, 140.1063),
}

JAPAN_PREFECTURES = {
    "東京都": (35.6812, 139.7671),
    "神奈川県": (35.4478, 139.6425),
    "埼玉県": (35.8569, 139.6489),
    "千葉県": (35.6050, 140.1233),
    "大阪府": (34.6864, 135.5200),
    "愛知県": (35.1802, 136.9066),
    "北海道": (43.0646, 141.3468),
    "福岡県": (33.6064, 130.4180),
    "兵庫県": (34.6913, 135.1830),
    "京都府": (35.0214, 135.7556),
    "宮城県": (38.2688, 140.8721),
    "広島県": (34.3966, 132.4596),
    "静岡県": (34.9769, 138.3831),
    "岡山県": (34.6618, 133.9344),
    "茨城県": (36.3414, 140.4467),
    "新潟県": (37.9026, 139.0236),
    "長野県": (36.6513, 138.1810),
    "石川県": (36.5947, 136.6256),
    "沖縄県": (26.2124, 127.6809),
}

TAIWAN_CITIES = {
    "台北": (25.0330, 121.5654),
    "臺北": (25.0330, 121.5654),
    "Taipei": (25.0330, 121.5654),
    "新北": (25.0120, 121.4657),
    "桃園": (24.9937, 121.3010),
    "新竹": (24.8138, 120.9675),
    "台中": (24.1477, 120.6736),
    "臺中": (24.1477, 120.6736),
    "Taichung": (24.1477, 120.6736),
    "台南": (22.9999, 120.2270),
    "臺南": (22.9999, 120.2270),
    "Tainan": (22.9999, 120.2270),
    "高雄": (22.6273, 120.3014),
    "Kaohsiung": (22.6273, 120.3014),
}

WORLD_CITY_TABLE = {
    # Americas
    "New York": (40.7128, -74.0060),
    "Los Angeles": (34.0522, -118.2437),
    "San Francisco": (37.7749, -122.4194),
    "Chicago": (41.8781, -87.6298),
    "Toronto": (43.6532, -79.3832),
    "Vancouver": (49.2827, -123.1207),
    "Mexico City": (19.4326, -99.1332),
    "Bogotá": (4.7110, -74.0721),
    "São Paulo": (-23.5505, -46.6333),
    "Quito": (-0.1807, -78.4678),
    # Europe
    "London": (51.5074, -0.1278),
    "Paris": (48.8566, 2.3522),
    "Berlin": (52.5200, 13.4050),
    "Amsterdam": (52.3676, 4.9041),
    "Stockholm": (59.3293, 18.0686),
    "Madrid": (40.4168, -3.7038),
    "Milan": (45.4642, 9.1900),
    "Zurich": (47.3769, 8.5417),
    "Sofia": (42.6977, 23.3219),
    "Zaragoza": (41.6488, -0.8891),
    # Asia Pacific
    "Tokyo": (35.6762, 139.6503),
    "Osaka": (34.6937, 135.5023),
    "Singapore": (1.3521, 103.8198),
    "Hong Kong": (22.3193, 114.1694),
    "Seoul": (37.5665, 126.9780),
    "Sydney": (-33.8688, 151.2093),
    "Melbourne": (-37.8136, 144.9631),
    "Mumbai": (19.0760, 72.8777),
    "Bangkok": (13.7563, 100.5018),
    "Taipei": (25.0330, 121.5654),
    # Africa
    "Abuja": (9.0765, 7.3986),
    "Kinshasa": (-4.4419, 15.2663),
    "Buea": (4.1560, 9.2320),
}

JAPAN_GAZETTEER = GazetteerResolver(
    _entries(Tier.WARD, TOKYO_WARDS, within="東京都")
    + _entries(Tier.CITY, JAPAN_CITIES)
    + _entries(Tier.PREFECTURE, JAPAN_PREFECTURES)
)

TAIWAN_GAZETTEER = GazetteerResolver(_entries(Tier.CITY, TAIWAN_CITIES))

WORLD_CITIES = GazetteerResolver(_entries(Tier.CITY, WORLD_CITY_TABLE))

DEFAULT_GAZETTEER = GazetteerResolver(JAPAN_GAZETTEER.entries + TAIWAN_GAZETTEER.entries)
