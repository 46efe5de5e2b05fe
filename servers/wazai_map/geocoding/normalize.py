"""
Address normalization for geocoding.

Venue listings carry addresses such as
"〒150-0043 東京都渋谷区道玄坂1-2-3 渋谷ビル 6F". Before any lookup the text
is cleaned and, when possible, reduced to its "prefecture + city/ward +
street number" core so that the same place written two ways shares a cache key.
"""

import re
import unicodedata
from typing import Optional

POSTAL_CODE = re.compile(r"〒\s*\d{3}-?\d{4}\s*")
FLOOR_MARKER = re.compile(r"\s*\bB?\d+F\b\s*")
FLOOR_KANJI = re.compile(r"\s*\d+階.*$")
WHITESPACE = re.compile(r"\s+")

PREFECTURE = r"(?:東京都|北海道|大阪府|京都府|[^\s\d都道府県]{2,3}県)"
CITY_OR_WARD = r"[^\s\d]{1,6}?[市区町村郡]"
STREET_NUMBER = r"[^\s\d]*?\d+(?:[-‐ーの丁目番地号]+\d+)*(?:丁目|番地|番|号)?"

ADDRESS_ANCHOR = re.compile(
    rf"(?P<prefecture>{PREFECTURE})?"
    rf"(?P<city>(?:{CITY_OR_WARD}){{1,2}})"
    rf"(?P<street>{STREET_NUMBER})"
)
REGION_ANCHOR = re.compile(rf"(?P<prefecture>{PREFECTURE})|(?P<city>{CITY_OR_WARD})")

# Trailing building names, only stripped for backends that choke on them
BUILDING_SUFFIXES = re.compile(r"\s+\S*(?:ビル|タワー|センター|会館|ホール)\S*.*$")
LATIN_BUILDING = re.compile(r"\s+[A-Za-z][A-Za-z0-9]*[^\d\s].*$")

ONLINE_MARKERS = ("オンライン", "online", "zoom", "youtube live", "線上")


def clean_address(raw: str) -> str:
    """Light cleanup: width folding, postal code, floor markers, whitespace."""
    text = unicodedata.normalize("NFKC", raw)
    text = POSTAL_CODE.sub("", text)
    text = FLOOR_KANJI.sub("", text)
    text = FLOOR_MARKER.sub(" ", text)
    return WHITESPACE.sub(" ", text).strip()


def extract_canonical_address(text: str) -> Optional[str]:
    """Pull "prefecture + city/ward + street number" out of free text.

    Returns None when no city/ward followed by a street number is found.
    """
    match = ADDRESS_ANCHOR.search(text)
    if not match:
        return None
    return match.group(0)


def normalize_address(raw: str) -> str:
    """Normalize an address into the key used for caching and lookups."""
    cleaned = clean_address(raw)
    return extract_canonical_address(cleaned) or cleaned


def extract_region_token(address: str) -> Optional[str]:
    """Return the prefecture, or failing that the first city/ward, in ``address``."""
    prefecture = None
    city = None
    for match in REGION_ANCHOR.finditer(address):
        if match.group("prefecture") and prefecture is None:
            prefecture = match.group("prefecture")
        elif match.group("city") and city is None:
            city = match.group("city")
    return prefecture or city


def strip_building(address: str) -> str:
    """Drop trailing building names ("渋谷ビル", "Shibuya Hikarie"...)."""
    text = BUILDING_SUFFIXES.sub("", address)
    text = LATIN_BUILDING.sub("", text)
    return text.strip()


def is_online_venue(text: Optional[str]) -> bool:
    if not text:
        return False
    lowered = text.casefold()
    return any(marker in lowered for marker in ONLINE_MARKERS)
