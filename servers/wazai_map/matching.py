"""Keyword matching shared by every provider adapter."""

from typing import Iterable, Optional

from .models import MapItemBase


def is_blank(keyword: Optional[str]) -> bool:
    return keyword is None or not keyword.strip()


def matches_keyword(item: MapItemBase, keyword: Optional[str]) -> bool:
    """Check whether an item matches a search keyword.

    A blank keyword matches everything. Otherwise the keyword is looked up,
    case-insensitively, in the title, then the description, then the id.
    """
    if is_blank(keyword):
        return True

    needle = keyword.casefold()

    for field in (item.title, item.description, item.id):
        if field and needle in field.casefold():
            return True

    return False


def filter_by_keyword(items: Iterable[MapItemBase], keyword: Optional[str]) -> list:
    """Keep the items matching ``keyword``, preserving order."""
    if is_blank(keyword):
        return list(items)
    return [item for item in items if matches_keyword(item, keyword)]
