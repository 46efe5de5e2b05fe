"""
Provider port and the helpers shared by every adapter.

Each adapter implements:
- name: stable identifier used for provider filtering and listing
- _search(keyword) -> list[MapItem]: the source-specific fetch

``ActivityProvider.search`` wraps ``_search`` so that nothing escapes the
adapter: any error is logged and the adapter answers with an empty list.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Optional

import httpx
import structlog
from bs4 import BeautifulSoup, Comment
from dateutil import parser as date_parser

from ..models import InvalidCoordinateError, MapItem
from ..resilience import retry_with_backoff

logger = structlog.get_logger()

USER_AGENT = "Mozilla/5.0 (compatible; WazaiBot/1.0)"
DEFAULT_HTTP_TIMEOUT = 15.0

WHITESPACE_PATTERN = re.compile(r"\s+")


class ActivityProvider(ABC):
    """A source of map items (API client, scraper or static file)."""

    name: str = "provider"

    async def search(self, keyword: Optional[str] = None) -> list[MapItem]:
        """Search this source; degrades to an empty list on any error."""
        try:
            return await self._search(keyword)
        except Exception as e:
            logger.error(
                "provider_search_failed",
                provider=self.name,
                keyword=keyword,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    @abstractmethod
    async def _search(self, keyword: Optional[str]) -> list[MapItem]:
        ...

    async def build_items(
        self,
        raws: Iterable[Any],
        transform: Callable[[Any], Awaitable[Optional[MapItem]]],
    ) -> list[MapItem]:
        """Transform raw upstream records, dropping the ones that cannot be mapped.

        A record with out-of-range coordinates or missing fields is logged and
        skipped; the rest of the batch is kept.
        """
        items: list[MapItem] = []
        for raw in raws:
            try:
                item = await transform(raw)
            except InvalidCoordinateError as e:
                logger.warning("item_dropped_invalid_coordinates", provider=self.name, error=str(e))
                continue
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("item_dropped_malformed", provider=self.name, error=str(e))
                continue
            if item is not None:
                items.append(item)
        return items

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


@dataclass(frozen=True)
class ProviderRegistration:
    """One entry of the static provider table."""

    name: str
    port: ActivityProvider


@retry_with_backoff(max_attempts=3, base_delay=0.5)
async def fetch_json(
    method: str,
    url: str,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    **kwargs: Any,
) -> Any:
    """Issue one HTTP request and decode the JSON body.

    Transport errors and 429/5xx answers are retried with backoff.
    """
    headers = {"User-Agent": USER_AGENT, **kwargs.pop("headers", {})}
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        response = await client.request(method, url, headers=headers, **kwargs)
        response.raise_for_status()
        return response.json()


@retry_with_backoff(max_attempts=3, base_delay=0.5)
async def fetch_text(url: str, timeout: float = DEFAULT_HTTP_TIMEOUT, **kwargs: Any) -> str:
    """GET a page and return its body as text."""
    headers = {"User-Agent": USER_AGENT, **kwargs.pop("headers", {})}
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        response = await client.get(url, headers=headers, **kwargs)
        response.raise_for_status()
        return response.text


def clean_text(text: Optional[str], limit: Optional[int] = None, strip_html: bool = False) -> str:
    """Collapse whitespace (optionally reducing HTML to its text) and truncate with '...'."""
    if not text:
        return ""
    if strip_html:
        text = html_to_text(text)
    text = WHITESPACE_PATTERN.sub(" ", text).strip()
    if limit is not None and len(text) > limit:
        return text[:limit] + "..."
    return text


def html_to_text(markup: str) -> str:
    """Visible text of an HTML fragment; scripts, styles and comments are dropped."""
    soup = BeautifulSoup(markup, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    return soup.get_text(" ")


def join_address(*parts: Optional[str], separator: str = " / ") -> Optional[str]:
    """Join the non-blank parts, or None when there are none."""
    present = [p.strip() for p in parts if p and p.strip()]
    return separator.join(present) if present else None


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 (or similar) timestamp; None when absent or unparseable."""
    if not value or not str(value).strip():
        return None
    try:
        return date_parser.isoparse(value)
    except (ValueError, OverflowError):
        pass
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError) as e:
        logger.debug("datetime_unparseable", value=value, error=str(e))
        return None


def to_float(value: Any) -> Optional[float]:
    """Upstreams send coordinates as numbers, strings or nothing."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
