"""
Fan-out search across every registered provider.

Providers run concurrently, each under its own timeout. A provider that
raises or times out contributes nothing; the others are unaffected. Results
are merged in registration order regardless of completion order, then the
country filter is applied.
"""

import asyncio
import time
from typing import Optional, Sequence

import structlog

from .models import Country, MapItem, ProviderStats, SearchReport
from .providers.base import ProviderRegistration
from .resilience import HealthMonitor

logger = structlog.get_logger()

ALL = "ALL"
COUNTRY_CODES = {"TW": Country.TAIWAN, "JP": Country.JAPAN}


def parse_country(code: Optional[str]) -> Optional[Country]:
    """'TW' / 'JP' (any case) to a Country; anything else means no filter."""
    if not code:
        return None
    return COUNTRY_CODES.get(code.strip().upper())


def _selects_all(provider_filter: Optional[str]) -> bool:
    return not provider_filter or not provider_filter.strip() or provider_filter.strip().upper() == ALL


class SearchCoordinator:
    """Query every provider and merge their answers."""

    def __init__(
        self,
        registrations: Sequence[ProviderRegistration],
        provider_timeout: float = 30.0,
        health: Optional[HealthMonitor] = None,
    ):
        self.registrations = list(registrations)
        self.provider_timeout = provider_timeout
        self.health = health or HealthMonitor()

    def get_provider_names(self) -> list[str]:
        return [registration.name for registration in self.registrations]

    def select_providers(self, provider_filter: Optional[str] = ALL) -> list[ProviderRegistration]:
        """Providers whose name contains ``provider_filter`` (case-insensitive)."""
        if _selects_all(provider_filter):
            return list(self.registrations)
        needle = provider_filter.strip().casefold()
        return [r for r in self.registrations if needle in r.name.casefold()]

    async def search_all(
        self,
        keyword: Optional[str] = None,
        country: Optional[str] = ALL,
        provider_filter: Optional[str] = ALL,
    ) -> list[MapItem]:
        report = await self.search_report(keyword, country, provider_filter)
        return report.items

    async def search_report(
        self,
        keyword: Optional[str] = None,
        country: Optional[str] = ALL,
        provider_filter: Optional[str] = ALL,
    ) -> SearchReport:
        """Search and report how each provider fared.

        Providers excluded by ``provider_filter`` are never called and show
        up with status ``skipped``.
        """
        selected = self.select_providers(provider_filter)

        # gather keeps argument order, which is registration order
        outcomes = await asyncio.gather(*(self._run_provider(r, keyword) for r in selected))

        items: list[MapItem] = []
        stats_by_name: dict[str, ProviderStats] = {}
        for found, provider_stats in outcomes:
            items.extend(found)
            stats_by_name[provider_stats.provider] = provider_stats

        stats = [
            stats_by_name.get(r.name) or ProviderStats(provider=r.name, count=0, status="skipped")
            for r in self.registrations
        ]

        wanted = parse_country(country)
        if wanted is not None:
            items = [item for item in items if item.country == wanted]

        failed = [s.provider for s in stats if s.status in ("error", "timeout")]
        logger.info(
            "search_complete",
            keyword=keyword,
            country=wanted.value if wanted else ALL,
            provider_filter=provider_filter or ALL,
            providers=len(selected),
            total=len(items),
            failed=failed,
        )
        return SearchReport(items=items, stats=stats, failed_providers=failed)

    async def _run_provider(
        self, registration: ProviderRegistration, keyword: Optional[str]
    ) -> tuple[list[MapItem], ProviderStats]:
        name = registration.name
        started = time.monotonic()

        try:
            found = await asyncio.wait_for(
                registration.port.search(keyword), timeout=self.provider_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("provider_timeout", provider=name, timeout=self.provider_timeout)
            self.health.record_failure(name, f"timed out after {self.provider_timeout}s")
            return [], ProviderStats(
                provider=name,
                count=0,
                status="timeout",
                duration_ms=_elapsed_ms(started),
                error_message=f"timed out after {self.provider_timeout}s",
            )
        except Exception as e:
            logger.error("provider_failed", provider=name, error=str(e), error_type=type(e).__name__)
            self.health.record_failure(name, str(e))
            return [], ProviderStats(
                provider=name,
                count=0,
                status="error",
                duration_ms=_elapsed_ms(started),
                error_message=str(e),
            )

        found = list(found or [])
        duration_ms = _elapsed_ms(started)
        self.health.record_success(name, len(found), duration_ms)
        logger.debug("provider_searched", provider=name, count=len(found), duration_ms=duration_ms)
        return found, ProviderStats(
            provider=name, count=len(found), status="success", duration_ms=duration_ms
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
