"""
Tool server entry point for the Wazai activity map.

This server provides tools for:
- Searching every activity provider (keyword, country, provider filters)
- Listing the registered providers
- Resolving an address to coordinates
- Reporting provider and geocoder health

Run with: python -m servers.wazai_map search pycon --country TW
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

import structlog

from .config.settings import Settings
from .coordinator import SearchCoordinator
from .geocoding import GeocodingChain
from .models import Country
from .providers import build_registrations


class ActivityMapServer:
    """Tool-style facade over the coordinator and the geocoding chain."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self.geocoders = GeocodingChain.for_regions(self.settings)
        self.geocoder = self.geocoders[Country.JAPAN]
        self.coordinator = SearchCoordinator(
            build_registrations(self.settings, self.geocoder, self.geocoders[Country.TAIWAN]),
            provider_timeout=self.settings.provider_timeout,
        )
        self.tools = {
            "search": self.search,
            "list_providers": self.list_providers,
            "geocode": self.geocode,
            "provider_health": self.provider_health,
        }

    async def search(
        self,
        keyword: Optional[str] = None,
        country: str = "ALL",
        provider: str = "ALL",
        with_stats: bool = False,
    ) -> dict:
        """
        Search all providers.

        Args:
            keyword: Free text; blank returns everything the providers offer
            country: TW, JP or ALL
            provider: Case-insensitive substring of a provider name, or ALL
            with_stats: Include per-provider statistics
        """
        report = await self.coordinator.search_report(keyword, country, provider)
        if with_stats:
            return report.model_dump(mode="json")
        return {
            "items": [item.model_dump(mode="json") for item in report.items],
            "total": report.total,
        }

    async def list_providers(self) -> dict:
        return {"providers": self.coordinator.get_provider_names()}

    async def geocode(self, address: str) -> dict:
        """Resolve an address; ``resolved`` is False when the default was used."""
        found = await self.geocoder.lookup(address)
        coords = found or self.geocoder.default
        return {
            "address": address,
            "latitude": coords.latitude,
            "longitude": coords.longitude,
            "resolved": found is not None,
        }

    async def provider_health(self) -> dict:
        return {
            "providers": self.coordinator.health.get_status(),
            "geocoding": self.geocoder.get_status(),
        }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wazai_map", description="Wazai activity map tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Search every provider")
    search.add_argument("keyword", nargs="?", default=None)
    search.add_argument("--country", default="ALL", help="TW, JP or ALL")
    search.add_argument("--provider", default="ALL", help="Provider name filter")
    search.add_argument("--stats", action="store_true", help="Include per-provider statistics")

    commands.add_parser("providers", help="List registered providers")

    geocode = commands.add_parser("geocode", help="Resolve an address")
    geocode.add_argument("address")

    return parser


def configure_logging(verbose: bool) -> None:
    # stdout carries the JSON answer, logs go to stderr
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.INFO),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


async def run(args: argparse.Namespace) -> dict:
    server = ActivityMapServer()

    if args.command == "search":
        return await server.search(args.keyword, args.country, args.provider, with_stats=args.stats)
    if args.command == "providers":
        return await server.list_providers()
    return await server.geocode(args.address)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    result = asyncio.run(run(args))
    json.dump(result, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
