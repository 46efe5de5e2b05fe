"""Health monitoring for activity providers."""

from datetime import datetime
from typing import Any, Optional

import structlog

logger = structlog.get_logger()


class HealthMonitor:
    """Track the outcome of the latest call to each provider.

    The coordinator records every provider call here so operators can see
    which upstreams are degrading the aggregate.
    """

    def __init__(self):
        self.status: dict[str, dict[str, Any]] = {}

    def record_success(self, provider: str, item_count: int, duration_ms: Optional[int] = None) -> None:
        """Record a successful search against a provider."""
        self.status[provider] = {
            "healthy": True,
            "last_check": datetime.now().isoformat(),
            "item_count": item_count,
            "duration_ms": duration_ms,
            "consecutive_failures": 0,
            "last_error": None,
        }
        logger.debug("provider_healthy", provider=provider, item_count=item_count)

    def record_failure(self, provider: str, error: str) -> None:
        """Record a failed (or timed out) search against a provider."""
        current = self.status.get(provider, {})
        consecutive = current.get("consecutive_failures", 0) + 1

        self.status[provider] = {
            "healthy": False,
            "last_check": datetime.now().isoformat(),
            "item_count": 0,
            "duration_ms": None,
            "consecutive_failures": consecutive,
            "last_error": error,
        }
        logger.warning(
            "provider_unhealthy",
            provider=provider,
            consecutive_failures=consecutive,
            error=error,
        )

    def is_healthy(self, provider: str) -> bool:
        """Unknown providers count as healthy."""
        return self.status.get(provider, {}).get("healthy", True)

    def get_provider_status(self, provider: str) -> Optional[dict[str, Any]]:
        return self.status.get(provider)

    def get_status(self) -> dict[str, Any]:
        """Full report: summary counts plus per-provider status."""
        healthy_count = sum(1 for s in self.status.values() if s.get("healthy", False))
        total_count = len(self.status)

        return {
            "timestamp": datetime.now().isoformat(),
            "summary": {
                "healthy": healthy_count,
                "unhealthy": total_count - healthy_count,
                "total": total_count,
            },
            "providers": self.status,
        }

    def get_unhealthy_providers(self) -> list[str]:
        return [name for name, status in self.status.items() if not status.get("healthy", True)]

    def reset(self, provider: Optional[str] = None) -> None:
        """Forget one provider, or everything when ``provider`` is None."""
        if provider:
            self.status.pop(provider, None)
        else:
            self.status.clear()
