"""Cached provider health gate."""

import asyncio
import logging

from supportai.providers.base import AIProvider, HealthState

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER_SECONDS = 300.0


class HealthMonitor:
    """Re-probes a provider only when its last observation is older than ``stale_after``.

    Concurrent callers that find the state stale share one probe: the first
    takes the lock and checks, the rest see a fresh state once it releases.
    """

    def __init__(
        self, provider: AIProvider, *, stale_after: float = DEFAULT_STALE_AFTER_SECONDS
    ) -> None:
        self.provider = provider
        self.stale_after = stale_after
        self._lock = asyncio.Lock()

    @property
    def state(self) -> HealthState:
        return self.provider.health.state

    def is_stale(self) -> bool:
        return self.provider.health.age() > self.stale_after

    async def ensure_checked(self) -> HealthState:
        if self.is_stale():
            async with self._lock:
                if self.is_stale():
                    await self.refresh()
        return self.state

    async def refresh(self) -> HealthState:
        healthy = await self.provider.health_check()
        verdict = "healthy" if healthy else "unhealthy"
        logger.info("%s health check: %s", self.provider.kind, verdict)
        return self.state

    def mark_healthy(self) -> None:
        self.provider.health.set_verdict(True)

    def mark_unhealthy(self) -> None:
        self.provider.health.set_verdict(False)
