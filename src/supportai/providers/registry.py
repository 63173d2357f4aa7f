"""Process-wide provider cache with safe-default fallback."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

import httpx

from supportai.errors import ConfigurationError
from supportai.providers.base import AIProvider, Clock
from supportai.providers.factory import create_provider, resolve_provider_kind
from supportai.providers.health import DEFAULT_STALE_AFTER_SECONDS, HealthMonitor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProviderHandle:
    kind: str
    provider: AIProvider
    monitor: HealthMonitor
    fallback_for: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_for is not None


class ProviderRegistry:
    """Caches one provider per requested kind.

    Instances are built lazily on first use. When the requested kind cannot
    be built, the safe-default kind is built from the same fields and cached
    under the requested kind, so later requests do not retry the failing
    construction until ``switch_provider`` or ``invalidate`` is called.
    Construction never awaits, so a lookup-then-store cannot interleave with
    another request.
    """

    def __init__(
        self,
        *,
        fallback_kind: str = "flowise",
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock | None = None,
        stale_after: float = DEFAULT_STALE_AFTER_SECONDS,
    ) -> None:
        self.fallback_kind = resolve_provider_kind(fallback_kind)
        self._transport = transport
        self._clock = clock
        self._stale_after = stale_after
        self._handles: dict[str, ProviderHandle] = {}

    def _build(self, kind: str, fields: Mapping[str, object]) -> ProviderHandle:
        provider = create_provider(kind, fields, transport=self._transport, clock=self._clock)
        monitor = HealthMonitor(provider, stale_after=self._stale_after)
        return ProviderHandle(kind=provider.kind, provider=provider, monitor=monitor)

    @staticmethod
    def _key(kind: str) -> str:
        try:
            return resolve_provider_kind(kind)
        except ConfigurationError:
            return kind.strip().lower()

    def cached(self, kind: str) -> ProviderHandle | None:
        return self._handles.get(self._key(kind))

    def get_or_create(self, kind: str, fields: Mapping[str, object]) -> ProviderHandle:
        """Return the cached handle for ``kind``, building it (or the fallback) on first use.

        Raises ConfigurationError when neither the requested kind nor the
        safe default can be built; nothing is cached in that case.
        """
        requested = self._key(kind)
        handle = self._handles.get(requested)
        if handle is not None:
            return handle
        try:
            handle = self._build(requested, fields)
            logger.info("AI provider initialized: %s", requested)
        except ConfigurationError as exc:
            logger.error("Failed to initialize AI provider %r: %s", requested, exc)
            if requested == self.fallback_kind:
                raise
            try:
                fallback = self._build(self.fallback_kind, fields)
            except ConfigurationError as fallback_exc:
                logger.error(
                    "Fallback to %s provider also failed: %s", self.fallback_kind, fallback_exc
                )
                raise ConfigurationError(
                    f"{requested} provider failed ({exc}); "
                    f"fallback {self.fallback_kind} provider failed ({fallback_exc})"
                ) from fallback_exc
            handle = ProviderHandle(
                kind=fallback.kind,
                provider=fallback.provider,
                monitor=fallback.monitor,
                fallback_for=requested,
            )
            logger.info("Fallback to %s provider successful", self.fallback_kind)
        self._handles[requested] = handle
        return handle

    def switch_provider(self, kind: str, fields: Mapping[str, object]) -> ProviderHandle:
        """Replace the cached instance for ``kind`` with a freshly built one.

        The new instance is built before the swap; on ConfigurationError the
        previous instance stays in place.
        """
        handle = self._build(resolve_provider_kind(kind), fields)
        self._handles[handle.kind] = handle
        logger.info("AI provider successfully switched to: %s", handle.kind)
        return handle

    def invalidate(self, kind: str | None = None) -> None:
        if kind is None:
            self._handles.clear()
            return
        self._handles.pop(self._key(kind), None)
