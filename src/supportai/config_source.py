"""Resolution of the active provider configuration.

The settings store is owned by the host application; this module only knows
how to ask it for a field mapping and how to fall back to environment
settings when the store is slow, failing, or empty.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from supportai.config import Settings, get_settings

logger = logging.getLogger(__name__)

_KIND_KEYS = ("AI_PROVIDER", "ai_provider", "provider", "providerKind")


@dataclass(frozen=True, slots=True)
class ActiveProviderConfig:
    kind: str
    fields: Mapping[str, str] = field(default_factory=dict)


class ConfigSource(Protocol):
    async def get_active_provider_config(self) -> ActiveProviderConfig: ...


class SettingsConfigSource:
    """Reads provider fields from environment-backed Settings."""

    def __init__(self, settings_loader: Callable[[], Settings] = get_settings) -> None:
        self._settings_loader = settings_loader

    async def get_active_provider_config(self) -> ActiveProviderConfig:
        settings = self._settings_loader()
        return ActiveProviderConfig(
            kind=settings.ai_provider.strip().lower() or "flowise",
            fields=settings.provider_fields(),
        )


StoreLookup = Callable[[], Awaitable[Mapping[str, object] | None]]


class StoreConfigSource:
    """Persisted-store lookup layered over an environment fallback.

    Non-empty store values override the fallback field by field. A lookup
    that times out, raises, or returns nothing yields the fallback unchanged.
    """

    def __init__(
        self,
        lookup: StoreLookup,
        fallback: ConfigSource | None = None,
        *,
        timeout_seconds: float = 2.0,
    ) -> None:
        self._lookup = lookup
        self._fallback = fallback or SettingsConfigSource()
        self._timeout_seconds = timeout_seconds

    async def _stored_fields(self) -> Mapping[str, object] | None:
        try:
            return await asyncio.wait_for(self._lookup(), timeout=self._timeout_seconds)
        except TimeoutError:
            logger.warning(
                "Settings store did not answer within %ss, using environment variables",
                self._timeout_seconds,
            )
        except Exception as exc:
            logger.warning("Settings store lookup failed, using environment variables: %s", exc)
        return None

    async def get_active_provider_config(self) -> ActiveProviderConfig:
        base = await self._fallback.get_active_provider_config()
        stored = await self._stored_fields()
        if not stored:
            return base
        merged = dict(base.fields)
        kind = base.kind
        for key, value in stored.items():
            text = "" if value is None else str(value).strip()
            if not text:
                continue
            if key in _KIND_KEYS:
                kind = text.lower()
                continue
            merged[key.upper()] = text
        return ActiveProviderConfig(kind=kind, fields=merged)
