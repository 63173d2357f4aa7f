"""Provider construction helpers."""

from collections.abc import Mapping

import httpx

from supportai.errors import ConfigurationError, UnsupportedProviderError
from supportai.providers.azure_openai import AzureOpenAIProvider
from supportai.providers.base import AIProvider, Clock
from supportai.providers.config import (
    AzureOpenAIConfig,
    FlowiseConfig,
    OpenRouterConfig,
    ProviderConfig,
)
from supportai.providers.flowise import FlowiseProvider
from supportai.providers.openrouter import OpenRouterProvider

_CONFIG_TYPES: dict[str, type[ProviderConfig]] = {
    "flowise": FlowiseConfig,
    "openrouter": OpenRouterConfig,
    "azure": AzureOpenAIConfig,
}
_ALIASES = {
    "azure_openai": "azure",
    "azure-openai": "azure",
    "azureopenai": "azure",
}


def supported_providers() -> tuple[str, ...]:
    return tuple(_CONFIG_TYPES)


def resolve_provider_kind(name: str) -> str:
    value = name.strip().lower()
    value = _ALIASES.get(value, value)
    if value not in _CONFIG_TYPES:
        raise UnsupportedProviderError(name)
    return value


def build_provider_config(kind: str, fields: Mapping[str, object]) -> ProviderConfig:
    config_type = _CONFIG_TYPES[resolve_provider_kind(kind)]
    return config_type.from_mapping(fields)


def create_provider(
    kind: str,
    config: ProviderConfig | Mapping[str, object],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Clock | None = None,
) -> AIProvider:
    """Build a ready-to-call provider. Validation is local; no request is sent."""
    resolved = resolve_provider_kind(kind)
    if isinstance(config, Mapping):
        config = build_provider_config(resolved, config)
    if config.kind != resolved:
        raise ConfigurationError(
            f"{type(config).__name__} cannot configure the {resolved} provider"
        )
    if isinstance(config, FlowiseConfig):
        return FlowiseProvider(config, transport=transport, clock=clock)
    if isinstance(config, OpenRouterConfig):
        return OpenRouterProvider(config, transport=transport, clock=clock)
    return AzureOpenAIProvider(config, transport=transport, clock=clock)
