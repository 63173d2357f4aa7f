import pytest

from supportai.errors import ConfigurationError, UnsupportedProviderError
from supportai.providers.azure_openai import AzureOpenAIProvider
from supportai.providers.config import FlowiseConfig
from supportai.providers.factory import (
    create_provider,
    resolve_provider_kind,
    supported_providers,
)
from supportai.providers.flowise import FlowiseProvider
from supportai.providers.openrouter import OpenRouterProvider


def test_supported_providers() -> None:
    assert supported_providers() == ("flowise", "openrouter", "azure")


@pytest.mark.parametrize(
    ("name", "expected"),
    [("Flowise", "flowise"), (" openrouter ", "openrouter"), ("azure_openai", "azure")],
)
def test_resolve_provider_kind(name: str, expected: str) -> None:
    assert resolve_provider_kind(name) == expected


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(UnsupportedProviderError, match="Unsupported AI provider: unknown"):
        create_provider("unknown", {})


def test_create_provider_from_mapping() -> None:
    flowise = create_provider(
        "flowise", {"FLOWISE_URL": "http://flowise.local", "FLOWISE_CHATFLOW_ID": "abc"}
    )
    openrouter = create_provider("openrouter", {"OPENROUTER_API_KEY": "k", "OPENROUTER_MODEL": "m"})
    azure = create_provider(
        "azure",
        {
            "AZURE_OPENAI_RESOURCE_NAME": "acme-swedencentral",
            "AZURE_OPENAI_DEPLOYMENT_NAME": "gpt-4o",
            "AZURE_OPENAI_API_KEY": "key",
        },
    )
    assert isinstance(flowise, FlowiseProvider)
    assert isinstance(openrouter, OpenRouterProvider)
    assert isinstance(azure, AzureOpenAIProvider)
    assert flowise.rag_eligible is False
    assert openrouter.rag_eligible is True
    assert azure.rag_eligible is True


def test_config_kind_must_match() -> None:
    config = FlowiseConfig(url="http://flowise.local", chatflow_id="abc")
    with pytest.raises(ConfigurationError, match="cannot configure the openrouter provider"):
        create_provider("openrouter", config)


def test_new_provider_starts_healthy(clock) -> None:
    provider = create_provider(
        "flowise",
        FlowiseConfig(url="http://flowise.local", chatflow_id="abc"),
        clock=clock,
    )
    assert provider.health.is_healthy is True
    assert provider.health.last_checked_at == clock.now
