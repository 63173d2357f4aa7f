import pytest

from supportai.errors import ConfigurationError
from supportai.providers.registry import ProviderRegistry

_FLOWISE = {"FLOWISE_URL": "http://flowise.local", "FLOWISE_CHATFLOW_ID": "flow-1"}
_OPENROUTER = {"OPENROUTER_API_KEY": "sk-or-1", "OPENROUTER_MODEL": "m"}


def test_builds_once_and_caches() -> None:
    registry = ProviderRegistry()
    first = registry.get_or_create("openrouter", _OPENROUTER)
    second = registry.get_or_create("OpenRouter", {})
    assert first is second
    assert first.kind == "openrouter"
    assert first.is_fallback is False
    assert registry.cached("openrouter") is first


def test_invalid_config_falls_back_to_default_kind() -> None:
    registry = ProviderRegistry(fallback_kind="flowise")
    handle = registry.get_or_create("openrouter", {**_FLOWISE, "OPENROUTER_API_KEY": ""})
    assert handle.kind == "flowise"
    assert handle.fallback_for == "openrouter"
    assert registry.cached("openrouter") is handle


def test_unsupported_kind_falls_back() -> None:
    registry = ProviderRegistry()
    handle = registry.get_or_create("claude-local", _FLOWISE)
    assert handle.kind == "flowise"
    assert handle.fallback_for == "claude-local"


def test_failing_fallback_raises_and_caches_nothing() -> None:
    registry = ProviderRegistry()
    with pytest.raises(ConfigurationError, match="fallback flowise provider failed"):
        registry.get_or_create("openrouter", {})
    with pytest.raises(ConfigurationError):
        registry.get_or_create("flowise", {})
    assert registry.cached("openrouter") is None
    assert registry.cached("flowise") is None


def test_switch_provider_replaces_cached_instance() -> None:
    registry = ProviderRegistry()
    old = registry.get_or_create("openrouter", _OPENROUTER)
    new = registry.switch_provider("openrouter", {**_OPENROUTER, "OPENROUTER_MODEL": "other"})
    assert new is not old
    assert registry.get_or_create("openrouter", {}) is new
    assert new.provider.config.model == "other"


def test_failed_switch_keeps_previous_instance() -> None:
    registry = ProviderRegistry()
    old = registry.get_or_create("openrouter", _OPENROUTER)
    with pytest.raises(ConfigurationError):
        registry.switch_provider("openrouter", {})
    assert registry.cached("openrouter") is old


def test_invalidate() -> None:
    registry = ProviderRegistry()
    registry.get_or_create("openrouter", _OPENROUTER)
    registry.get_or_create("flowise", _FLOWISE)
    registry.invalidate("openrouter")
    assert registry.cached("openrouter") is None
    assert registry.cached("flowise") is not None
    registry.invalidate()
    assert registry.cached("flowise") is None
