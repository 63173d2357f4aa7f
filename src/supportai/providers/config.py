"""Validated, immutable connection settings for each provider variant.

Each config class can be built directly or from a loose mapping of fields
(snake_case names or the environment-style upper-case names used by the
settings store). Construction fails with ConfigurationError when a field the
variant needs is blank; nothing here touches the network.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar
from urllib.parse import parse_qs, urlsplit

from supportai.errors import ConfigurationError

AZURE_DEFAULT_API_VERSION = "2024-10-21"
AZURE_EU_REGIONS: tuple[str, ...] = (
    "westeurope",
    "northeurope",
    "swedencentral",
    "francecentral",
    "francesouth",
    "germanywestcentral",
    "germanynorth",
    "italynorth",
    "polandcentral",
    "spaincentral",
    "norwayeast",
    "switzerlandnorth",
    "switzerlandwest",
)


def _pick(fields: Mapping[str, object], *names: str) -> str:
    for name in names:
        value = fields.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def _require(kind: str, **values: str) -> None:
    missing = [name for name, value in values.items() if not value.strip()]
    if missing:
        raise ConfigurationError(f"{kind} provider requires: {', '.join(missing)}")


def _require_http_url(kind: str, name: str, value: str) -> None:
    parts = urlsplit(value)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ConfigurationError(f"{kind} provider {name} must be an http(s) URL: {value!r}")


@dataclass(frozen=True, slots=True)
class FlowiseConfig:
    kind: ClassVar[str] = "flowise"

    url: str
    chatflow_id: str
    api_key: str = ""

    def __post_init__(self) -> None:
        _require(self.kind, url=self.url, chatflow_id=self.chatflow_id)
        _require_http_url(self.kind, "url", self.url)

    @classmethod
    def from_mapping(cls, fields: Mapping[str, object]) -> "FlowiseConfig":
        return cls(
            url=_pick(fields, "url", "flowise_url", "FLOWISE_URL").rstrip("/"),
            chatflow_id=_pick(fields, "chatflow_id", "flowise_chatflow_id", "FLOWISE_CHATFLOW_ID"),
            api_key=_pick(fields, "api_key", "flowise_api_key", "FLOWISE_API_KEY"),
        )


@dataclass(frozen=True, slots=True)
class OpenRouterConfig:
    kind: ClassVar[str] = "openrouter"

    api_key: str
    model: str
    system_prompt: str = ""
    site_url: str = ""
    site_name: str = ""
    base_url: str = "https://openrouter.ai/api/v1"

    def __post_init__(self) -> None:
        _require(self.kind, api_key=self.api_key, model=self.model, base_url=self.base_url)
        _require_http_url(self.kind, "base_url", self.base_url)

    @classmethod
    def from_mapping(cls, fields: Mapping[str, object]) -> "OpenRouterConfig":
        base_url = _pick(fields, "base_url", "openrouter_base_url", "OPENROUTER_BASE_URL")
        return cls(
            api_key=_pick(fields, "api_key", "openrouter_api_key", "OPENROUTER_API_KEY"),
            model=_pick(fields, "model", "openrouter_model", "OPENROUTER_MODEL"),
            system_prompt=_pick(fields, "system_prompt", "SYSTEM_PROMPT"),
            site_url=_pick(fields, "site_url", "SITE_URL"),
            site_name=_pick(fields, "site_name", "SITE_NAME"),
            base_url=base_url.rstrip("/") or "https://openrouter.ai/api/v1",
        )


def parse_deployment_uri(uri: str) -> tuple[str, str, str]:
    """Split an Azure deployment URI into (resource host, deployment, api version).

    Accepts ``https://<host>/openai/deployments/<name>[/...][?api-version=...]``.
    The api version is ``""`` when the query string does not carry one.
    """
    parts = urlsplit(uri.strip())
    if parts.scheme != "https" or not parts.hostname:
        raise ConfigurationError(f"azure deployment URI must be an https URL: {uri!r}")
    segments = [segment for segment in parts.path.split("/") if segment]
    try:
        index = segments.index("deployments")
        deployment = segments[index + 1]
    except (ValueError, IndexError):
        raise ConfigurationError(
            f"azure deployment URI has no /openai/deployments/<name> path: {uri!r}"
        ) from None
    if index == 0 or segments[index - 1] != "openai":
        raise ConfigurationError(f"azure deployment URI path must start with /openai: {uri!r}")
    api_version = parse_qs(parts.query).get("api-version", [""])[0]
    return parts.hostname, deployment, api_version


def _normalize_resource(resource_name: str) -> str:
    value = resource_name.strip()
    if "://" in value:
        value = urlsplit(value).hostname or ""
    value = value.strip("/").lower()
    if value and "." not in value:
        value = f"{value}.openai.azure.com"
    return value


@dataclass(frozen=True, slots=True)
class AzureOpenAIConfig:
    kind: ClassVar[str] = "azure"

    resource_name: str
    deployment_name: str
    api_key: str
    api_version: str = AZURE_DEFAULT_API_VERSION
    system_prompt: str = ""

    def __post_init__(self) -> None:
        _require(
            self.kind,
            resource_name=self.resource_name,
            deployment_name=self.deployment_name,
            api_key=self.api_key,
            api_version=self.api_version,
        )
        host = _normalize_resource(self.resource_name)
        if not any(region in host for region in AZURE_EU_REGIONS):
            raise ConfigurationError(
                f"Azure OpenAI resource {self.resource_name!r} does not appear to be in an "
                f"EU region (allowed: {', '.join(AZURE_EU_REGIONS)})"
            )

    @property
    def host(self) -> str:
        return _normalize_resource(self.resource_name)

    @classmethod
    def from_mapping(cls, fields: Mapping[str, object]) -> "AzureOpenAIConfig":
        resource = _pick(fields, "resource_name", "resourceName", "AZURE_OPENAI_RESOURCE_NAME")
        deployment = _pick(
            fields, "deployment_name", "deploymentName", "AZURE_OPENAI_DEPLOYMENT_NAME"
        )
        api_version = _pick(fields, "api_version", "apiVersion", "AZURE_OPENAI_API_VERSION")
        uri = _pick(fields, "deployment_uri", "deploymentUri", "AZURE_OPENAI_DEPLOYMENT_URI")
        if uri:
            uri_resource, uri_deployment, uri_version = parse_deployment_uri(uri)
            resource = uri_resource
            deployment = uri_deployment
            api_version = uri_version or api_version
        return cls(
            resource_name=resource,
            deployment_name=deployment,
            api_key=_pick(fields, "api_key", "apiKey", "AZURE_OPENAI_API_KEY"),
            api_version=api_version or AZURE_DEFAULT_API_VERSION,
            system_prompt=_pick(fields, "system_prompt", "systemPrompt", "SYSTEM_PROMPT"),
        )


ProviderConfig = FlowiseConfig | OpenRouterConfig | AzureOpenAIConfig
