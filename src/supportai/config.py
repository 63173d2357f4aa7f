"""Application configuration contract."""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    ai_provider: str = Field(alias="AI_PROVIDER", default="flowise")
    fallback_provider: str = Field(alias="FALLBACK_PROVIDER", default="flowise")

    flowise_url: str = Field(alias="FLOWISE_URL", default="")
    flowise_chatflow_id: str = Field(alias="FLOWISE_CHATFLOW_ID", default="")
    flowise_api_key: str = Field(alias="FLOWISE_API_KEY", default="")

    openrouter_api_key: str = Field(alias="OPENROUTER_API_KEY", default="")
    openrouter_model: str = Field(alias="OPENROUTER_MODEL", default="google/gemini-2.5-flash")
    openrouter_base_url: str = Field(
        alias="OPENROUTER_BASE_URL", default="https://openrouter.ai/api/v1"
    )
    system_prompt: str = Field(alias="SYSTEM_PROMPT", default="")
    site_url: str = Field(alias="SITE_URL", default="http://localhost:3002")
    site_name: str = Field(alias="SITE_NAME", default="Support chatbot")

    azure_openai_resource_name: str = Field(alias="AZURE_OPENAI_RESOURCE_NAME", default="")
    azure_openai_deployment_name: str = Field(alias="AZURE_OPENAI_DEPLOYMENT_NAME", default="")
    azure_openai_api_key: str = Field(alias="AZURE_OPENAI_API_KEY", default="")
    azure_openai_api_version: str = Field(alias="AZURE_OPENAI_API_VERSION", default="2024-10-21")
    azure_openai_deployment_uri: str = Field(alias="AZURE_OPENAI_DEPLOYMENT_URI", default="")

    rag_k: int = Field(alias="RAG_K", default=3)
    rag_show_sources: bool = Field(alias="RAG_SHOW_SOURCES", default=True)
    rephrasing_model: str = Field(alias="REPHRASING_MODEL", default="google/gemini-2.5-flash-lite")

    health_check_interval_seconds: float = Field(
        alias="HEALTH_CHECK_INTERVAL_SECONDS", default=300.0
    )
    retry_max_attempts: int = Field(alias="RETRY_MAX_ATTEMPTS", default=3)
    retry_base_delay_ms: int = Field(alias="RETRY_BASE_DELAY_MS", default=2000)
    settings_store_timeout_seconds: float = Field(
        alias="SETTINGS_STORE_TIMEOUT_SECONDS", default=2.0
    )

    def provider_fields(self) -> dict[str, str]:
        """Provider connection fields keyed by their environment names."""
        return {
            "FLOWISE_URL": self.flowise_url,
            "FLOWISE_CHATFLOW_ID": self.flowise_chatflow_id,
            "FLOWISE_API_KEY": self.flowise_api_key,
            "OPENROUTER_API_KEY": self.openrouter_api_key,
            "OPENROUTER_MODEL": self.openrouter_model,
            "OPENROUTER_BASE_URL": self.openrouter_base_url,
            "SYSTEM_PROMPT": self.system_prompt,
            "SITE_URL": self.site_url,
            "SITE_NAME": self.site_name,
            "AZURE_OPENAI_RESOURCE_NAME": self.azure_openai_resource_name,
            "AZURE_OPENAI_DEPLOYMENT_NAME": self.azure_openai_deployment_name,
            "AZURE_OPENAI_API_KEY": self.azure_openai_api_key,
            "AZURE_OPENAI_API_VERSION": self.azure_openai_api_version,
            "AZURE_OPENAI_DEPLOYMENT_URI": self.azure_openai_deployment_uri,
        }


_REQUIRED_BY_PROVIDER: dict[str, tuple[str, ...]] = {
    "flowise": ("FLOWISE_URL", "FLOWISE_CHATFLOW_ID"),
    "openrouter": ("OPENROUTER_API_KEY", "OPENROUTER_MODEL"),
    "azure": ("AZURE_OPENAI_API_KEY",),
}


def validate_settings_for_env(settings: Settings) -> None:
    if settings.rag_k < 1:
        logger.warning("RAG_K=%s is below 1; retrieval will request one passage", settings.rag_k)

    if settings.app_env != "prod":
        return

    missing: list[str] = []
    provider = settings.ai_provider.strip().lower()
    fields = settings.provider_fields()
    required = _REQUIRED_BY_PROVIDER.get(provider)
    if required is None:
        missing.append(f"AI_PROVIDER(unsupported value {provider!r})")
    else:
        for key in required:
            if not fields[key].strip():
                missing.append(key)
    if provider == "azure":
        has_uri = bool(settings.azure_openai_deployment_uri.strip())
        has_parts = bool(
            settings.azure_openai_resource_name.strip()
            and settings.azure_openai_deployment_name.strip()
        )
        if not (has_uri or has_parts):
            missing.append("AZURE_OPENAI_DEPLOYMENT_URI(or RESOURCE_NAME + DEPLOYMENT_NAME)")
    fallback = settings.fallback_provider.strip().lower()
    if fallback not in _REQUIRED_BY_PROVIDER:
        missing.append(f"FALLBACK_PROVIDER(unsupported value {fallback!r})")
    if settings.retry_max_attempts < 1:
        missing.append("RETRY_MAX_ATTEMPTS(must be >= 1)")

    if missing:
        keys = ", ".join(sorted(set(missing)))
        raise ValueError(f"invalid production configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
