"""Azure OpenAI provider restricted to EU-hosted resources."""

from typing import ClassVar
from urllib.parse import quote

import httpx

from supportai.providers._chat import build_chat_messages
from supportai.providers._http import chat_completion_text, post_json, probe
from supportai.providers.base import (
    GENERATE_TIMEOUT_SECONDS,
    HEALTH_TIMEOUT_SECONDS,
    Clock,
    HealthTracker,
)
from supportai.providers.config import AzureOpenAIConfig


class AzureOpenAIProvider:
    kind: ClassVar[str] = "azure"
    rag_eligible: ClassVar[bool] = True

    def __init__(
        self,
        config: AzureOpenAIConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.health = HealthTracker(clock)
        self._transport = transport

    @property
    def resource_name(self) -> str:
        return self.config.host

    @property
    def deployment_name(self) -> str:
        return self.config.deployment_name

    @property
    def api_version(self) -> str:
        return self.config.api_version

    def build_endpoint(self) -> str:
        deployment = quote(self.deployment_name, safe="")
        version = quote(self.api_version, safe="")
        return (
            f"https://{self.resource_name}/openai/deployments/{deployment}"
            f"/chat/completions?api-version={version}"
        )

    def _headers(self) -> dict[str, str]:
        return {"api-key": self.config.api_key, "Content-Type": "application/json"}

    async def generate_response(
        self, context: str, conversation_id: str, *, rag_prompt: bool | None = None
    ) -> str:
        body = {
            "messages": build_chat_messages(context, self.config.system_prompt, rag_prompt),
            "temperature": 0.2,
            "max_tokens": 1000,
            "user": conversation_id,
        }
        payload = await post_json(
            self.build_endpoint(),
            provider=self.kind,
            headers=self._headers(),
            payload=body,
            timeout=GENERATE_TIMEOUT_SECONDS,
            transport=self._transport,
            secrets=(self.config.api_key,),
        )
        return chat_completion_text(payload, provider=self.kind)

    async def health_check(self) -> bool:
        healthy = await probe(
            self.build_endpoint(),
            provider=self.kind,
            headers=self._headers(),
            payload={"messages": [{"role": "user", "content": "test"}], "max_tokens": 10},
            timeout=HEALTH_TIMEOUT_SECONDS,
            transport=self._transport,
        )
        self.health.record(healthy)
        return healthy
