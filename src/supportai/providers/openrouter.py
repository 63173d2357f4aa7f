"""OpenRouter provider adapter using the OpenAI-compatible chat completions API."""

from typing import ClassVar

import httpx

from supportai.providers._chat import build_chat_messages
from supportai.providers._http import chat_completion_text, post_json, probe
from supportai.providers.base import (
    GENERATE_TIMEOUT_SECONDS,
    HEALTH_TIMEOUT_SECONDS,
    Clock,
    HealthTracker,
)
from supportai.providers.config import OpenRouterConfig


class OpenRouterProvider:
    kind: ClassVar[str] = "openrouter"
    rag_eligible: ClassVar[bool] = True

    def __init__(
        self,
        config: OpenRouterConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.health = HealthTracker(clock)
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.config.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        if self.config.site_url:
            headers["HTTP-Referer"] = self.config.site_url
        if self.config.site_name:
            headers["X-Title"] = self.config.site_name
        return headers

    async def generate_response(
        self, context: str, conversation_id: str, *, rag_prompt: bool | None = None
    ) -> str:
        body = {
            "model": self.config.model,
            "messages": build_chat_messages(context, self.config.system_prompt, rag_prompt),
            "temperature": 0.2,
            "max_tokens": 1000,
            "user": conversation_id,
        }
        payload = await post_json(
            self.endpoint,
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
            self.endpoint,
            provider=self.kind,
            headers=self._headers(),
            payload={
                "model": self.config.model,
                "messages": [{"role": "user", "content": "test"}],
                "max_tokens": 10,
            },
            timeout=HEALTH_TIMEOUT_SECONDS,
            transport=self._transport,
        )
        self.health.record(healthy)
        return healthy
