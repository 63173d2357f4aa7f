"""Flowise provider adapter for self-hosted chatflows with built-in retrieval."""

from typing import ClassVar

import httpx

from supportai.conversation import Speaker, parse_turns
from supportai.errors import ResponseFormatError
from supportai.providers._http import post_json, probe
from supportai.providers.base import (
    GENERATE_TIMEOUT_SECONDS,
    HEALTH_TIMEOUT_SECONDS,
    Clock,
    HealthTracker,
)
from supportai.providers.config import FlowiseConfig
from supportai.rag.prompts import is_rag_prompt


class FlowiseProvider:
    kind: ClassVar[str] = "flowise"
    rag_eligible: ClassVar[bool] = False

    def __init__(
        self,
        config: FlowiseConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.health = HealthTracker(clock)
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.config.url}/api/v1/prediction/{self.config.chatflow_id}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    @staticmethod
    def build_question(context: str, rag_prompt: bool | None = None) -> str:
        if rag_prompt is None:
            rag_prompt = is_rag_prompt(context)
        if rag_prompt:
            return context
        if any(turn.speaker is Speaker.AGENT for turn in parse_turns(context)):
            return (
                "Please respond to the customer based on this conversation history:\n\n"
                f"{context}\n\n"
                "Provide a helpful, professional response that addresses the customer's "
                "latest message and any unresolved issues from the conversation."
            )
        return (
            f"Customer message: {context}\n\n"
            "Please provide a helpful, professional response to this customer inquiry."
        )

    async def generate_response(
        self, context: str, conversation_id: str, *, rag_prompt: bool | None = None
    ) -> str:
        body = {
            "question": self.build_question(context, rag_prompt),
            "overrideConfig": {"sessionId": conversation_id},
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
        candidates = [payload.get(key) for key in ("text", "answer")]
        texts = [value for value in candidates if isinstance(value, str)]
        if texts:
            return next((text for text in texts if text.strip()), "")
        raise ResponseFormatError(
            "Invalid response format from flowise: missing text", provider=self.kind
        )

    async def health_check(self) -> bool:
        healthy = await probe(
            self.endpoint,
            provider=self.kind,
            headers=self._headers(),
            payload={"question": "test"},
            timeout=HEALTH_TIMEOUT_SECONDS,
            transport=self._transport,
        )
        self.health.record(healthy)
        return healthy
