"""Turn a follow-up question plus history into a standalone search query."""

from collections.abc import Sequence
from typing import Protocol

import httpx

from supportai.providers._http import chat_completion_text, post_json
from supportai.providers.base import GENERATE_TIMEOUT_SECONDS

DEFAULT_REPHRASING_MODEL = "google/gemini-2.5-flash-lite"
PENDING_REPLY = "(awaiting reply)"

REPHRASE_PROMPT_TEMPLATE = """Task: rewrite the user's question as a better search query, taking the
conversation into account.

Conversation history:
{history}

Current question: {question}

Write one clear, specific search query in the language of the question that combines the
context of the conversation with the current question. If the current question answers an
earlier question, phrase the full question.

Examples:
- The history asks "Was the child deregistered?" and the user now says "yes, deregistered":
  rewrite as "school registration for a deregistered child".
- The history is about a library card and the user now asks "how much is it?": rewrite as
  "library card price".

Rewritten search query:"""


class QueryRephraser(Protocol):
    async def rephrase(self, question: str, history: Sequence[tuple[str, str]]) -> str: ...


def format_history(history: Sequence[tuple[str, str]]) -> str:
    return "\n".join(
        f"User: {user}\nAssistant: {assistant or PENDING_REPLY}" for user, assistant in history
    )


def build_rephrase_prompt(question: str, history: Sequence[tuple[str, str]]) -> str:
    return REPHRASE_PROMPT_TEMPLATE.format(history=format_history(history), question=question)


class OpenRouterQueryRephraser:
    """Rephrases with a small OpenRouter model at low temperature."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_REPHRASING_MODEL,
        base_url: str = "https://openrouter.ai/api/v1",
        site_url: str = "",
        site_name: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.site_url = site_url
        self.site_name = site_name
        self._transport = transport

    async def rephrase(self, question: str, history: Sequence[tuple[str, str]]) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.site_name:
            headers["X-Title"] = self.site_name
        payload = await post_json(
            f"{self.base_url}/chat/completions",
            provider="openrouter-rephrase",
            headers=headers,
            payload={
                "model": self.model,
                "messages": [
                    {"role": "user", "content": build_rephrase_prompt(question, history)}
                ],
                "temperature": 0.1,
            },
            timeout=GENERATE_TIMEOUT_SECONDS,
            transport=self._transport,
            secrets=(self.api_key,),
        )
        return chat_completion_text(payload, provider="openrouter-rephrase").strip()
