import json

import httpx
import pytest

from supportai.rag.rephrase import (
    DEFAULT_REPHRASING_MODEL,
    OpenRouterQueryRephraser,
    build_rephrase_prompt,
)


def test_prompt_lists_history_with_pending_reply() -> None:
    history = [("library card", "adult or child?"), ("adult", "")]
    prompt = build_rephrase_prompt("how much?", history)
    assert "User: library card\nAssistant: adult or child?" in prompt
    assert "User: adult\nAssistant: (awaiting reply)" in prompt
    assert "Current question: how much?" in prompt


@pytest.mark.asyncio
async def test_openrouter_rephraser_request() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(
            200, json={"choices": [{"message": {"content": " adult library card price \n"}}]}
        )

    rephraser = OpenRouterQueryRephraser("sk-or-rephrase", transport=httpx.MockTransport(handler))
    query = await rephraser.rephrase("how much?", [("library card", "adult or child?")])

    assert query == "adult library card price"
    assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-or-rephrase"
    body = seen["body"]
    assert body["model"] == DEFAULT_REPHRASING_MODEL
    assert body["temperature"] == 0.1
    assert body["messages"][0]["role"] == "user"
    assert "Current question: how much?" in body["messages"][0]["content"]
