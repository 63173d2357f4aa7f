"""Message-role assembly shared by chat-completion style providers."""

from supportai.conversation import Speaker, has_role_markers, parse_turns
from supportai.rag.prompts import is_rag_prompt

_ROLE_BY_SPEAKER = {Speaker.CUSTOMER: "user", Speaker.AGENT: "assistant"}


def build_chat_messages(
    context: str, system_prompt: str, rag_prompt: bool | None = None
) -> list[dict[str, str]]:
    """``rag_prompt=None`` means the caller did not say; the marker decides then."""
    if rag_prompt is None:
        rag_prompt = is_rag_prompt(context)
    # RAG prompts already carry instructions, context and history in one block
    if rag_prompt:
        return [{"role": "user", "content": context}]

    messages: list[dict[str, str]] = []
    if system_prompt.strip():
        messages.append({"role": "system", "content": system_prompt})
    if has_role_markers(context):
        for turn in parse_turns(context):
            messages.append({"role": _ROLE_BY_SPEAKER[turn.speaker], "content": turn.text})
    else:
        messages.append({"role": "user", "content": context})
    return messages
