"""Retrieval-augmented prompt assembly."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from supportai.conversation import latest_user_message, parse_conversation_history
from supportai.rag.prompts import (
    CITE_SOURCES_INSTRUCTION,
    RAG_INSTRUCTIONS,
    RAG_PROMPT_MARKER,
    RAG_PROMPT_TEMPLATE,
)
from supportai.rag.rephrase import QueryRephraser
from supportai.rag.search import ContextSearcher, RAGContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EnhancedPrompt:
    enhanced_text: str
    contexts_used: int
    sources: tuple[str, ...] = ()
    search_query: str = ""
    rephrased: bool = False
    contexts: tuple[RAGContext, ...] = field(default=(), repr=False)


def _chunk_label(metadata: dict[str, object]) -> str | None:
    index = metadata.get("chunk_index")
    total = metadata.get("total_chunks")
    if isinstance(index, int) and isinstance(total, int) and total > 0:
        return f"chunk {index + 1} of {total}"
    return None


def format_context_block(contexts: Sequence[RAGContext]) -> str:
    bullets: list[str] = []
    for position, ctx in enumerate(contexts, start=1):
        label_parts: list[str] = []
        if ctx.source_name:
            label_parts.append(ctx.source_name)
        if ctx.source_url:
            label_parts.append(f"({ctx.source_url})")
        chunk = _chunk_label(ctx.metadata)
        if chunk:
            label_parts.append(f"- {chunk}")
        header = f"- [{position}]"
        if label_parts:
            header = f"{header} {' '.join(label_parts)}"
        body = "\n".join(f"  {line}" for line in ctx.content.strip().splitlines())
        bullets.append(f"{header}\n{body}")
    return "\n".join(bullets)


def format_sources(contexts: Sequence[RAGContext]) -> tuple[str, ...]:
    sources: list[str] = []
    for ctx in contexts:
        name = ctx.source_name
        if not name:
            continue
        sources.append(f"{name} ({ctx.source_url})" if ctx.source_url else name)
    return tuple(sources)


class RAGContextBuilder:
    def __init__(
        self, searcher: ContextSearcher, rephraser: QueryRephraser | None = None
    ) -> None:
        self.searcher = searcher
        self.rephraser = rephraser

    async def search_query_for(self, question: str, raw_query: str) -> tuple[str, bool]:
        """Search query plus whether it came from the rephraser.

        Rephrasing runs only when the transcript has history pairs besides the
        unanswered current question; a failing or empty rephrase falls back to
        ``question``.
        """
        if self.rephraser is None:
            return question, False
        history = parse_conversation_history(raw_query)
        if history and history[-1] == (question, ""):
            history = history[:-1]
        if not history:
            return question, False
        try:
            rephrased = (await self.rephraser.rephrase(question, history)).strip()
        except Exception as exc:
            logger.warning("Query rephrasing failed, searching with the original question: %s", exc)
            return question, False
        if not rephrased:
            return question, False
        return rephrased, rephrased != question

    async def build_enhanced_prompt(
        self, raw_query: str, k: int = 3, show_sources: bool = True
    ) -> EnhancedPrompt:
        """Retrieve passages for the latest customer message and wrap them around the query.

        With no passages the query is returned untouched, so a provider sees
        exactly what it would have seen without retrieval.
        """
        question = latest_user_message(raw_query) or raw_query.strip()
        search_query, rephrased = await self.search_query_for(question, raw_query)
        contexts = tuple(await self.searcher.search(search_query, max(1, k)))
        logger.info("RAG retrieval returned %s of %s requested passages", len(contexts), k)
        if not contexts:
            return EnhancedPrompt(
                enhanced_text=raw_query,
                contexts_used=0,
                search_query=search_query,
                rephrased=rephrased,
            )

        instructions = RAG_INSTRUCTIONS
        if show_sources:
            instructions = f"{instructions}\n- {CITE_SOURCES_INSTRUCTION}"
        enhanced = RAG_PROMPT_TEMPLATE.format(
            marker=RAG_PROMPT_MARKER,
            instructions=instructions,
            context=format_context_block(contexts),
            conversation=raw_query.strip(),
            question=question,
        )
        return EnhancedPrompt(
            enhanced_text=enhanced,
            contexts_used=len(contexts),
            sources=format_sources(contexts),
            search_query=search_query,
            rephrased=rephrased,
            contexts=contexts,
        )
