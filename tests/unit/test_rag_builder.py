from collections.abc import Sequence

import pytest

from supportai.rag.builder import RAGContextBuilder, format_context_block, format_sources
from supportai.rag.prompts import CITE_SOURCES_INSTRUCTION, RAG_PROMPT_MARKER, is_rag_prompt
from supportai.rag.search import EmptyContextSearcher, RAGContext


class _StaticSearcher:
    def __init__(self, results: list[RAGContext]) -> None:
        self.results = results
        self.queries: list[tuple[str, int]] = []

    async def search(self, query: str, k: int) -> Sequence[RAGContext]:
        self.queries.append((query, k))
        return self.results[:k]


_REFUND = RAGContext(
    content="Refunds are issued within 14 days.\nContact billing for exceptions.",
    metadata={
        "source_name": "Refund policy",
        "source_url": "https://help.example.com/refunds",
        "chunk_index": 0,
        "total_chunks": 2,
    },
    relevance_score=0.91,
)
_SHIPPING = RAGContext(content="We ship to the EU only.", metadata={"title": "Shipping FAQ"})


@pytest.mark.asyncio
async def test_no_contexts_returns_query_unchanged() -> None:
    builder = RAGContextBuilder(EmptyContextSearcher())
    raw = "Customer: How long do refunds take?"
    enhanced = await builder.build_enhanced_prompt(raw)
    assert enhanced.enhanced_text == raw
    assert enhanced.contexts_used == 0
    assert enhanced.sources == ()
    assert enhanced.search_query == "How long do refunds take?"


@pytest.mark.asyncio
async def test_contexts_are_wrapped_with_marker_and_sources() -> None:
    searcher = _StaticSearcher([_REFUND, _SHIPPING])
    builder = RAGContextBuilder(searcher)
    raw = "Customer: hi\nAgent: hello\nCustomer: How long do refunds take?"
    enhanced = await builder.build_enhanced_prompt(raw, k=3)

    assert searcher.queries == [("How long do refunds take?", 3)]
    assert enhanced.contexts_used == 2
    assert is_rag_prompt(enhanced.enhanced_text)
    assert enhanced.enhanced_text.startswith(RAG_PROMPT_MARKER)
    assert CITE_SOURCES_INSTRUCTION in enhanced.enhanced_text
    assert "Customer: hi\nAgent: hello" in enhanced.enhanced_text
    assert "CURRENT QUESTION: How long do refunds take?" in enhanced.enhanced_text
    assert enhanced.sources == (
        "Refund policy (https://help.example.com/refunds)",
        "Shipping FAQ",
    )


@pytest.mark.asyncio
async def test_hidden_sources_omit_cite_instruction() -> None:
    builder = RAGContextBuilder(_StaticSearcher([_REFUND]))
    enhanced = await builder.build_enhanced_prompt("refunds?", k=1, show_sources=False)
    assert CITE_SOURCES_INSTRUCTION not in enhanced.enhanced_text
    assert enhanced.contexts_used == 1


@pytest.mark.asyncio
async def test_k_below_one_requests_one_passage() -> None:
    searcher = _StaticSearcher([_REFUND, _SHIPPING])
    enhanced = await RAGContextBuilder(searcher).build_enhanced_prompt("refunds?", k=0)
    assert searcher.queries == [("refunds?", 1)]
    assert enhanced.contexts_used == 1


def test_context_block_lists_provenance_and_chunk() -> None:
    block = format_context_block([_REFUND, _SHIPPING])
    assert block.splitlines() == [
        "- [1] Refund policy (https://help.example.com/refunds) - chunk 1 of 2",
        "  Refunds are issued within 14 days.",
        "  Contact billing for exceptions.",
        "- [2] Shipping FAQ",
        "  We ship to the EU only.",
    ]


def test_sources_skip_unnamed_contexts() -> None:
    assert format_sources([RAGContext(content="anon"), _SHIPPING]) == ("Shipping FAQ",)


class _Rephraser:
    def __init__(self, answer: str = "", error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[tuple[str, list[tuple[str, str]]]] = []

    async def rephrase(self, question, history):
        self.calls.append((question, list(history)))
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.mark.asyncio
async def test_follow_up_question_is_rephrased_before_search() -> None:
    searcher = _StaticSearcher([_REFUND])
    rephraser = _Rephraser(answer="  library card price  ")
    builder = RAGContextBuilder(searcher, rephraser)
    raw = "Customer: I need a library card\nAgent: Sure, adult or child?\nCustomer: how much?"

    enhanced = await builder.build_enhanced_prompt(raw, k=2)

    assert rephraser.calls == [("how much?", [("I need a library card", "Sure, adult or child?")])]
    assert searcher.queries == [("library card price", 2)]
    assert enhanced.search_query == "library card price"
    assert enhanced.rephrased is True
    assert "CURRENT QUESTION: how much?" in enhanced.enhanced_text


@pytest.mark.asyncio
async def test_first_message_skips_rephrasing() -> None:
    searcher = _StaticSearcher([])
    rephraser = _Rephraser(answer="never used")
    enhanced = await RAGContextBuilder(searcher, rephraser).build_enhanced_prompt(
        "Customer: how do refunds work?"
    )
    assert rephraser.calls == []
    assert searcher.queries == [("how do refunds work?", 3)]
    assert enhanced.rephrased is False


@pytest.mark.asyncio
@pytest.mark.parametrize("rephraser", [_Rephraser(error=RuntimeError("down")), _Rephraser("")])
async def test_unusable_rephrase_falls_back_to_latest_message(rephraser: _Rephraser) -> None:
    searcher = _StaticSearcher([])
    raw = "Customer: hi\nAgent: hello\nCustomer: refunds?"
    enhanced = await RAGContextBuilder(searcher, rephraser).build_enhanced_prompt(raw)
    assert searcher.queries == [("refunds?", 3)]
    assert enhanced.search_query == "refunds?"
    assert enhanced.rephrased is False
