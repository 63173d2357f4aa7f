"""Boundary types for the vector-search collaborator."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class RAGContext:
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    relevance_score: float = 0.0

    @property
    def source_name(self) -> str | None:
        for key in ("source_name", "sourceName", "source_document_name", "title"):
            value = self.metadata.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    @property
    def source_url(self) -> str | None:
        for key in ("source_url", "sourceUrl", "url"):
            value = self.metadata.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None


class ContextSearcher(Protocol):
    async def search(self, query: str, k: int) -> Sequence[RAGContext]: ...


class EmptyContextSearcher:
    """Searcher used when no knowledge base is wired in; always finds nothing."""

    async def search(self, query: str, k: int) -> Sequence[RAGContext]:
        del query, k
        return []
