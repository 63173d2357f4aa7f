"""Per-request suggestion pipeline.

Each request walks ``resolve-config -> health-gate -> rag-enhance ->
generate -> retry -> finalize``, skipping the steps that do not apply, and
always ends with a SuggestionResult. Failures are reported through
``used_fallback`` and the diagnostic trace, never raised to the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from supportai.config import Settings, get_settings
from supportai.config_source import (
    ConfigSource,
    SettingsConfigSource,
    StoreConfigSource,
    StoreLookup,
)
from supportai.conversation import parse_conversation_history
from supportai.errors import ConfigurationError, ResponseFormatError, SupportAIError
from supportai.logging import request_context
from supportai.providers.base import EMPTY_RESPONSE_TEXT
from supportai.providers.registry import ProviderHandle, ProviderRegistry
from supportai.rag.builder import RAGContextBuilder
from supportai.rag.rephrase import OpenRouterQueryRephraser, QueryRephraser
from supportai.rag.search import ContextSearcher, EmptyContextSearcher
from supportai.retry import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_RETRIES, retry_with_backoff
from supportai.suggestions.fallback import select_fallback_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TraceStep:
    name: str
    detail: str = ""


@dataclass(frozen=True, slots=True)
class SuggestionResult:
    response_text: str
    used_rag: bool
    used_fallback: bool
    provider: str
    diagnostic_trace: tuple[TraceStep, ...]
    sources: tuple[str, ...] = ()
    contexts_used: int = 0
    attempts: int = 0

    @property
    def step_names(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.diagnostic_trace)

    def to_dict(self) -> dict[str, Any]:
        return {
            "response_text": self.response_text,
            "used_rag": self.used_rag,
            "used_fallback": self.used_fallback,
            "provider": self.provider,
            "sources": list(self.sources),
            "contexts_used": self.contexts_used,
            "attempts": self.attempts,
            "diagnostic_trace": [
                {"name": step.name, "detail": step.detail} for step in self.diagnostic_trace
            ],
        }


@dataclass(slots=True)
class _RequestState:
    transcript: str
    provider: str = ""
    used_rag: bool = False
    sources: tuple[str, ...] = ()
    contexts_used: int = 0
    attempts: int = 0
    trace: list[TraceStep] = field(default_factory=list)

    def step(self, name: str, detail: str = "") -> None:
        self.trace.append(TraceStep(name, detail))


class SuggestionOrchestrator:
    def __init__(
        self,
        config_source: ConfigSource,
        registry: ProviderRegistry,
        *,
        context_builder: RAGContextBuilder | None = None,
        rag_k: int = 3,
        rag_show_sources: bool = True,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")
        self.config_source = config_source
        self.registry = registry
        self.context_builder = context_builder or RAGContextBuilder(EmptyContextSearcher())
        self.rag_k = rag_k
        self.rag_show_sources = rag_show_sources
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep

    async def generate_suggestion(
        self, conversation_id: str, transcript: str, enable_rag: bool = True
    ) -> SuggestionResult:
        state = _RequestState(transcript=transcript)
        with request_context(conversation_id=conversation_id):
            try:
                return await self._run(state, conversation_id, enable_rag)
            except Exception as exc:
                logger.exception("Suggestion pipeline failed unexpectedly")
                state.step("error", f"{type(exc).__name__}: {exc}")
                return self._finalize(state, None)

    async def _run(
        self, state: _RequestState, conversation_id: str, enable_rag: bool
    ) -> SuggestionResult:
        active = await self.config_source.get_active_provider_config()
        state.provider = active.kind
        try:
            handle = self.registry.get_or_create(active.kind, active.fields)
        except ConfigurationError as exc:
            state.step("resolve-config", f"no usable provider: {exc}")
            return self._finalize(state, None)
        state.provider = handle.kind
        if handle.is_fallback:
            state.step("resolve-config", f"{handle.kind} (fallback for {handle.fallback_for})")
        else:
            state.step("resolve-config", handle.kind)
        with request_context(provider=handle.kind):
            return await self._serve(state, handle, conversation_id, enable_rag)

    async def _serve(
        self,
        state: _RequestState,
        handle: ProviderHandle,
        conversation_id: str,
        enable_rag: bool,
    ) -> SuggestionResult:
        was_stale = handle.monitor.is_stale()
        health = await handle.monitor.ensure_checked()
        verdict = "healthy" if health.is_healthy else "unhealthy"
        state.step("health-gate", f"{verdict} (re-checked)" if was_stale else f"{verdict} (cached)")
        if not health.is_healthy:
            logger.info("%s provider is unhealthy, using fallback response", handle.kind)
            return self._finalize(state, None)

        text = state.transcript
        if enable_rag and handle.provider.rag_eligible:
            text = await self._enhance(state, text)

        return await self._generate(state, handle, text, conversation_id)

    async def _enhance(self, state: _RequestState, text: str) -> str:
        history = parse_conversation_history(text)
        try:
            enhanced = await self.context_builder.build_enhanced_prompt(
                text, self.rag_k, self.rag_show_sources
            )
        except Exception as exc:
            logger.warning("RAG enhancement failed, continuing without context: %s", exc)
            state.step("rag-enhance", f"skipped after {type(exc).__name__}: {exc}")
            return text
        state.used_rag = enhanced.contexts_used > 0
        state.sources = enhanced.sources
        state.contexts_used = enhanced.contexts_used
        query_label = "rephrased_query" if enhanced.rephrased else "query"
        state.step(
            "rag-enhance",
            f"history_pairs={len(history)} contexts={enhanced.contexts_used} "
            f"{query_label}={enhanced.search_query!r}",
        )
        return enhanced.enhanced_text

    async def _generate(
        self, state: _RequestState, handle: ProviderHandle, text: str, conversation_id: str
    ) -> SuggestionResult:
        # only an assembled prompt is sent as one block; a transcript that merely
        # starts with the marker text is still parsed as dialogue
        rag_prompt = state.used_rag

        async def _call() -> str:
            state.attempts += 1
            return await handle.provider.generate_response(
                text, conversation_id, rag_prompt=rag_prompt
            )

        def _on_retry(attempt: int, exc: BaseException, delay: float) -> None:
            state.step(
                "retry", f"attempt {attempt} failed ({type(exc).__name__}); waiting {delay:g}s"
            )

        state.step("generate", handle.kind)
        try:
            response = await retry_with_backoff(
                _call,
                self.max_retries,
                self.base_delay_ms,
                sleep=self._sleep,
                on_retry=_on_retry,
            )
        except ResponseFormatError as exc:
            logger.error("%s returned an unusable response: %s", handle.kind, exc)
            state.step("generate", f"failed: {exc}")
            return self._finalize(state, None)
        except (SupportAIError, httpx.HTTPError) as exc:
            logger.error(
                "Error generating AI suggestion from %s after %s attempts: %s",
                handle.kind,
                state.attempts,
                exc,
            )
            handle.monitor.mark_unhealthy()
            state.step("generate", f"failed after {state.attempts} attempts: {exc}")
            return self._finalize(state, None)

        handle.monitor.mark_healthy()
        logger.info("%s response received successfully", handle.kind)
        return self._finalize(state, response or EMPTY_RESPONSE_TEXT)

    def _finalize(self, state: _RequestState, response: str | None) -> SuggestionResult:
        used_fallback = response is None
        if used_fallback:
            response = select_fallback_response(state.transcript)
            logger.info("Returning fallback response (provider=%s)", state.provider or "none")
            state.step("finalize", "fallback response")
        else:
            state.step("finalize", "provider response")
        return SuggestionResult(
            response_text=response,
            used_rag=state.used_rag and not used_fallback,
            used_fallback=used_fallback,
            provider=state.provider,
            diagnostic_trace=tuple(state.trace),
            sources=state.sources if not used_fallback else (),
            contexts_used=state.contexts_used,
            attempts=state.attempts,
        )

    async def provider_health(self) -> dict[str, Any]:
        """Force a health probe of the active provider and report the outcome."""
        active = await self.config_source.get_active_provider_config()
        try:
            handle = self.registry.get_or_create(active.kind, active.fields)
        except ConfigurationError as exc:
            return {
                "provider": active.kind,
                "configured": False,
                "healthy": False,
                "error": str(exc),
            }
        health = await handle.monitor.refresh()
        return {
            "provider": handle.kind,
            "requested_provider": active.kind,
            "configured": True,
            "fallback": handle.is_fallback,
            "healthy": health.is_healthy,
            "last_checked_at": health.last_checked_at,
        }

    async def switch_provider(self, kind: str) -> ProviderHandle:
        """Rebuild ``kind`` from the current configuration and swap it into the cache."""
        active = await self.config_source.get_active_provider_config()
        return self.registry.switch_provider(kind, active.fields)


def build_orchestrator(
    settings: Settings | None = None,
    *,
    searcher: ContextSearcher | None = None,
    rephraser: QueryRephraser | None = None,
    store_lookup: StoreLookup | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SuggestionOrchestrator:
    """Wire an orchestrator from settings.

    With a ``searcher`` but no explicit ``rephraser``, follow-up questions are
    rephrased through OpenRouter when ``OPENROUTER_API_KEY`` and
    ``REPHRASING_MODEL`` are set.
    Raises ValueError for an unusable retry budget and UnsupportedProviderError
    for an unknown ``FALLBACK_PROVIDER``.
    """
    settings = settings or get_settings()
    if (
        rephraser is None
        and searcher is not None
        and settings.openrouter_api_key
        and settings.rephrasing_model
    ):
        rephraser = OpenRouterQueryRephraser(
            settings.openrouter_api_key,
            model=settings.rephrasing_model,
            base_url=settings.openrouter_base_url,
            site_url=settings.site_url,
            site_name=settings.site_name,
            transport=transport,
        )
    env_source = SettingsConfigSource(lambda: settings)
    config_source: ConfigSource = env_source
    if store_lookup is not None:
        config_source = StoreConfigSource(
            store_lookup, env_source, timeout_seconds=settings.settings_store_timeout_seconds
        )
    registry = ProviderRegistry(
        fallback_kind=settings.fallback_provider,
        transport=transport,
        stale_after=settings.health_check_interval_seconds,
    )
    return SuggestionOrchestrator(
        config_source,
        registry,
        context_builder=RAGContextBuilder(searcher or EmptyContextSearcher(), rephraser),
        rag_k=settings.rag_k,
        rag_show_sources=settings.rag_show_sources,
        max_retries=settings.retry_max_attempts,
        base_delay_ms=settings.retry_base_delay_ms,
    )
