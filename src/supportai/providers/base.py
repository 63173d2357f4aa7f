"""Provider contracts."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

GENERATE_TIMEOUT_SECONDS = 30.0
HEALTH_TIMEOUT_SECONDS = 5.0
EMPTY_RESPONSE_TEXT = "I apologize, but I couldn't generate a response at this time."

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class HealthState:
    is_healthy: bool
    last_checked_at: float


class HealthTracker:
    """Holds one provider's HealthState.

    Updates replace the whole snapshot, and an observation older than the
    current snapshot is dropped, so concurrent writers cannot move
    ``last_checked_at`` backwards or pair it with a stale verdict.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or time.monotonic
        self._state = HealthState(is_healthy=True, last_checked_at=self._clock())

    @property
    def state(self) -> HealthState:
        return self._state

    @property
    def is_healthy(self) -> bool:
        return self._state.is_healthy

    @property
    def last_checked_at(self) -> float:
        return self._state.last_checked_at

    def now(self) -> float:
        return self._clock()

    def age(self) -> float:
        return self._clock() - self._state.last_checked_at

    def record(self, healthy: bool, *, observed_at: float | None = None) -> HealthState:
        observed = self._clock() if observed_at is None else observed_at
        current = self._state
        if observed < current.last_checked_at:
            return current
        self._state = HealthState(is_healthy=healthy, last_checked_at=observed)
        return self._state

    def set_verdict(self, healthy: bool) -> HealthState:
        """Flip the verdict without touching ``last_checked_at``.

        Only health checks move the timestamp, so the re-check window keeps counting
        from the last real health check.
        """
        current = self._state
        self._state = HealthState(is_healthy=healthy, last_checked_at=current.last_checked_at)
        return self._state


class AIProvider(Protocol):
    """Capability set shared by every upstream model variant.

    ``rag_eligible`` marks variants without built-in retrieval, for which the
    suggestion pipeline assembles a context-augmented prompt itself.
    ``rag_prompt`` tells a variant whether ``context`` is an assembled RAG
    prompt; when it is omitted the variant looks for the sentinel marker.
    """

    kind: str
    rag_eligible: bool
    health: HealthTracker

    async def generate_response(
        self, context: str, conversation_id: str, *, rag_prompt: bool | None = None
    ) -> str: ...

    async def health_check(self) -> bool: ...
