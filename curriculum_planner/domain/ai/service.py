from threading import BoundedSemaphore
from typing import Sequence

from curriculum_planner.core.errors import ConcurrencyLimitError
from curriculum_planner.domain.ai.providers.base import CompletionProvider


class AIService:
    def __init__(
        self,
        *,
        primary: CompletionProvider,
        max_concurrency: int = 4,
        acquire_timeout_ms: int = 200,
    ) -> None:
        self.primary = primary
        self._semaphore = BoundedSemaphore(value=max(1, int(max_concurrency)))
        self._acquire_timeout_sec = max(0.01, int(acquire_timeout_ms) / 1000)

    def complete(
        self,
        *,
        messages: Sequence[dict[str, str]],
        temperature: float,
    ) -> str:
        acquired = self._semaphore.acquire(timeout=self._acquire_timeout_sec)
        if not acquired:
            raise ConcurrencyLimitError("ai_backpressure_busy")
        try:
            return self.primary.complete(messages=messages, temperature=temperature)
        finally:
            self._semaphore.release()
