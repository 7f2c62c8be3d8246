from __future__ import annotations

import logging
import time
from typing import Any, Callable

from curriculum_planner.core.errors import MalformedResponseError, PlannerError


logger = logging.getLogger(__name__)


def should_retry(exc: PlannerError, *, attempt: int, max_attempts: int, retry_malformed: bool) -> bool:
    if attempt >= max_attempts:
        return False
    if isinstance(exc, MalformedResponseError):
        # 형식 오류는 프롬프트를 바꿔 재요청할 때만 의미가 있다.
        return retry_malformed
    return exc.retryable


def run_ai_with_retry(
    call: Callable[[int], Any],
    *,
    pipeline: str,
    max_attempts: int = 2,
    backoff_sec: float = 0.5,
    retry_malformed: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[Any, int]:
    """Run ``call(attempt)`` until it succeeds or a non-retryable failure occurs.

    Transient upstream failures back off linearly (``backoff_sec * attempt``).
    Malformed model output is retried only when the caller changes the prompt
    between attempts, which it signals with ``retry_malformed``; no delay is
    applied for those. Returns the result and the attempt number it came from.
    """
    attempts = max(1, int(max_attempts))

    for attempt in range(1, attempts + 1):
        try:
            return call(attempt), attempt
        except PlannerError as exc:
            if not should_retry(exc, attempt=attempt, max_attempts=attempts, retry_malformed=retry_malformed):
                logger.warning(
                    "[%s] failed on attempt %d/%d: %s (%s)",
                    pipeline,
                    attempt,
                    attempts,
                    exc.error_code,
                    exc.reason,
                )
                raise
            logger.warning(
                "[%s] attempt %d/%d failed with %s, retrying: %s",
                pipeline,
                attempt,
                attempts,
                exc.error_code,
                exc.reason,
            )
            if not isinstance(exc, MalformedResponseError) and backoff_sec > 0:
                sleep(backoff_sec * attempt)

    raise AssertionError("unreachable")  # pragma: no cover
