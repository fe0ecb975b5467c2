from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"
    TIMEOUT = "timeout"


class NextAction(str, Enum):
    STOP = "STOP"
    RETRY = "RETRY"
    ADVANCE = "ADVANCE"


@dataclass(frozen=True)
class ModelAttempt:
    model_id: str
    attempt_number: int
    outcome: AttemptOutcome
    status_code: Optional[int] = None
    reason: str = ""
    latency_ms: Optional[int] = None


def classify_status(status_code: int) -> AttemptOutcome:
    """429 and 5xx are transient; every other non-2xx is fatal for the model."""
    if 200 <= status_code < 300:
        return AttemptOutcome.SUCCESS
    if status_code == 429 or 500 <= status_code < 600:
        return AttemptOutcome.RETRYABLE_FAILURE
    return AttemptOutcome.FATAL_FAILURE


def decide_next_action(history: Sequence[ModelAttempt], max_attempts: int) -> NextAction:
    """
    Next step after the latest attempt.

    STOP on success, ADVANCE to the next model on a fatal failure or once the
    current model has used ``max_attempts``, otherwise RETRY the same model.
    """
    if not history:
        return NextAction.RETRY
    last = history[-1]
    if last.outcome == AttemptOutcome.SUCCESS:
        return NextAction.STOP
    if last.outcome == AttemptOutcome.FATAL_FAILURE:
        return NextAction.ADVANCE
    used = sum(1 for a in history if a.model_id == last.model_id)
    if used >= max(1, max_attempts):
        return NextAction.ADVANCE
    return NextAction.RETRY


def backoff_delay_ms(
    attempt_number: int,
    *,
    base_ms: int,
    max_jitter_ms: int,
    max_delay_ms: int,
    rng: Callable[[], float] = random.random,
) -> int:
    """base * 2^attempt (capped at max_delay_ms) plus up to max_jitter_ms of jitter."""
    exp = base_ms * (2 ** max(0, attempt_number))
    capped = min(exp, max_delay_ms) if max_delay_ms > 0 else exp
    jitter = int(rng() * max_jitter_ms) if max_jitter_ms > 0 else 0
    return max(0, capped) + jitter


__all__ = [
    "AttemptOutcome",
    "NextAction",
    "ModelAttempt",
    "classify_status",
    "decide_next_action",
    "backoff_delay_ms",
]
