from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from gateway.app.config import Settings
from gateway.app.observability import structured_log
from gateway.app.providers import (
    ProviderBadResponseError,
    ProviderError,
    ProviderHTTPError,
    ProviderTimeoutError,
    ProviderTransportError,
    TextModelProvider,
)
from gateway.app.reliability.failures import (
    AttemptOutcome,
    ModelAttempt,
    NextAction,
    backoff_delay_ms,
    classify_status,
    decide_next_action,
)
from gateway.app.reliability.timeouts import AttemptTimeoutError, enforce_timeout
from gateway.app.result import ReplyKind, extract_candidate_text, parse_model_text


@dataclass(frozen=True)
class OrchestratorConfig:
    models: Sequence[str]
    max_attempts: int = 3
    attempt_timeout_ms: int = 10_000
    base_delay_ms: int = 250
    max_jitter_ms: int = 100
    max_delay_ms: int = 4_000

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrchestratorConfig":
        return cls(
            models=tuple(settings.gemini_models),
            max_attempts=settings.model_max_attempts,
            attempt_timeout_ms=int(settings.model_timeout_seconds * 1000),
            base_delay_ms=settings.retry_base_delay_ms,
            max_jitter_ms=settings.retry_max_jitter_ms,
            max_delay_ms=settings.retry_max_delay_ms,
        )


@dataclass
class OrchestrationResult:
    ok: bool
    model_id: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    attempts: List[ModelAttempt] = field(default_factory=list)
    # some model answered 2xx with text that was not JSON
    malformed_reply: bool = False


@dataclass
class _AttemptReport:
    attempt: ModelAttempt
    payload: Optional[Dict[str, Any]] = None


async def _run_attempt(
    provider: TextModelProvider,
    model_id: str,
    attempt_number: int,
    payload: Dict[str, Any],
    timeout_ms: int,
    request_id: str,
) -> _AttemptReport:
    def _report(outcome: AttemptOutcome, reason: str, status: Optional[int] = None, latency: Optional[int] = None):
        return _AttemptReport(
            attempt=ModelAttempt(
                model_id=model_id,
                attempt_number=attempt_number,
                outcome=outcome,
                status_code=status,
                reason=reason,
                latency_ms=latency,
            )
        )

    try:
        response = await enforce_timeout(lambda: provider.generate(model_id, payload), timeout_ms)
    except (AttemptTimeoutError, ProviderTimeoutError):
        return _report(AttemptOutcome.TIMEOUT, "timeout")
    except ProviderHTTPError as exc:
        structured_log(
            {
                "event": "upstream_http_error",
                "request_id": request_id,
                "model": model_id,
                "attempt": attempt_number,
                "status": exc.status_code,
                "upstream_detail": exc.detail,
            },
            level=logging.WARNING,
        )
        return _report(classify_status(exc.status_code), "http_status", status=exc.status_code)
    except ProviderTransportError:
        return _report(AttemptOutcome.RETRYABLE_FAILURE, "transport")
    except ProviderBadResponseError as exc:
        return _report(AttemptOutcome.FATAL_FAILURE, "bad_response_body", status=exc.status_code)
    except ProviderError as exc:
        return _report(AttemptOutcome.FATAL_FAILURE, "provider_error", status=exc.status_code)

    # a malformed reply will not improve on retry, so it is fatal for this model only
    reply = parse_model_text(extract_candidate_text(response.data))
    if reply.kind == ReplyKind.EMPTY:
        return _report(AttemptOutcome.FATAL_FAILURE, "empty_reply", response.status_code, response.latency_ms)
    if reply.kind == ReplyKind.RAW_TEXT:
        return _report(AttemptOutcome.FATAL_FAILURE, "unparseable_reply", response.status_code, response.latency_ms)

    report = _report(AttemptOutcome.SUCCESS, "ok", response.status_code, response.latency_ms)
    report.payload = reply.payload
    return report


async def run_fallback_chain(
    provider: TextModelProvider,
    payload: Dict[str, Any],
    config: OrchestratorConfig,
    *,
    request_id: str = "-",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> OrchestrationResult:
    """
    Try each model in order; within a model, retry transient failures with
    exponential backoff. Attempts are strictly sequential and models are never
    raced. Returns ok=False once every model is exhausted; ``malformed_reply``
    then tells a chain that got unparseable replies apart from one that never
    got a usable answer at all.
    """
    history: List[ModelAttempt] = []

    for model_id in config.models:
        attempt_number = 0
        while True:
            attempt_number += 1
            report = await _run_attempt(
                provider, model_id, attempt_number, payload, config.attempt_timeout_ms, request_id
            )
            history.append(report.attempt)
            action = decide_next_action(history, config.max_attempts)

            structured_log(
                {
                    "event": "upstream_attempt",
                    "request_id": request_id,
                    "model": model_id,
                    "attempt": attempt_number,
                    "outcome": report.attempt.outcome.value,
                    "reason": report.attempt.reason,
                    "status": report.attempt.status_code,
                    "latency_ms": report.attempt.latency_ms,
                    "next": action.value,
                }
            )

            if action == NextAction.STOP:
                return OrchestrationResult(ok=True, model_id=model_id, payload=report.payload, attempts=history)
            if action == NextAction.ADVANCE:
                break

            delay_ms = backoff_delay_ms(
                attempt_number,
                base_ms=config.base_delay_ms,
                max_jitter_ms=config.max_jitter_ms,
                max_delay_ms=config.max_delay_ms,
                rng=rng,
            )
            await sleep(delay_ms / 1000.0)

    malformed = any(a.reason == "unparseable_reply" for a in history)
    structured_log(
        {
            "event": "upstream_exhausted",
            "request_id": request_id,
            "models": list(config.models),
            "attempts": len(history),
            "malformed_reply": malformed,
        },
        level=logging.WARNING,
    )
    return OrchestrationResult(ok=False, attempts=history, malformed_reply=malformed)


__all__ = ["OrchestratorConfig", "OrchestrationResult", "run_fallback_chain"]
