from gateway.app.reliability.failures import (
    AttemptOutcome,
    ModelAttempt,
    NextAction,
    backoff_delay_ms,
    classify_status,
    decide_next_action,
)
from gateway.app.reliability.timeouts import AttemptTimeoutError, enforce_timeout
from gateway.app.reliability.engine import OrchestrationResult, OrchestratorConfig, run_fallback_chain

__all__ = [
    "AttemptOutcome",
    "ModelAttempt",
    "NextAction",
    "backoff_delay_ms",
    "classify_status",
    "decide_next_action",
    "AttemptTimeoutError",
    "enforce_timeout",
    "OrchestrationResult",
    "OrchestratorConfig",
    "run_fallback_chain",
]
