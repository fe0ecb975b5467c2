import pytest

from gateway.app.reliability import (
    AttemptOutcome,
    ModelAttempt,
    NextAction,
    backoff_delay_ms,
    classify_status,
    decide_next_action,
)


def _attempt(model, n, outcome):
    return ModelAttempt(model_id=model, attempt_number=n, outcome=outcome)


@pytest.mark.parametrize(
    "status,expected",
    [
        (200, AttemptOutcome.SUCCESS),
        (429, AttemptOutcome.RETRYABLE_FAILURE),
        (500, AttemptOutcome.RETRYABLE_FAILURE),
        (503, AttemptOutcome.RETRYABLE_FAILURE),
        (400, AttemptOutcome.FATAL_FAILURE),
        (401, AttemptOutcome.FATAL_FAILURE),
        (403, AttemptOutcome.FATAL_FAILURE),
        (404, AttemptOutcome.FATAL_FAILURE),
    ],
)
def test_classify_status(status, expected):
    assert classify_status(status) == expected


def test_success_stops():
    history = [_attempt("a", 1, AttemptOutcome.RETRYABLE_FAILURE), _attempt("a", 2, AttemptOutcome.SUCCESS)]
    assert decide_next_action(history, 3) == NextAction.STOP


def test_fatal_advances_without_retry():
    assert decide_next_action([_attempt("a", 1, AttemptOutcome.FATAL_FAILURE)], 3) == NextAction.ADVANCE


@pytest.mark.parametrize("outcome", [AttemptOutcome.RETRYABLE_FAILURE, AttemptOutcome.TIMEOUT])
def test_transient_failures_retry_until_exhausted(outcome):
    history = [_attempt("a", 1, outcome)]
    assert decide_next_action(history, 3) == NextAction.RETRY
    history.append(_attempt("a", 2, outcome))
    assert decide_next_action(history, 3) == NextAction.RETRY
    history.append(_attempt("a", 3, outcome))
    assert decide_next_action(history, 3) == NextAction.ADVANCE


def test_attempts_counted_per_model():
    history = [
        _attempt("a", 1, AttemptOutcome.TIMEOUT),
        _attempt("a", 2, AttemptOutcome.TIMEOUT),
        _attempt("b", 1, AttemptOutcome.TIMEOUT),
    ]
    assert decide_next_action(history, 2) == NextAction.RETRY


def test_single_attempt_budget_never_retries():
    assert decide_next_action([_attempt("a", 1, AttemptOutcome.TIMEOUT)], 1) == NextAction.ADVANCE


def test_backoff_grows_exponentially_and_caps():
    delays = [backoff_delay_ms(n, base_ms=100, max_jitter_ms=0, max_delay_ms=1000) for n in range(1, 6)]
    assert delays == [200, 400, 800, 1000, 1000]


def test_backoff_jitter_bounded():
    assert backoff_delay_ms(1, base_ms=100, max_jitter_ms=50, max_delay_ms=1000, rng=lambda: 0.0) == 200
    assert backoff_delay_ms(1, base_ms=100, max_jitter_ms=50, max_delay_ms=1000, rng=lambda: 0.999) == 249
