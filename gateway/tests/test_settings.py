from gateway.app.config import Settings, redact_secrets, safe_error_detail, validate_for_env
from gateway.app.errors import GatewayError, rate_limited


def test_csv_env_lists(monkeypatch):
    monkeypatch.setenv("GEMINI_MODELS", "m1, m2 ,,m3")
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", '["https://a.dev", "https://b.dev"]')
    monkeypatch.setenv("CORS_TRUSTED_SUFFIXES", "*.pages.dev")
    s = Settings(_env_file=None)
    assert s.gemini_models == ["m1", "m2", "m3"]
    assert s.cors_allowed_origins == ["https://a.dev", "https://b.dev"]
    assert s.cors_trusted_suffixes == ["*.pages.dev"]


def test_numeric_values_clamped(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_CAPACITY", "0")
    monkeypatch.setenv("MODEL_MAX_ATTEMPTS", "-3")
    monkeypatch.setenv("RETRY_BASE_DELAY_MS", "-1")
    s = Settings(_env_file=None)
    assert s.rate_limit_capacity == 1
    assert s.model_max_attempts == 1
    assert s.retry_base_delay_ms == 0


def test_normalized_ceiling_never_exceeds_raw(monkeypatch):
    monkeypatch.setenv("MAX_TEXT_CHARS", "100")
    monkeypatch.setenv("MAX_NORMALIZED_CHARS", "500")
    assert Settings(_env_file=None).normalized_ceiling() == 100


def test_missing_key_reported_not_leaked(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    summary = validate_for_env(Settings(_env_file=None))
    assert "GEMINI_API_KEY missing" in summary["issues"]

    monkeypatch.setenv("GEMINI_API_KEY", "AIzaSECRETSECRETSECRETSECRET12")
    summary = validate_for_env(Settings(_env_file=None))
    assert summary["api_key_present"] is True
    assert "AIzaSECRET" not in str(summary)


def test_redact_secrets():
    text = "POST /models/x:generateContent?key=abc123&alt=json x-goog-api-key: zzz AIzaSyA1234567890abcdefghijkl"
    redacted = redact_secrets(text)
    assert "abc123" not in redacted
    assert "zzz" not in redacted
    assert "AIzaSyA1234567890abcdefghijkl" not in redacted


def test_safe_error_detail_redacts_and_truncates():
    detail = safe_error_detail(RuntimeError("boom key=AIzaSyA1234567890abcdefghijkl " + "x" * 500))
    assert "AIzaSyA1234567890abcdefghijkl" not in detail
    assert detail.startswith("boom")
    assert len(detail) <= 200


def test_error_body_and_headers():
    err = rate_limited(30)
    assert isinstance(err, GatewayError)
    assert err.to_body() == {"error": "rate_limited", "message": "Too many requests."}
    assert err.to_headers() == {"Retry-After": "30"}
