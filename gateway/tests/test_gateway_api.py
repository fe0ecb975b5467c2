"""End-to-end pipeline through the FastAPI app with a scripted upstream."""

import pytest
from fastapi.testclient import TestClient

from gateway.app.main import create_app
from gateway.app.schemas import SUPPORTED_INPUT_LANGUAGES
from gateway.app.service import TranslationService
from gateway.tests._fakes import GOOD_RESULT, ScriptedProvider, SleepRecorder, gemini_reply, make_settings

PATH = "/api/gemini"
ALLOWED_ORIGIN = "https://translator-v2-0.pages.dev"


def _client(provider=None, **overrides):
    settings = make_settings(**overrides)
    provider = provider or ScriptedProvider({}, default=gemini_reply(GOOD_RESULT))
    service = TranslationService(settings, provider=provider, sleep=SleepRecorder())
    return TestClient(create_app(settings=settings, service=service)), provider


def _post(client, body, origin=ALLOWED_ORIGIN, ip="203.0.113.7", **headers):
    hdrs = {"cf-connecting-ip": ip, **headers}
    if origin:
        hdrs["Origin"] = origin
    return client.post(PATH, json=body, headers=hdrs)


def test_end_to_end_success():
    client, provider = _client()
    res = _post(client, {"text": "toi muon an com"})
    assert res.status_code == 200
    body = res.json()
    assert set(body) == {"inputLanguage", "improved", "translation"}
    assert body["improved"] and body["translation"]
    assert body["inputLanguage"] in SUPPORTED_INPUT_LANGUAGES
    assert res.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
    assert res.headers["vary"] == "Origin"
    assert res.headers["x-content-type-options"] == "nosniff"
    assert res.headers["x-request-id"]
    assert provider.calls == ["model-a"]


def test_upstream_payload_shape():
    client, provider = _client()
    _post(client, {"text": "toi muon an com", "target": "English"})
    payload = provider.payloads[0]
    assert payload["contents"][0]["role"] == "user"
    assert "toi muon an com" in payload["contents"][0]["parts"][0]["text"]
    assert "English" in payload["systemInstruction"]["parts"][0]["text"]
    config = payload["generationConfig"]
    assert config["responseMimeType"] == "application/json"
    assert config["candidateCount"] == 1
    assert set(config["responseSchema"]["required"]) == {"inputLanguage", "improved", "translation"}


def test_missing_origin_is_allowed_without_cors_echo():
    client, _ = _client()
    res = _post(client, {"text": "hello"}, origin=None)
    assert res.status_code == 200
    assert "access-control-allow-origin" not in res.headers


@pytest.mark.parametrize("method", ["POST", "OPTIONS", "GET"])
def test_disallowed_origin_is_rejected_before_upstream(method):
    client, provider = _client()
    res = client.request(method, PATH, json={"text": "hello"}, headers={"Origin": "https://evil.example"})
    assert res.status_code == 403
    assert res.json() == {"error": "cors_denied"}
    assert "access-control-allow-origin" not in res.headers
    assert provider.calls == []


def test_preflight_from_allowed_origin():
    client, provider = _client()
    res = client.options(PATH, headers={"Origin": ALLOWED_ORIGIN, "Access-Control-Request-Method": "POST"})
    assert res.status_code == 204
    assert res.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
    assert res.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert provider.calls == []


def test_method_not_allowed():
    client, _ = _client()
    res = client.get(PATH, headers={"Origin": ALLOWED_ORIGIN})
    assert res.status_code == 405
    assert res.json()["error"] == "method_not_allowed"
    assert res.headers["access-control-allow-origin"] == ALLOWED_ORIGIN


def test_bad_content_type_and_json():
    client, _ = _client()
    res = client.post(PATH, content=b'{"text": "hi"}', headers={"Content-Type": "text/plain"})
    assert res.status_code == 415
    assert res.json()["error"] == "unsupported_media_type"

    res = client.post(PATH, content=b"{oops", headers={"Content-Type": "application/json"})
    assert res.status_code == 400
    assert res.json()["error"] == "invalid_json"


def test_missing_text():
    client, provider = _client()
    res = _post(client, {"source": "auto"})
    assert res.status_code == 400
    assert res.json()["error"] == "invalid_text"
    assert provider.calls == []


@pytest.mark.parametrize("filler", ["a", "\U0001F600", "!"])
def test_too_long_is_413_regardless_of_content(filler):
    client, provider = _client(max_text_chars=100, max_normalized_chars=80)
    res = _post(client, {"text": filler * 101})
    assert res.status_code == 413
    assert res.json()["error"] == "text_too_long"
    assert provider.calls == []


def test_rate_limit_per_client_ip():
    client, _ = _client(rate_limit_capacity=2, rate_limit_refill_per_minute=1)
    assert _post(client, {"text": "one"}).status_code == 200
    assert _post(client, {"text": "two"}).status_code == 200
    limited = _post(client, {"text": "three"})
    assert limited.status_code == 429
    assert limited.json()["error"] == "rate_limited"
    assert int(limited.headers["retry-after"]) >= 1
    assert _post(client, {"text": "other"}, ip="198.51.100.1").status_code == 200


def test_missing_credential_is_not_configured():
    client, provider = _client(gemini_api_key=None)
    res = _post(client, {"text": "hello"})
    assert res.status_code == 500
    assert res.json()["error"] == "not_configured"
    assert provider.calls == []


def test_exhaustion_is_502_without_upstream_detail():
    provider = ScriptedProvider({"model-a": [500, 500, 500], "model-b": [403]})
    client, _ = _client(provider=provider)
    res = _post(client, {"text": "hello"})
    assert res.status_code == 502
    body = res.json()
    assert body["error"] == "upstream_unavailable"
    assert "scripted failure" not in res.text
    assert "403" not in res.text


def test_partial_upstream_reply_is_default_filled():
    provider = ScriptedProvider({"model-a": [gemini_reply({"improved": "x"})]})
    client, _ = _client(provider=provider)
    res = _post(client, {"text": "hello"})
    assert res.status_code == 200
    assert res.json() == {"inputLanguage": "Unknown", "improved": "x", "translation": ""}


def test_health():
    client, _ = _client()
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["models"] == ["model-a", "model-b"]
    assert "test-key" not in res.text


def test_shutdown_closes_provider():
    client, provider = _client()
    with client:
        pass
    assert provider.closed


def test_safe_request_id_is_echoed():
    client, _ = _client()
    res = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert res.headers["x-request-id"] == "abc-123"
    unsafe = client.get("/health", headers={"X-Request-ID": "bad id<script>"})
    assert unsafe.headers["x-request-id"] != "bad id<script>"


def test_unparseable_replies_recover_to_default_result():
    provider = ScriptedProvider({"model-a": [gemini_reply("not json")], "model-b": [gemini_reply("still not json")]})
    client, _ = _client(provider=provider)
    res = _post(client, {"text": "hello"})
    assert res.status_code == 200
    assert res.json() == {"inputLanguage": "Unknown", "improved": "", "translation": ""}
    assert provider.calls == ["model-a", "model-b"]


def _raw_post(client, content, **headers):
    hdrs = {"Origin": ALLOWED_ORIGIN, "cf-connecting-ip": "203.0.113.7", "Content-Type": "application/json", **headers}
    return client.post(PATH, content=content, headers=hdrs)


def test_deeply_nested_body_is_bad_json():
    client, provider = _client()
    res = _raw_post(client, b"[" * 5000)
    assert res.status_code == 400
    assert res.json()["error"] == "invalid_json"
    assert res.headers["x-request-id"]
    assert provider.calls == []


def test_declared_length_over_limit_is_rejected_before_reading():
    client, provider = _client(max_body_bytes=64)
    res = _raw_post(client, b'{"text": "hi"}', **{"Content-Length": "1000000"})
    assert res.status_code == 413
    assert res.json()["error"] == "text_too_long"
    bad = _raw_post(client, b'{"text": "hi"}', **{"Content-Length": "lots"})
    assert bad.status_code == 400
    assert bad.json()["error"] == "invalid_content_length"
    assert provider.calls == []


def test_streamed_body_over_limit_is_413():
    client, provider = _client(max_body_bytes=64)
    chunks = iter([b'{"text": "', b"a" * 40, b"a" * 40, b'"}'])
    res = _raw_post(client, chunks)
    assert res.status_code == 413
    assert provider.calls == []


def test_unexpected_failure_is_500_with_request_id():
    client, _ = _client()

    async def boom(request, *, request_id="-"):
        raise RuntimeError("exploded with key=AIzaSyA1234567890abcdefghijkl")

    client.app.state.service.translate = boom
    res = _post(client, {"text": "hello"}, **{"X-Request-ID": "req-500"})
    assert res.status_code == 500
    assert res.json()["error"] == "internal_error"
    assert res.headers["x-request-id"] == "req-500"
    assert "AIza" not in res.text


def test_configured_request_id_header_is_used():
    client, _ = _client(request_id_header="x-trace-id")
    res = client.get("/health", headers={"X-Trace-ID": "trace-1"})
    assert res.headers["x-request-id"] == "trace-1"
    fallback = client.get("/health", headers={"cf-ray": "ray-9"})
    assert fallback.headers["x-request-id"] == "ray-9"
