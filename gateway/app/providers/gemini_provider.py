"""Gemini generateContent provider over httpx."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from gateway.app.config.redaction import redact_secrets
from .base import ModelCallResponse, TextModelProvider
from .errors import (
    ProviderBadResponseError,
    ProviderHTTPError,
    ProviderTimeoutError,
    ProviderTransportError,
)

_ERROR_DETAIL_CHARS = 500


class GeminiProvider(TextModelProvider):
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 10.0,
        connect_timeout_seconds: float = 3.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.connect_timeout_seconds = connect_timeout_seconds
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            timeout = httpx.Timeout(self.timeout_seconds, connect=self.connect_timeout_seconds)
            self._client = httpx.AsyncClient(timeout=timeout)
        return self._client

    def endpoint(self, model: str) -> str:
        return f"{self.base_url}/models/{quote(model, safe='.-_')}:generateContent"

    async def generate(self, model: str, payload: Dict[str, Any]) -> ModelCallResponse:
        # key goes in a header so it never appears in logged URLs
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        started = time.monotonic()
        try:
            resp = await self._get_client().post(self.endpoint(model), headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError("Gemini request timeout", model=model) from exc
        except httpx.HTTPError as exc:
            raise ProviderTransportError(
                f"Gemini transport error: {type(exc).__name__}", model=model
            ) from exc
        latency_ms = int((time.monotonic() - started) * 1000)

        if resp.status_code < 200 or resp.status_code >= 300:
            detail = redact_secrets(resp.text)[:_ERROR_DETAIL_CHARS]
            raise ProviderHTTPError(
                f"Gemini HTTP {resp.status_code}",
                model=model,
                status_code=resp.status_code,
                detail=detail,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderBadResponseError(
                "Gemini returned invalid JSON", model=model, status_code=resp.status_code
            ) from exc
        if not isinstance(data, dict):
            raise ProviderBadResponseError(
                "Gemini returned a non-object body", model=model, status_code=resp.status_code
            )
        return ModelCallResponse(model=model, status_code=resp.status_code, data=data, latency_ms=latency_ms)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


__all__ = ["GeminiProvider"]
