from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from gateway.app import errors
from gateway.app.config import Settings
from gateway.app.observability import hash_client, structured_log
from gateway.app.prompt import build_payload
from gateway.app.providers import GeminiProvider, TextModelProvider
from gateway.app.reliability import OrchestratorConfig, run_fallback_chain
from gateway.app.result import normalize_result
from gateway.app.schemas import TranslationRequest, TranslationResult
from gateway.app.security.ratelimit import AbuseLimiter, BucketStore, TokenBucketConfig

logger = logging.getLogger(__name__)


class TranslationService:
    """Abuse control and upstream orchestration for one gateway request at a time."""

    def __init__(
        self,
        settings: Settings,
        *,
        limiter: Optional[AbuseLimiter] = None,
        bucket_store: Optional[BucketStore] = None,
        provider: Optional[TextModelProvider] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.settings = settings
        self.limiter = limiter or AbuseLimiter(
            TokenBucketConfig(
                capacity=settings.rate_limit_capacity,
                refill_per_minute=settings.rate_limit_refill_per_minute,
            ),
            store=bucket_store,
        )
        self._provider = provider
        self._sleep = sleep
        self._rng = rng

    def admit(self, client_key: str, *, request_id: str = "-") -> None:
        decision = self.limiter.check(client_key)
        if decision.allowed:
            return
        structured_log(
            {
                "event": "rate_limited",
                "request_id": request_id,
                "client": hash_client(client_key),
                "retry_after_s": decision.retry_after_s,
            },
            level=logging.WARNING,
        )
        raise errors.rate_limited(decision.retry_after_s or 60)

    def _get_provider(self) -> TextModelProvider:
        if self._provider is None:
            self._provider = GeminiProvider(
                api_key=self.settings.gemini_api_key or "",
                base_url=self.settings.gemini_api_base,
                timeout_seconds=self.settings.model_timeout_seconds,
                connect_timeout_seconds=self.settings.model_connect_timeout_seconds,
            )
        return self._provider

    async def translate(self, request: TranslationRequest, *, request_id: str = "-") -> TranslationResult:
        if not self.settings.is_configured():
            logger.error("GEMINI_API_KEY missing; refusing upstream call")
            raise errors.not_configured()

        payload = build_payload(
            request,
            temperature=self.settings.model_temperature,
            max_output_tokens=self.settings.model_max_output_tokens,
        )
        outcome = await run_fallback_chain(
            self._get_provider(),
            payload,
            OrchestratorConfig.from_settings(self.settings),
            request_id=request_id,
            sleep=self._sleep,
            rng=self._rng,
        )
        if not outcome.ok:
            if outcome.malformed_reply:
                # unparseable text is recovered into the default-filled shape
                return normalize_result(None)
            raise errors.upstream_unavailable()
        return normalize_result(outcome.payload)

    async def aclose(self) -> None:
        if self._provider is not None:
            await self._provider.aclose()


__all__ = ["TranslationService"]
