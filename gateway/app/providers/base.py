"""Upstream provider abstraction so the orchestrator never touches HTTP directly."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ModelCallResponse:
    """Decoded 2xx upstream body."""
    model: str
    status_code: int
    data: Dict[str, Any]
    latency_ms: Optional[int] = None


class TextModelProvider(ABC):
    @abstractmethod
    async def generate(self, model: str, payload: Dict[str, Any]) -> ModelCallResponse:
        """
        Execute one generateContent call against ``model``.

        Raises:
            ProviderHTTPError: non-2xx status
            ProviderTimeoutError: the call timed out
            ProviderTransportError: connection-level failure
            ProviderBadResponseError: 2xx body was not JSON
        """

    async def aclose(self) -> None:
        return None


__all__ = ["ModelCallResponse", "TextModelProvider"]
