from __future__ import annotations

from typing import Optional


class ProviderError(Exception):
    """Base class for upstream call failures."""

    def __init__(self, message: str, *, model: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.model = model
        self.status_code = status_code


class ProviderTimeoutError(ProviderError):
    """Raised when one attempt exceeds its timeout."""


class ProviderHTTPError(ProviderError):
    """Raised for non-2xx upstream responses; ``detail`` is a truncated, redacted body."""

    def __init__(self, message: str, *, model: str, status_code: int, detail: str = "") -> None:
        super().__init__(message, model=model, status_code=status_code)
        self.detail = detail


class ProviderTransportError(ProviderError):
    """Raised when the connection fails before a response arrives."""


class ProviderBadResponseError(ProviderError):
    """Raised when a 2xx response body is not JSON."""


__all__ = [
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderHTTPError",
    "ProviderTransportError",
    "ProviderBadResponseError",
]
