from .base import ModelCallResponse, TextModelProvider
from .errors import (
    ProviderBadResponseError,
    ProviderError,
    ProviderHTTPError,
    ProviderTimeoutError,
    ProviderTransportError,
)
from .gemini_provider import GeminiProvider

__all__ = [
    "ModelCallResponse",
    "TextModelProvider",
    "ProviderBadResponseError",
    "ProviderError",
    "ProviderHTTPError",
    "ProviderTimeoutError",
    "ProviderTransportError",
    "GeminiProvider",
]
