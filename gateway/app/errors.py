from __future__ import annotations

from typing import Any, Dict, Optional

from gateway.app.schemas import ErrorBody


class GatewayError(Exception):
    """Terminal pipeline failure rendered as ``{"error": code, "message": ...}``."""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: Optional[str] = None,
        retry_after_seconds: Optional[int] = None,
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message or error_code)

    def to_body(self) -> Dict[str, Any]:
        return ErrorBody(error=self.error_code, message=self.message or None).model_dump(exclude_none=True)

    def to_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.retry_after_seconds is not None:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


def method_not_allowed() -> GatewayError:
    return GatewayError(405, "method_not_allowed", "Only POST is supported.")


def cors_denied() -> GatewayError:
    # no message: nothing about the allow-list is disclosed
    return GatewayError(403, "cors_denied")


def bad_content_type() -> GatewayError:
    return GatewayError(415, "unsupported_media_type", "Content-Type must be application/json.")


def bad_json() -> GatewayError:
    return GatewayError(400, "invalid_json", "Request body is not valid JSON.")


def invalid_text() -> GatewayError:
    return GatewayError(400, "invalid_text", "Field 'text' must be a non-empty string.")


def invalid_language(field: str) -> GatewayError:
    return GatewayError(400, "invalid_language", f"Field '{field}' must be a short language label.")


def text_too_long(limit: int) -> GatewayError:
    return GatewayError(413, "text_too_long", f"Text exceeds {limit} characters.")


def invalid_content_length() -> GatewayError:
    return GatewayError(400, "invalid_content_length", "Invalid Content-Length header.")


def not_configured() -> GatewayError:
    return GatewayError(500, "not_configured", "Service is not configured.")


def rate_limited(retry_after_seconds: int) -> GatewayError:
    return GatewayError(429, "rate_limited", "Too many requests.", retry_after_seconds=retry_after_seconds)


def upstream_unavailable() -> GatewayError:
    return GatewayError(502, "upstream_unavailable", "Translation service is temporarily unavailable.")


def internal_error() -> GatewayError:
    return GatewayError(500, "internal_error", "Internal server error.")


__all__ = [
    "GatewayError",
    "method_not_allowed",
    "cors_denied",
    "bad_content_type",
    "bad_json",
    "invalid_text",
    "invalid_language",
    "text_too_long",
    "invalid_content_length",
    "not_configured",
    "rate_limited",
    "upstream_unavailable",
    "internal_error",
]
