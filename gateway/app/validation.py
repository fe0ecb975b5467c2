from __future__ import annotations

import json
import re
from typing import Any, Optional

from gateway.app import errors
from gateway.app.config import Settings
from gateway.app.schemas import TranslationRequest
from gateway.app.text import normalize_text

_LANGUAGE_LABEL = re.compile(r"^[A-Za-z][A-Za-z\- ]{0,31}$")


def is_json_content_type(content_type: Optional[str]) -> bool:
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    return media_type == "application/json" or (media_type.startswith("application/") and media_type.endswith("+json"))


def _language(body: dict, field: str, default: str) -> str:
    value = body.get(field)
    if value is None:
        return default
    if not isinstance(value, str):
        raise errors.invalid_language(field)
    value = value.strip()
    if not value:
        return default
    if not _LANGUAGE_LABEL.match(value):
        raise errors.invalid_language(field)
    return value


def parse_body(raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        # RecursionError: nesting deeper than the decoder can follow
        raise errors.bad_json() from exc


def check_request_line(
    method: str,
    content_type: Optional[str],
    content_length: Optional[str],
    settings: Settings,
) -> None:
    """Checks that need only the headers, so they run before the body is read."""
    if (method or "").upper() != "POST":
        raise errors.method_not_allowed()

    if not is_json_content_type(content_type):
        raise errors.bad_content_type()

    if content_length is None:
        return
    try:
        declared = int(content_length)
    except ValueError as exc:
        raise errors.invalid_content_length() from exc
    if declared < 0:
        raise errors.invalid_content_length()
    if declared > settings.max_body_bytes:
        raise errors.text_too_long(settings.max_text_chars)


def validate_request(
    method: str,
    content_type: Optional[str],
    raw_body: bytes,
    settings: Settings,
) -> TranslationRequest:
    """Run the sequential request checks; the first failure raises ``GatewayError``."""
    check_request_line(method, content_type, None, settings)

    if len(raw_body) > settings.max_body_bytes:
        raise errors.text_too_long(settings.max_text_chars)

    body = parse_body(raw_body)
    if not isinstance(body, dict):
        raise errors.invalid_text()

    raw_text = body.get("text")
    if not isinstance(raw_text, str) or not raw_text.strip():
        raise errors.invalid_text()

    # raw ceiling first so oversized input never reaches normalization
    if len(raw_text) > settings.max_text_chars:
        raise errors.text_too_long(settings.max_text_chars)

    source = _language(body, "source", settings.default_source_language)
    target = _language(body, "target", settings.default_target_language)

    text = normalize_text(raw_text)
    if not text:
        raise errors.invalid_text()
    ceiling = settings.normalized_ceiling()
    if len(text) > ceiling:
        raise errors.text_too_long(ceiling)

    return TranslationRequest(text=text, source_language=source, target_language=target)


__all__ = ["is_json_content_type", "parse_body", "check_request_line", "validate_request"]
