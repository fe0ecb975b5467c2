"""Upstream reply extraction and coercion into the three-field result."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from gateway.app.schemas import UNKNOWN_LANGUAGE, TranslationResult

logger = logging.getLogger(__name__)

# JSON object wrapped in ```json ... ``` or ``` ... ```
_MARKDOWN_JSON_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


class ReplyKind(str, Enum):
    PARSED = "PARSED"
    RAW_TEXT = "RAW_TEXT"
    EMPTY = "EMPTY"


@dataclass(frozen=True)
class ModelReply:
    kind: ReplyKind
    payload: Optional[Dict[str, Any]] = None
    text: str = ""


def extract_candidate_text(data: Mapping[str, Any]) -> str:
    """Concatenated text parts of the first candidate, or "" when blocked or absent."""
    if not isinstance(data, Mapping):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    if not isinstance(first, Mapping):
        return ""
    content = first.get("content")
    if not isinstance(content, Mapping):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = [p.get("text") for p in parts if isinstance(p, Mapping) and isinstance(p.get("text"), str)]
    return "".join(texts)


def _loads(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


def _as_payload(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    # valid JSON of the wrong shape falls back to the default-filled result
    return {}


def parse_model_text(text: Optional[str]) -> ModelReply:
    """Decide by explicit parse attempt whether the reply is structured, raw, or empty."""
    stripped = (text or "").strip()
    if not stripped:
        return ModelReply(kind=ReplyKind.EMPTY)

    ok, value = _loads(stripped)
    if ok:
        return ModelReply(kind=ReplyKind.PARSED, payload=_as_payload(value), text=stripped)

    match = _MARKDOWN_JSON_RE.search(stripped)
    if match:
        ok, value = _loads(match.group(1))
        if ok:
            return ModelReply(kind=ReplyKind.PARSED, payload=_as_payload(value), text=stripped)

    return ModelReply(kind=ReplyKind.RAW_TEXT, text=stripped)


def _string_field(payload: Mapping[str, Any], key: str, default: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else default


def normalize_result(payload: Optional[Mapping[str, Any]]) -> TranslationResult:
    data: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
    result = TranslationResult(
        input_language=_string_field(data, "inputLanguage", UNKNOWN_LANGUAGE),
        improved=_string_field(data, "improved", ""),
        translation=_string_field(data, "translation", ""),
    )
    missing = [k for k in ("inputLanguage", "improved", "translation") if not isinstance(data.get(k), str)]
    if missing:
        logger.warning("upstream reply missing fields", extra={"missing": missing})
    return result


__all__ = [
    "ReplyKind",
    "ModelReply",
    "extract_candidate_text",
    "parse_model_text",
    "normalize_result",
]
