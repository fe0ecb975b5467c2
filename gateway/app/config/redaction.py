from __future__ import annotations

import re

_API_KEY_PATTERN = re.compile(r"(AIza[0-9A-Za-z_\-]{20,}|sk-[A-Za-z0-9]{8,})")
_KEY_PARAM_PATTERN = re.compile(r"([?&]key=)[^&\s]+", re.IGNORECASE)


def redact_secrets(s: str) -> str:
    if not s:
        return s
    redacted = _API_KEY_PATTERN.sub("[redacted]", s)
    redacted = _KEY_PARAM_PATTERN.sub(r"\1[redacted]", redacted)
    redacted = re.sub(r"(x-goog-api-key:\s*)[^\s]+", r"\1[redacted]", redacted, flags=re.IGNORECASE)
    return redacted


def safe_error_detail(exc: Exception) -> str:
    text = str(exc)
    text = redact_secrets(text)
    return text[:200]


__all__ = ["redact_secrets", "safe_error_detail"]
