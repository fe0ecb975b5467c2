from __future__ import annotations

import hashlib
import json
import logging
import os
from typing import Any, Dict

logger = logging.getLogger(__name__)

_OBS_SALT = (os.getenv("OBS_HASH_SALT") or "obs-salt").encode("utf-8")

# payload-bearing keys that must never reach a log line
_PAYLOAD_KEYS = ("text", "user_text", "prompt", "payload", "raw_payload", "body", "contents", "api_key")


def hash_client(client_key: str | None) -> str:
    h = hashlib.sha256()
    h.update(_OBS_SALT)
    h.update((client_key or "unknown").encode("utf-8"))
    return h.hexdigest()[:16]


def safe_redact(event: Dict[str, Any]) -> Dict[str, Any]:
    redacted = dict(event) if isinstance(event, dict) else {}
    for key in _PAYLOAD_KEYS:
        redacted.pop(key, None)
    return redacted


def structured_log(event: Dict[str, Any], *, level: int = logging.INFO) -> None:
    try:
        safe_event = safe_redact(event)
        logger.log(level, json.dumps(safe_event, separators=(",", ":"), default=str))
    except Exception:
        # logging must never break the request path
        return


__all__ = ["hash_client", "structured_log", "safe_redact"]
