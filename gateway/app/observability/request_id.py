from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Request


def get_request_id(request: Optional[Request]) -> str:
    if request is None:
        return str(uuid.uuid4())
    rid = getattr(request.state, "request_id", None)
    if isinstance(rid, str) and rid.strip():
        return rid
    rid = request.headers.get("cf-ray") or request.headers.get("x-request-id")
    if rid and rid.strip():
        return rid.strip()[:64]
    return str(uuid.uuid4())


__all__ = ["get_request_id"]
