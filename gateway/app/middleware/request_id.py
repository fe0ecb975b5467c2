"""
Request ID middleware.

Every request gets an X-Request-ID (reused from the configured id header or
the edge's cf-ray when safe), echoed on the response and emitted in one
structured access line. Bodies are never logged.
"""

import re
import time
import uuid
from typing import Optional

from gateway.app.observability import structured_log

_SAFE_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9\-]{1,64}$")


def _pick_request_id(scope, id_headers=(b"x-request-id", b"cf-ray")) -> str:
    found = {}
    for name, value in scope.get("headers", []):
        key = name.lower() if isinstance(name, bytes) else b""
        if key in id_headers and isinstance(value, bytes):
            found[key] = value.decode("utf-8", errors="replace").strip()
    for key in id_headers:
        candidate = found.get(key)
        if candidate and _SAFE_REQUEST_ID_PATTERN.match(candidate):
            return candidate
    return str(uuid.uuid4())


class RequestIdMiddleware:
    def __init__(self, app, header_name: str = "x-request-id"):
        self.app = app
        self.id_headers = (header_name.strip().lower().encode("latin-1"), b"cf-ray")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.monotonic()
        request_id = _pick_request_id(scope, self.id_headers)
        scope.setdefault("state", {})["request_id"] = request_id
        status_code: Optional[int] = None

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
                headers = [h for h in message.get("headers", []) if h[0].lower() != b"x-request-id"]
                headers.append((b"x-request-id", request_id.encode("utf-8")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            structured_log(
                {
                    "event": "http_request",
                    "request_id": request_id,
                    "method": scope.get("method", "?"),
                    "path": scope.get("path", "?"),
                    "status": status_code,
                    "duration_ms": int((time.monotonic() - start_time) * 1000),
                }
            )
