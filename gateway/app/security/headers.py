from __future__ import annotations

from typing import Dict, Optional

ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type"


def security_headers() -> Dict[str, str]:
    """Return deterministic security headers for API responses."""
    return {
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "no-referrer",
        "Cache-Control": "no-store",
    }


def cors_headers(origin: Optional[str], *, preflight: bool = False, max_age_seconds: int = 600) -> Dict[str, str]:
    """CORS headers for an already-validated origin; never emits a wildcard."""
    headers: Dict[str, str] = {"Vary": "Origin"}
    if origin:
        headers["Access-Control-Allow-Origin"] = origin
    if preflight:
        headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        headers["Access-Control-Max-Age"] = str(max_age_seconds)
    return headers


def apply_security_headers(response, *, origin: Optional[str] = None) -> None:
    """Mutate response headers to include security headers and CORS headers for ``origin``."""
    hdrs = security_headers()
    hdrs.update(cors_headers(origin))
    for key, value in hdrs.items():
        response.headers[key] = value


__all__ = ["ALLOWED_METHODS", "ALLOWED_HEADERS", "security_headers", "cors_headers", "apply_security_headers"]
