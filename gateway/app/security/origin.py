from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlsplit


@dataclass(frozen=True)
class OriginDecision:
    allowed: bool
    origin: Optional[str]
    reason: str


def _normalize_suffix(suffix: str) -> str:
    s = (suffix or "").strip().lower()
    if s.startswith("*"):
        s = s[1:]
    if s and not s.startswith("."):
        s = "." + s
    return s


def _https_hostname(origin: str) -> Optional[str]:
    try:
        parts = urlsplit(origin)
    except ValueError:
        return None
    if parts.scheme != "https" or parts.path not in ("", "/") or parts.query or parts.username:
        return None
    return (parts.hostname or "").lower() or None


def evaluate_origin(
    origin: Optional[str],
    host: Optional[str],
    *,
    allowed_origins: Iterable[str],
    trusted_suffixes: Iterable[str],
) -> OriginDecision:
    """Decide whether a browser ``Origin`` may call the gateway.

    An absent Origin means a same-origin or non-browser caller and is admitted.
    Otherwise the origin must be ``https://{host}``, one of ``allowed_origins``
    exactly, or an https origin whose hostname ends with a trusted suffix
    (``*.example.dev`` and ``.example.dev`` are equivalent).
    """
    value = (origin or "").strip()
    if not value:
        return OriginDecision(allowed=True, origin=None, reason="no_origin")

    host_value = (host or "").strip().lower()
    if host_value and value.lower() == f"https://{host_value}":
        return OriginDecision(allowed=True, origin=value, reason="same_host")

    if value in {o.strip() for o in allowed_origins if o and o.strip()}:
        return OriginDecision(allowed=True, origin=value, reason="exact")

    hostname = _https_hostname(value)
    if hostname:
        for suffix in trusted_suffixes:
            s = _normalize_suffix(suffix)
            if s and len(hostname) > len(s) and hostname.endswith(s):
                return OriginDecision(allowed=True, origin=value, reason="trusted_suffix")

    return OriginDecision(allowed=False, origin=None, reason="not_allowed")


__all__ = ["OriginDecision", "evaluate_origin"]
