from __future__ import annotations

import re
import unicodedata

# control whitespace (newlines, tabs) becomes a plain space before filtering
_CONTROL_WHITESPACE = re.compile(r"[\t\n\r\v\f\x85\u2028\u2029]")
_ALLOWED_CATEGORY_PREFIXES = ("L", "N", "P")


def _is_allowed(ch: str) -> bool:
    category = unicodedata.category(ch)
    return category.startswith(_ALLOWED_CATEGORY_PREFIXES) or category == "Zs"


def _filter(text: str) -> str:
    return "".join(ch for ch in text if _is_allowed(ch))


def normalize_text(text: str) -> str:
    """
    NFC-compose, drop everything outside letters, numbers, punctuation and
    space separators, then trim.

    Composition runs again after filtering because removing a character can
    bring two composable code points together; this keeps
    normalize_text(normalize_text(s)) == normalize_text(s).
    """
    if not text:
        return ""
    value = _CONTROL_WHITESPACE.sub(" ", text)
    value = unicodedata.normalize("NFC", value)
    value = _filter(value)
    value = unicodedata.normalize("NFC", value)
    value = _filter(value)
    return value.strip()


__all__ = ["normalize_text"]
