from __future__ import annotations

import re
from enum import Enum

_HAMZA_ALEF_RE = re.compile("[أإ]")
_NON_SLUG_RE = re.compile(r"[^a-z0-9]")


def category_key(text: str) -> str:
    """Client-side slug for a category label. Pure; never used as a storage key."""
    key = text.lower()
    key = _HAMZA_ALEF_RE.sub("ا", key)
    key = key.replace("ة", "ه")
    key = _NON_SLUG_RE.sub("_", key)
    return key.strip()


def listing_category_key(sub_category: str | Enum | None, category: str | Enum | None) -> str:
    label = sub_category or category or ""
    if isinstance(label, Enum):
        label = label.value
    return category_key(str(label))
