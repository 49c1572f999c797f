"""Hashtag extraction from story text."""

from __future__ import annotations

import re

# A hashtag starts with a letter; "#123" is not a hashtag
HASHTAG_PATTERN = re.compile(r"#([a-zA-Z][a-zA-Z0-9_]*)")

MAX_HASHTAG_LENGTH = 100


def extract_hashtags(*texts: str | None) -> list[str]:
    """
    Return the lowercased hashtags found in `texts`, de-duplicated in
    first-seen order.

    >>> extract_hashtags("Hello #Migration", "more on #visa and #migration")
    ['migration', 'visa']
    """
    seen: dict[str, None] = {}
    for text in texts:
        if not text:
            continue
        for match in HASHTAG_PATTERN.finditer(text):
            tag = match.group(1).lower()[:MAX_HASHTAG_LENGTH]
            seen.setdefault(tag, None)
    return list(seen)


def normalize_hashtag(name: str) -> str:
    """Strip a leading '#' and lowercase, as hashtags are stored."""
    return name.strip().lstrip("#").lower()
