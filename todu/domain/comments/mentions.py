from __future__ import annotations

import re

MENTION_RE = re.compile(r"@(\w+)")


def extract_mentions(text: str) -> list[str]:
    """Names referenced as ``@name``, in order of first appearance, without duplicates."""
    seen: list[str] = []
    for name in MENTION_RE.findall(text or ""):
        if name not in seen:
            seen.append(name)
    return seen
