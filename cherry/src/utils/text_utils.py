"""
CherryAi - Text Utilities
==========================
Helpers for normalising user/model text before it is embedded, and for
de-duplicating link lists returned to the browser.

These utilities are stateless and side-effect-free.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Mapping


# Control characters (C0/C1) except \n, \r, \t, plus BOM, zero-width
# characters, soft hyphens and directional marks.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060\ufffe]")


def clean_text(text: str) -> str:
    """
    Sanitise text for embedding.

    Steps:
        1. Unicode NFC normalisation.
        2. Strip non-printable / zero-width characters.
        3. Collapse runs of horizontal whitespace into a single space,
           *preserving* newlines.
        4. Strip leading / trailing whitespace from every line.
        5. Collapse 3+ consecutive blank lines to 2.
    """
    text = unicodedata.normalize("NFC", text)
    text = _NON_PRINTABLE_RE.sub("", text)
    text = re.sub(r"[^\S\n]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def collapse_whitespace(text: str) -> str:
    """Single-line form of *text*, used for titles and snippets."""
    return " ".join(text.split())


def dedupe_links(links: Iterable[Mapping[str, str]], limit: int) -> list[dict[str, str]]:
    """
    Keep the first occurrence of every ``link`` and at most *limit* entries.

    Entries with an empty ``link`` are dropped.  Order is preserved.

    Examples::

        dedupe_links([{"title": "a", "link": "x"}, {"title": "b", "link": "x"}], 5)
        → [{"title": "a", "link": "x"}]
    """
    if limit <= 0:
        return []

    seen: set[str] = set()
    unique: list[dict[str, str]] = []
    for entry in links:
        link = (entry.get("link") or "").strip()
        if not link or link in seen:
            continue
        seen.add(link)
        unique.append(dict(entry))
        if len(unique) >= limit:
            break
    return unique
