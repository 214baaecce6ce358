"""
Hashtag extraction and normalization helpers.

Pure functions shared by the tag store, the search path and the API layer.
None of them raise on bad input: tag bookkeeping must never stop a note
from being saved.
"""

from __future__ import annotations

import re
from typing import Any, List

from ..database import TAG_MAX_LENGTH

# A hashtag is "#" + word characters, ending at whitespace, light punctuation
# or end of input. The scan is left-to-right and non-overlapping, so "##tag"
# fails at the first "#" and matches "#tag" one position later.
HASHTAG_RE = re.compile(r"#([A-Za-z0-9_-]+)(?=\s|[.,!?;:]|$)")
VALID_HASHTAG_RE = re.compile(r"#[A-Za-z0-9_-]+")
CANONICAL_TAG_RE = re.compile(r"[a-z0-9_-]{1,%d}" % TAG_MAX_LENGTH)


def extract_hashtags(text: Any) -> List[str]:
    """
    Extract hashtags from free text.

    Matches #word, #word-word and #word_word. Results are lowercased and
    deduplicated, in order of first appearance.

    Args:
        text: Note text (anything that is not a string yields no tags)

    Returns:
        List of distinct lowercase tags without the leading "#"
    """
    if not isinstance(text, str) or not text:
        return []

    seen: dict[str, None] = {}
    for match in HASHTAG_RE.finditer(text):
        seen.setdefault(match.group(1).lower(), None)
    return list(seen)


def normalize_tag(raw: Any) -> str:
    """
    Canonicalize a tag spelling: strip "#" prefixes and surrounding
    whitespace, then lowercase.

    normalize_tag(normalize_tag(x)) == normalize_tag(x) for every x.
    """
    if not isinstance(raw, str):
        return ""

    tag = raw.strip()
    while tag.startswith("#"):
        tag = tag[1:].strip()
    return tag.lower()


def format_tag(tag: str) -> str:
    """Ensure a tag starts with "#"."""
    return tag if tag.startswith("#") else f"#{tag}"


def is_valid_hashtag(tag: Any) -> bool:
    """True for "#" followed by one or more of [A-Za-z0-9_-], nothing else."""
    return isinstance(tag, str) and VALID_HASHTAG_RE.fullmatch(tag) is not None


def is_canonical_tag(tag: Any) -> bool:
    """True when ``tag`` can be stored as-is in the hashtags table."""
    return isinstance(tag, str) and CANONICAL_TAG_RE.fullmatch(tag) is not None
