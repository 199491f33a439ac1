"""Slug generation for editions and sections.

Slugs keep every letter of every script. Marathi, Hindi and other
non-Latin titles stay readable in the URL instead of being transliterated
or stripped; browsers handle Unicode paths fine.
"""

import logging
import re
import time
from typing import Protocol

logger = logging.getLogger(__name__)

# "article" in Marathi; prefixes slugs derived from punctuation-only text.
FALLBACK_PREFIX = "लेख"
MAX_SLUG_LENGTH = 100
MIN_SLUG_LENGTH = 3
MAX_PROBES = 1000

_TAG_RE = re.compile(r"<[^>]+>")
_QUOTES_RE = re.compile(r"['\"‘’“”]")
_PUNCTUATION_RE = re.compile(r"[।॥.!?,;:()\[\]{}]")
_SYMBOLS_RE = re.compile(r"[@#$%^&*+=|\\/<>~`]")
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-+")

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


class SlugRegistry(Protocol):
    """Anything that can atomically claim a slug for an owner."""

    def claim_slug(self, slug: str, owner_id: int | None) -> bool:
        """Claim slug for owner_id.

        Returns True if the slug is now held by owner_id (or, with no
        owner, is free), False if another owner holds it.
        """
        ...


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def text_hash(text: str) -> int:
    """Additive shift hash over UTF-16 code units.

    Equivalent to ``acc = ((acc << 5) - acc) + code`` with 32-bit shift
    semantics, so existing fallback slugs stay reproducible.
    """
    data = text.encode("utf-16-le")
    acc = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        acc = _to_int32(_to_int32(acc) << 5) - acc + unit
    return acc


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def fallback_slug(text: str, prefix: str = FALLBACK_PREFIX) -> str:
    """Deterministic slug for text that has no usable characters."""
    token = to_base36(abs(text_hash(text)))[-8:]
    return f"{prefix}-{token}"


def generate_slug(text: str | None, prefix: str = FALLBACK_PREFIX) -> str:
    """Generate a URL slug that preserves every script's letters.

    Strips markup, drops quotes, sentence punctuation and URL-hostile
    symbols, and joins words with single hyphens. Text that leaves nothing,
    or fewer than three ASCII characters, falls back to ``{prefix}-{hash}``.

    Args:
        text: Free text, usually a title
        prefix: Word used for the fallback slug

    Returns:
        Slug of at most 100 characters
    """
    original = "" if text is None else str(text)

    slug = _TAG_RE.sub("", original.strip())
    slug = _QUOTES_RE.sub("", slug)
    slug = _PUNCTUATION_RE.sub("", slug)
    slug = _SYMBOLS_RE.sub("", slug)
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = _HYPHENS_RE.sub("-", slug)
    slug = slug.strip("-")

    # Short words in Indic scripts ("आज") are complete words, not remnants.
    if not slug or (len(slug) < MIN_SLUG_LENGTH and slug.isascii()):
        slug = fallback_slug(original, prefix)

    if len(slug) > MAX_SLUG_LENGTH:
        slug = slug[:MAX_SLUG_LENGTH].rstrip("-")

    return slug


def generate_unique_slug(
    registry: SlugRegistry,
    text: str | None,
    exclude_id: int | None = None,
) -> str:
    """Generate a slug no other entity holds.

    Tries the base slug, then ``-1``, ``-2`` and so on. Each probe is an
    atomic claim on the registry, so two writers racing for the same base
    slug end up with different slugs. After 1000 failed probes a
    millisecond timestamp suffix is used.

    Args:
        registry: Slug registry, usually the edition store
        text: Text to derive the slug from
        exclude_id: Entity the slug is for; its own slug is not a collision

    Returns:
        A slug claimed for exclude_id
    """
    base = generate_slug(text)
    candidate = base

    for counter in range(1, MAX_PROBES + 1):
        if registry.claim_slug(candidate, exclude_id):
            return candidate
        candidate = f"{base}-{counter}"

    candidate = f"{base}-{int(time.time() * 1000)}"
    if not registry.claim_slug(candidate, exclude_id):
        logger.warning(f"Timestamp slug {candidate} is already claimed")
    return candidate
