"""Normalization of page and section payloads from the mapping tool.

The mapping tool sends whatever its client-side state holds, so fields
are coerced one at a time rather than validated as a whole:

- numbers arrive as numbers or numeric-prefixed strings ("12", "12.5px");
  anything unparseable falls back to a default
- a page without an image, or with a non-positive width or height, is
  dropped and reported in the returned warnings
- a section without a usable id gets one synthesized from the clock
- a blank section title becomes "untitled"

Pages come back ordered by sort_order, falling back to page_no.
Sections keep payload order.
"""

import logging
import math
import re
import time
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from schemas.edition import EditionStatus, Page, Section
from schemas.payloads import PagePayload, SectionPayload

from ..slugs import generate_slug

logger = logging.getLogger(__name__)

UNTITLED = "untitled"
SECTION_SLUG_SOURCE_LENGTH = 100

_INT_PREFIX_RE = re.compile(r"^[+-]?\d+", re.ASCII)
_FLOAT_PREFIX_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


def parse_int(value: Any, default: int) -> int:
    """Parse a leading integer from value, or return default."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    match = _INT_PREFIX_RE.match(str(value).strip())
    return int(match.group(0)) if match else default


def parse_float(value: Any, default: float = 0.0) -> float:
    """Parse a leading decimal number from value, or return default."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _FLOAT_PREFIX_RE.match(str(value).strip())
        if not match:
            return default
        number = float(match.group(0))
    return number if math.isfinite(number) else default


def parse_date(value: Any) -> date | None:
    """Parse a publication date from a date, datetime or ISO 8601 string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_status(value: Any) -> EditionStatus | None:
    try:
        return EditionStatus(str(value).strip().lower())
    except ValueError:
        return None


def _text(value: Any) -> str:
    if value is None or value is False:
        return ""
    return str(value)


def normalize_section(raw: Any, index: int, now_ms: int) -> Section | None:
    """Coerce one section entry. Returns None for entries that are not mappings."""
    if not isinstance(raw, dict):
        return None
    payload = SectionPayload.model_validate(raw)

    section_id = parse_int(payload.id, 0)
    if not section_id:
        section_id = now_ms + index

    title = _text(payload.title)
    content = _text(payload.content)

    slug = _text(payload.slug).strip() or None
    if slug is None and (title.strip() or content.strip()):
        slug = generate_slug(title.strip() or content[:SECTION_SLUG_SOURCE_LENGTH])

    article_id = _text(payload.article_id).strip() or None

    return Section(
        id=section_id,
        slug=slug,
        x=parse_float(payload.x),
        y=parse_float(payload.y),
        width=parse_float(payload.width),
        height=parse_float(payload.height),
        title=title if title.strip() else UNTITLED,
        content=content,
        article_id=article_id,
    )


def normalize_sections(
    raw_sections: Any, now_ms: int, warnings: list[str], page_label: str = ""
) -> list[Section]:
    if raw_sections is None:
        return []
    if not isinstance(raw_sections, list):
        warnings.append(f"{page_label}sections is not a list; no sections kept")
        return []

    sections: list[Section] = []
    for index, raw in enumerate(raw_sections):
        section = normalize_section(raw, index, now_ms)
        if section is None:
            warnings.append(f"{page_label}section {index} is not an object; dropped")
            continue
        sections.append(section)
    return sections


def normalize_page(
    raw: Any, index: int, now_ms: int, warnings: list[str]
) -> Page | None:
    """Coerce one page entry, or return None (with a warning) to drop it."""
    if not isinstance(raw, dict):
        warnings.append(f"page {index}: not an object; dropped")
        return None
    payload = PagePayload.model_validate(raw)

    page_no = parse_int(payload.page_no, 0) or 1
    image = _text(payload.image or payload.image_url).strip()
    width = parse_int(payload.width, 0)
    height = parse_int(payload.height, 0)

    if page_no < 1:
        warnings.append(f"page {index}: invalid page number {payload.page_no!r}; dropped")
        return None
    if not image or width <= 0 or height <= 0:
        warnings.append(
            f"page {index}: missing image or non-positive size "
            f"({width}x{height}); dropped"
        )
        return None

    raw_sections = payload.sections if payload.sections is not None else payload.news
    sections = normalize_sections(
        raw_sections, now_ms, warnings, page_label=f"page {page_no}: "
    )

    sort_order = None
    if payload.sort_order not in (None, ""):
        sort_order = parse_int(payload.sort_order, page_no)

    try:
        return Page(
            page_no=page_no,
            image=image,
            asset_id=_text(payload.asset_id or payload.public_id).strip() or None,
            thumbnail=_text(payload.thumbnail or payload.thumbnail_url).strip() or None,
            width=width,
            height=height,
            sort_order=sort_order,
            sections=sections,
        )
    except PydanticValidationError as e:
        warnings.append(f"page {index}: {e.error_count()} invalid fields; dropped")
        return None


def normalize_pages(raw_pages: Any, now_ms: int | None = None) -> tuple[list[Page], list[str]]:
    """Coerce a raw page list.

    Args:
        raw_pages: Page entries as sent by the mapping tool
        now_ms: Clock used to synthesize section ids (default: now)

    Returns:
        Tuple of (pages ordered by sort key, warnings for dropped entries)
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    warnings: list[str] = []
    if not isinstance(raw_pages, list):
        warnings.append("pages is not a list")
        return [], warnings

    pages = []
    for index, raw in enumerate(raw_pages):
        page = normalize_page(raw, index, now_ms, warnings)
        if page is not None:
            pages.append(page)

    for warning in warnings:
        logger.warning(warning)

    pages.sort(key=lambda p: p.ordering_key)
    return pages, warnings
