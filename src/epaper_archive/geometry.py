"""Derived-image URLs for sections and edition covers.

Crop URLs are computed from the stored rectangle and the page's asset id
alone; nothing is uploaded. All shared images use one delivery format
(progressive JPEG at quality 60) because chat apps and social crawlers
handle it everywhere.

Coordinates are clamped, not validated: a negative or non-numeric value
becomes 0. Rectangles are not checked against page bounds.
"""

import math
from collections.abc import Sequence
from enum import Enum
from typing import Any, Protocol

from schemas.edition import Page, Rect, Section
from schemas.transform import Transform

SHARE_QUALITY = 60
SHARE_FORMAT = "jpg"
DEFAULT_PLACEHOLDER_URL = "https://navmanchnews.com/logo1.png"


class DerivedUrlBuilder(Protocol):
    def derived_url(self, asset_id: str, *transforms: Transform) -> str: ...


class CoverPreset(str, Enum):
    """Preview shapes for edition-level share images."""

    # Landscape link-preview card, filled to 1.91:1.
    ARTICLE = "article"
    # Portrait front-page cover, fitted inside 3:4.
    EDITION = "edition"


COVER_TRANSFORMS: dict[CoverPreset, Transform] = {
    CoverPreset.ARTICLE: Transform.build(
        w=600, h=315, c="fill", g="auto", q=SHARE_QUALITY, f=SHARE_FORMAT,
        fl="progressive", dpr=1,
    ),
    CoverPreset.EDITION: Transform.build(
        w=600, h=800, c="fit", g="auto", q=SHARE_QUALITY, f=SHARE_FORMAT,
        fl="progressive", dpr=1,
    ),
}


def round_half_up(value: float) -> int:
    """Round .5 towards positive infinity, as crop URLs always have."""
    return math.floor(value + 0.5)


def clamp_coordinate(value: Any) -> int:
    """Coerce a coordinate to a non-negative integer pixel value."""
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return round_half_up(number)


def crop_transform(rect: Rect) -> Transform:
    """Transform segment cropping rect out of a page image."""
    return Transform.build(
        c="crop",
        w=clamp_coordinate(rect.width),
        h=clamp_coordinate(rect.height),
        x=clamp_coordinate(rect.x),
        y=clamp_coordinate(rect.y),
        q=SHARE_QUALITY,
        f=SHARE_FORMAT,
    )


def crop_url(builder: DerivedUrlBuilder, asset_id: str, rect: Rect) -> str:
    """Derived URL of rect cropped from the asset."""
    return builder.derived_url(asset_id, crop_transform(rect))


def section_share_url(
    builder: DerivedUrlBuilder, page: Page, section: Section
) -> str | None:
    """Share image URL for a section, or None if it cannot be derived.

    A URL is derived only when the page has an asset id and the section
    has a positive width and height.
    """
    if not page.asset_id:
        return None
    if clamp_coordinate(section.width) <= 0 or clamp_coordinate(section.height) <= 0:
        return None
    return crop_url(builder, page.asset_id, section.rect)


def edition_cover_url(
    builder: DerivedUrlBuilder,
    pages: Sequence[Page],
    preset: CoverPreset = CoverPreset.EDITION,
    placeholder: str = DEFAULT_PLACEHOLDER_URL,
) -> str:
    """Share image URL for a whole edition.

    Applies the preset to the first page's asset. Editions whose first
    page has no asset id get the placeholder image.
    """
    if not pages or not pages[0].asset_id:
        return placeholder
    return builder.derived_url(pages[0].asset_id, COVER_TRANSFORMS[preset])
