"""Edition aggregate schemas.

An Edition is one digitized newspaper issue. Each Page is a rasterized
page image hosted on the asset store; each Section is a rectangle drawn
over a page in that page's pixel space, optionally linked to an article.

Persisted layout:
    editions/
    ├── {id}.json     # Edition
    └── ...
"""

from datetime import date, datetime
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, Field, field_validator


class EditionStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Rect(NamedTuple):
    """A rectangle in a page's pixel space."""

    x: float
    y: float
    width: float
    height: float


class Section(BaseModel):
    """A rectangular overlay on a page.

    Attributes:
        id: Page-local numeric identifier
        slug: Script-preserving identifier derived from title or content
        x: Left edge in page pixels
        y: Top edge in page pixels
        width: Width in page pixels
        height: Height in page pixels
        title: Display title ("untitled" when none was supplied)
        content: Optional body text
        article_id: Optional reference to a canonical article
        share_image_url: Derived crop URL for this rectangle
    """

    id: int
    slug: str | None = None
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    title: str = ""
    content: str = ""
    article_id: str | None = None
    share_image_url: str | None = None

    model_config = {"extra": "forbid"}

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


class Page(BaseModel):
    """One rasterized page of an edition.

    Attributes:
        page_no: 1-based page number
        image: Delivery URL of the full page image
        asset_id: Opaque asset store identifier of the page image
        thumbnail: Delivery URL of the page thumbnail
        width: Pixel width of the rasterized page
        height: Pixel height of the rasterized page
        sort_order: Explicit ordering key; page_no is used when absent
        sections: Sections mapped on this page, in payload order
    """

    page_no: int = Field(ge=1)
    image: str = Field(min_length=1)
    asset_id: str | None = None
    thumbnail: str | None = None
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    sort_order: int | None = None
    sections: list[Section] = []

    model_config = {"extra": "forbid"}

    @property
    def ordering_key(self) -> int:
        return self.sort_order if self.sort_order is not None else self.page_no


class Edition(BaseModel):
    """A digitized newspaper issue, the root aggregate.

    Attributes:
        id: Public numeric identifier (allocated from wall-clock milliseconds)
        uid: Store-native identifier
        title: Edition title
        slug: Unique script-preserving identifier derived from the title
        date: Publication date
        status: Lifecycle status
        pages: Pages ordered by sort_order, falling back to page_no
        created_at: Creation timestamp
        updated_at: Last modification timestamp
        share_image_url: Cover image URL derived from the first page
    """

    id: int
    uid: str
    title: str = Field(min_length=1)
    slug: str | None = None
    date: date
    status: EditionStatus = EditionStatus.PUBLISHED
    pages: list[Page] = []
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    share_image_url: str | None = None

    model_config = {"extra": "forbid"}

    @field_validator("pages")
    @classmethod
    def _order_pages(cls, pages: list[Page]) -> list[Page]:
        return sorted(pages, key=lambda p: p.ordering_key)

    def find_page(self, page_no: int) -> Page | None:
        for page in self.pages:
            if page.page_no == page_no:
                return page
        return None
