"""Incoming edition payload schemas.

Payloads arrive from the admin mapping tool, which sends whatever its
client-side state holds: numbers as strings, camelCase keys, store
bookkeeping fields. Unknown fields are ignored. Page and section entries
are kept as raw mappings here and coerced field by field during
normalization, so a malformed entry is dropped rather than failing the
whole payload.
"""

from typing import Any

from pydantic import BaseModel, Field


class EditionCreate(BaseModel):
    """Payload for creating an edition from already-hosted page images.

    Attributes:
        id: Optional public id; an existing edition with this id is replaced
        title: Edition title
        date: Publication date in any form accepted by the date parser
        status: Lifecycle status (defaults to published)
        pages: Raw page entries
    """

    id: Any = None
    title: Any = None
    date: Any = None
    status: Any = None
    pages: Any = None

    model_config = {"extra": "ignore"}


class EditionUpdate(BaseModel):
    """Payload for updating an edition.

    Only supplied fields are applied. Supplying ``pages`` replaces the
    whole page list, including every section on it.
    """

    title: Any = None
    date: Any = None
    status: Any = None
    pages: Any = None

    model_config = {"extra": "ignore"}

    @property
    def supplied(self) -> set[str]:
        return set(self.model_fields_set)


class PagePayload(BaseModel):
    """Raw page entry with the key aliases the mapping tool sends."""

    page_no: Any = Field(default=None, alias="pageNo")
    image: Any = None
    image_url: Any = Field(default=None, alias="imageUrl")
    asset_id: Any = Field(default=None, alias="assetId")
    public_id: Any = Field(default=None, alias="publicId")
    thumbnail: Any = None
    thumbnail_url: Any = Field(default=None, alias="thumbnailUrl")
    width: Any = None
    height: Any = None
    sort_order: Any = Field(default=None, alias="sortOrder")
    sections: Any = None
    news: Any = None

    model_config = {"extra": "ignore", "populate_by_name": True}


class SectionPayload(BaseModel):
    """Raw section entry with the key aliases the mapping tool sends."""

    id: Any = None
    slug: Any = None
    x: Any = None
    y: Any = None
    width: Any = None
    height: Any = None
    title: Any = None
    content: Any = None
    article_id: Any = Field(default=None, alias="articleId")

    model_config = {"extra": "ignore", "populate_by_name": True}
