"""Rasterization and upload results."""

from dataclasses import dataclass

from pydantic import BaseModel


@dataclass
class RasterPage:
    """A single rendered page.

    Attributes:
        page_no: 1-based page number within the source PDF
        image_bytes: Encoded image (JPEG)
        width: Pixel width
        height: Pixel height
    """

    page_no: int
    image_bytes: bytes
    width: int
    height: int


class UploadedAsset(BaseModel):
    """An image stored on the remote asset store.

    Attributes:
        delivery_url: Public URL of the stored image
        asset_id: Opaque identifier used for derived URLs and deletion
        width: Pixel width reported by the store
        height: Pixel height reported by the store
        byte_size: Stored size in bytes
        thumbnail_url: Derived thumbnail URL
    """

    delivery_url: str
    asset_id: str
    width: int
    height: int
    byte_size: int = 0
    thumbnail_url: str | None = None
