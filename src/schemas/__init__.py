"""Schema definitions for the edition archive."""

from .edition import Edition, EditionStatus, Page, Rect, Section
from .payloads import EditionCreate, EditionUpdate, PagePayload, SectionPayload
from .raster import RasterPage, UploadedAsset
from .transform import URL_GRAMMAR_VERSION, Transform

__all__ = [
    "Edition",
    "EditionStatus",
    "Page",
    "Rect",
    "Section",
    "EditionCreate",
    "EditionUpdate",
    "PagePayload",
    "SectionPayload",
    "RasterPage",
    "UploadedAsset",
    "Transform",
    "URL_GRAMMAR_VERSION",
]
