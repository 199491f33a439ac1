"""Poppler renderer backend via pdf2image."""

import io
import logging
import shutil
from collections.abc import Iterator
from pathlib import Path

from pdf2image import convert_from_path, pdfinfo_from_path
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFSyntaxError,
)

from ..exceptions import CorruptInputError, PageRenderError, RendererUnavailableError
from .backend import RendererBackend

logger = logging.getLogger(__name__)

# PDF user space is 72 units per inch.
POINTS_PER_INCH = 72


class Pdf2ImageBackend(RendererBackend):
    """Render pages with poppler's pdftoppm.

    Attributes:
        poppler_path: Directory containing the poppler binaries, or None to
            search PATH
    """

    name = "pdf2image"

    def __init__(self, poppler_path: Path | None = None):
        self.poppler_path = poppler_path

    def is_available(self) -> bool:
        if self.poppler_path is not None:
            return (self.poppler_path / "pdftoppm").exists()
        return shutil.which("pdftoppm") is not None and shutil.which("pdfinfo") is not None

    def page_count(self, pdf_path: Path) -> int:
        try:
            info = pdfinfo_from_path(str(pdf_path), poppler_path=self.poppler_path)
        except PDFInfoNotInstalledError as e:
            raise RendererUnavailableError(
                "poppler is not installed", tried=[self.name]
            ) from e
        except (PDFPageCountError, PDFSyntaxError) as e:
            raise CorruptInputError(f"Cannot open PDF: {e}") from e
        return int(info.get("Pages", 0))

    def render(self, pdf_path: Path, scale: float) -> Iterator[tuple[int, bytes]]:
        dpi = POINTS_PER_INCH * scale

        for page_no in range(1, self.page_count(pdf_path) + 1):
            try:
                images = convert_from_path(
                    str(pdf_path),
                    dpi=dpi,
                    first_page=page_no,
                    last_page=page_no,
                    fmt="png",
                    poppler_path=self.poppler_path,
                )
            except PDFSyntaxError as e:
                raise CorruptInputError(f"Cannot render PDF: {e}") from e
            except (PDFPageCountError, OSError, ValueError) as e:
                raise PageRenderError(
                    f"Page {page_no} failed to render: {e}", page_no=page_no
                ) from e

            if not images:
                raise PageRenderError(f"Page {page_no} produced no image", page_no=page_no)

            buffer = io.BytesIO()
            images[0].save(buffer, format="PNG")
            logger.debug(f"Rendered page {page_no} at {images[0].width}x{images[0].height}")
            yield page_no, buffer.getvalue()
