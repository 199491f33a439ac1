"""PyMuPDF renderer backend."""

import logging
from collections.abc import Iterator
from pathlib import Path

import fitz  # PyMuPDF

from ..exceptions import CorruptInputError, PageRenderError
from .backend import RendererBackend

logger = logging.getLogger(__name__)


class PyMuPDFBackend(RendererBackend):
    """Render pages with PyMuPDF's built-in MuPDF rasterizer."""

    name = "pymupdf"

    def is_available(self) -> bool:
        return True

    def _open(self, pdf_path: Path) -> fitz.Document:
        try:
            doc = fitz.open(str(pdf_path), filetype="pdf")
        except (fitz.FileDataError, RuntimeError, ValueError) as e:
            raise CorruptInputError(f"Cannot open PDF: {e}") from e
        if doc.needs_pass:
            doc.close()
            raise CorruptInputError("PDF is password protected")
        return doc

    def page_count(self, pdf_path: Path) -> int:
        doc = self._open(pdf_path)
        try:
            return len(doc)
        finally:
            doc.close()

    def render(self, pdf_path: Path, scale: float) -> Iterator[tuple[int, bytes]]:
        doc = self._open(pdf_path)
        matrix = fitz.Matrix(scale, scale)

        try:
            for index in range(len(doc)):
                page_no = index + 1
                try:
                    pix = doc[index].get_pixmap(matrix=matrix, alpha=False)
                    png = pix.tobytes("png")
                except (RuntimeError, ValueError) as e:
                    raise PageRenderError(
                        f"Page {page_no} failed to render: {e}", page_no=page_no
                    ) from e
                logger.debug(f"Rendered page {page_no} at {pix.width}x{pix.height}")
                yield page_no, png
        finally:
            doc.close()
