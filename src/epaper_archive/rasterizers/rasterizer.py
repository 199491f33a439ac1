"""PDF rasterizer producing page images for an edition.

Pages are rendered strictly one at a time: a document can only have one
render in flight, and streaming pages out keeps peak memory bounded for
large editions. Each page is rendered losslessly by a backend, then
re-encoded to JPEG at a fixed quality for storage.
"""

import io
import logging
from collections.abc import Iterator
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from schemas.raster import RasterPage

from ..exceptions import (
    CorruptInputError,
    InputError,
    PageRenderError,
    RendererUnavailableError,
)
from .backend import RendererBackend
from .pdf2image_backend import Pdf2ImageBackend
from .pymupdf_backend import PyMuPDFBackend
from .scratch import scratch_space

logger = logging.getLogger(__name__)

RENDERER_BACKENDS: dict[str, type[RendererBackend]] = {
    PyMuPDFBackend.name: PyMuPDFBackend,
    Pdf2ImageBackend.name: Pdf2ImageBackend,
}

DEFAULT_RENDERERS = ["pymupdf", "pdf2image"]
DEFAULT_SCALE = 3.5
DEFAULT_JPEG_QUALITY = 95
PDF_MAGIC = b"%PDF-"


class PdfRasterizer:
    """Convert PDF bytes into an ordered sequence of JPEG page images.

    Config keys:
        renderers: Backend names in preference order (default: pymupdf, pdf2image)
        scale: Oversampling factor over nominal page size (default: 3.5)
        jpeg_quality: JPEG quality for stored pages (default: 95)
        scratch_dir: Parent directory for per-conversion scratch space

    Example:
        rasterizer = PdfRasterizer({"renderers": ["pymupdf"], "scale": 2.0})
        for page in rasterizer.rasterize(pdf_bytes):
            print(page.page_no, page.width, page.height)
    """

    def __init__(
        self,
        config: dict | None = None,
        backends: list[RendererBackend] | None = None,
    ):
        self._config = config or {}
        if not 0 < self.scale <= 10:
            raise ValueError(f"scale must be in (0, 10], got {self.scale}")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be in [1, 100], got {self.jpeg_quality}")
        self.backends = backends if backends is not None else self._build_backends()

    @property
    def renderer_names(self) -> list[str]:
        return list(self._config.get("renderers", DEFAULT_RENDERERS))

    @property
    def scale(self) -> float:
        return float(self._config.get("scale", DEFAULT_SCALE))

    @property
    def jpeg_quality(self) -> int:
        return int(self._config.get("jpeg_quality", DEFAULT_JPEG_QUALITY))

    @property
    def scratch_dir(self) -> Path | None:
        scratch_dir = self._config.get("scratch_dir")
        return Path(scratch_dir) if scratch_dir else None

    def _build_backends(self) -> list[RendererBackend]:
        backends = []
        for name in self.renderer_names:
            if name not in RENDERER_BACKENDS:
                raise ValueError(
                    f"Unknown renderer '{name}', expected one of {sorted(RENDERER_BACKENDS)}"
                )
            backends.append(RENDERER_BACKENDS[name]())
        return backends

    def _select_backend(self, pdf_path: Path) -> tuple[RendererBackend, int]:
        """Pick the first available backend and count pages with it."""
        tried: list[str] = []
        for backend in self.backends:
            tried.append(backend.name)
            if not backend.is_available():
                logger.warning(f"Renderer {backend.name} is not available, trying next")
                continue
            try:
                count = backend.page_count(pdf_path)
            except RendererUnavailableError as e:
                logger.warning(f"Renderer {backend.name} unavailable: {e.message}")
                continue
            logger.debug(f"Using renderer {backend.name}")
            return backend, count

        raise RendererUnavailableError(
            f"No PDF renderer available (tried: {', '.join(tried) or 'none'})",
            tried=tried,
        )

    def rasterize(self, pdf_bytes: bytes) -> Iterator[RasterPage]:
        """Render a PDF page by page.

        The sequence cannot be restarted. Any page failing to render raises
        and ends the sequence; the scratch copy of the PDF is removed when
        the sequence finishes, fails, or is closed.

        Args:
            pdf_bytes: Raw PDF file content

        Yields:
            RasterPage for each page, in page order

        Raises:
            InputError: If pdf_bytes is empty
            CorruptInputError: If the content is not a readable PDF
            RendererUnavailableError: If no configured backend can run
            PageRenderError: If a page fails to render or re-encode
        """
        if not pdf_bytes:
            raise InputError("No PDF content supplied")
        if PDF_MAGIC not in pdf_bytes[:1024]:
            raise CorruptInputError("Content is not a PDF document")

        with scratch_space(self.scratch_dir) as workdir:
            pdf_path = workdir / "source.pdf"
            pdf_path.write_bytes(pdf_bytes)

            backend, count = self._select_backend(pdf_path)
            if count == 0:
                raise CorruptInputError("PDF has no pages")
            logger.info(f"PDF has {count} pages, rendering with {backend.name}")

            for page_no, png in backend.render(pdf_path, self.scale):
                page = self._encode(page_no, png)
                logger.info(f"Converted page {page_no}/{count}")
                yield page

    def rasterize_all(self, pdf_bytes: bytes) -> list[RasterPage]:
        """Render every page, returning nothing unless all pages succeed."""
        return list(self.rasterize(pdf_bytes))

    def _encode(self, page_no: int, png: bytes) -> RasterPage:
        """Re-encode a lossless page raster as JPEG."""
        try:
            with Image.open(io.BytesIO(png)) as image:
                width, height = image.size
                buffer = io.BytesIO()
                image.convert("RGB").save(buffer, format="JPEG", quality=self.jpeg_quality)
        except (UnidentifiedImageError, OSError) as e:
            raise PageRenderError(
                f"Page {page_no} could not be encoded: {e}", page_no=page_no
            ) from e

        return RasterPage(
            page_no=page_no,
            image_bytes=buffer.getvalue(),
            width=width,
            height=height,
        )
