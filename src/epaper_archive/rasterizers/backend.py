"""Base class for PDF renderer backends.

A backend turns a PDF file into lossless page rasters, one page at a time.
Backends are interchangeable; the rasterizer tries them in configured
order and uses the first one that reports itself available.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path


class RendererBackend(ABC):
    """Abstract base class for renderer backends."""

    name: str = ""

    @abstractmethod
    def is_available(self) -> bool:
        """Report whether the backend's native dependencies are present."""
        pass

    @abstractmethod
    def page_count(self, pdf_path: Path) -> int:
        """Return the number of pages in the PDF.

        Raises:
            CorruptInputError: If the file cannot be parsed as a PDF
            RendererUnavailableError: If the backend cannot run
        """
        pass

    @abstractmethod
    def render(self, pdf_path: Path, scale: float) -> Iterator[tuple[int, bytes]]:
        """Render every page as PNG, sequentially.

        Args:
            pdf_path: Path to the PDF file
            scale: Oversampling factor relative to the nominal page size

        Yields:
            (page_no, png_bytes) pairs in page order, 1-based

        Raises:
            CorruptInputError: If the file cannot be parsed as a PDF
            PageRenderError: If a page fails to render
        """
        pass
