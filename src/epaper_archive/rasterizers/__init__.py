"""PDF rasterization backends and scratch space handling."""

from .backend import RendererBackend
from .pdf2image_backend import Pdf2ImageBackend
from .pymupdf_backend import PyMuPDFBackend
from .rasterizer import RENDERER_BACKENDS, PdfRasterizer
from .scratch import scratch_space, sweep_scratch

__all__ = [
    "RendererBackend",
    "PyMuPDFBackend",
    "Pdf2ImageBackend",
    "PdfRasterizer",
    "RENDERER_BACKENDS",
    "scratch_space",
    "sweep_scratch",
]
