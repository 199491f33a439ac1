"""Edition aggregate assembly and persistence."""

from .assembler import AssemblyResult, EditionAssembler
from .normalization import normalize_pages
from .refs import ById, ByNativeId, BySlug, EditionRef, parse_edition_ref
from .store import EditionStore

__all__ = [
    "AssemblyResult",
    "EditionAssembler",
    "EditionStore",
    "EditionRef",
    "ById",
    "BySlug",
    "ByNativeId",
    "parse_edition_ref",
    "normalize_pages",
]
