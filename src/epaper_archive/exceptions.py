"""Exceptions raised by the edition digitization engine."""


class ArchiveError(Exception):
    """Base exception for all edition archive errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class InputError(ArchiveError):
    """Raised when required input is missing or malformed."""

    pass


class CorruptInputError(InputError):
    """Raised when the submitted PDF cannot be parsed."""

    pass


class RenderError(ArchiveError):
    """Raised when rasterization fails."""

    pass


class RendererUnavailableError(RenderError):
    """Raised when no configured renderer backend can run."""

    def __init__(self, message: str, tried: list[str] | None = None, *args, **kwargs):
        self.tried = tried or []
        super().__init__(message, *args, **kwargs)


class PageRenderError(RenderError):
    """Raised when a single page fails to render."""

    def __init__(self, message: str, page_no: int, *args, **kwargs):
        self.page_no = page_no
        super().__init__(message, *args, **kwargs)


class UploadError(ArchiveError):
    """Raised when the asset store rejects or fails an upload."""

    def __init__(self, message: str, name: str | None = None, *args, **kwargs):
        self.name = name
        super().__init__(message, *args, **kwargs)


class ValidationError(ArchiveError):
    """Raised when an edition fails schema checks.

    Attributes:
        errors: Messages keyed by field path (e.g. "pages.0.width")
    """

    def __init__(self, message: str, errors: dict[str, str] | None = None, *args, **kwargs):
        self.errors = errors or {}
        super().__init__(message, *args, **kwargs)

    @classmethod
    def from_pydantic(cls, message: str, exc) -> "ValidationError":
        """Build from a pydantic ValidationError, one entry per failing field."""
        errors: dict[str, str] = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
            errors.setdefault(field, error.get("msg", "invalid value"))
        return cls(message, errors=errors)


class NotFoundError(ArchiveError):
    """Raised when an edition identifier does not resolve."""

    def __init__(self, message: str = "Edition not found"):
        super().__init__(message)
