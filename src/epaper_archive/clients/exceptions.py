"""Exceptions raised by the asset store HTTP layer.

Each error says whether repeating the same request can succeed; the base
client retries only those that can.
"""


class ClientError(Exception):
    """Base exception for all client errors."""

    retryable = False

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class ConnectionError(ClientError):
    """Raised when the store cannot be reached or does not answer in time."""

    retryable = True


class APIError(ClientError):
    """Raised when the store answers with a non-2xx status.

    Attributes:
        status_code: HTTP status of the response
        detail: Error message from the store's ``{"error": {"message": ...}}`` body
    """

    def __init__(self, message: str, status_code: int, detail: str | None = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.status_code >= 500


class AuthenticationError(APIError):
    """Raised on 401/403: bad credentials or a rejected request signature."""

    pass


class NotFoundError(APIError):
    """Raised when the requested asset does not exist."""

    def __init__(self, message: str = "Resource not found", detail: str | None = None):
        super().__init__(message, status_code=404, detail=detail)


class RateLimitError(APIError):
    """Raised when the store throttles the account."""

    def __init__(self, message: str = "Rate limit exceeded", detail: str | None = None):
        super().__init__(message, status_code=429, detail=detail)

    @property
    def retryable(self) -> bool:
        return True


class ResponseError(ClientError):
    """Raised when a successful response has an unexpected body."""

    def __init__(self, message: str, body: dict | None = None):
        self.body = body or {}
        super().__init__(message)
