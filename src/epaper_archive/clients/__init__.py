"""Network clients for the remote asset store."""

from .asset_store import AssetStoreClient
from .client import Client
from .exceptions import (
    APIError,
    AuthenticationError,
    ClientError,
    ConnectionError,
    NotFoundError,
    RateLimitError,
    ResponseError,
)

__all__ = [
    "Client",
    "AssetStoreClient",
    "ClientError",
    "ConnectionError",
    "APIError",
    "AuthenticationError",
    "RateLimitError",
    "NotFoundError",
    "ResponseError",
]
