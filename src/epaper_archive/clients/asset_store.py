"""Asset store client for hosting page images.

Page images are uploaded to a Cloudinary-compatible image service. The
service serves derived images (crops, resizes, format conversions) from
URLs that encode the transform, and materializes them lazily on first
fetch, so computing a derived URL never touches the network.
"""

import hashlib
import logging
import time
from typing import Any

from schemas.raster import UploadedAsset
from schemas.transform import Transform

from ..exceptions import UploadError
from .client import Client
from .exceptions import ClientError, NotFoundError, ResponseError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.cloudinary.com"
DEFAULT_DELIVERY_BASE = "https://res.cloudinary.com"

THUMBNAIL_TRANSFORMS = (
    Transform.build(c="limit", h=1000, w=800),
    Transform.build(q="auto"),
    Transform.build(f="auto"),
)

# Upper bound on delete-by-prefix round trips; each call removes up to 1000 assets.
MAX_DELETE_ROUNDS = 50


class AssetStoreClient(Client):
    """Client for the remote image asset store.

    Config keys (in addition to the base Client keys):
        cloud_name (required): Account name used in API and delivery paths
        api_key (required): API key
        api_secret (required): API secret used for request signing
        base_url: API base URL (default: https://api.cloudinary.com)
        delivery_base: Delivery base URL (default: https://res.cloudinary.com)

    Example:
        config = {"cloud_name": "demo", "api_key": "123", "api_secret": "abc"}
        with AssetStoreClient(config) as store:
            asset = store.upload(jpeg_bytes, "epapers/1705300000000/pages", "page-1")
            url = store.derived_url(asset.asset_id, Transform.build(c="crop", w=100, h=80))
    """

    def __init__(self, config: dict):
        for key in ("cloud_name", "api_key", "api_secret"):
            if not config.get(key):
                raise ValueError(f"config must include '{key}'")

        config = {
            "base_url": DEFAULT_API_BASE,
            **config,
            "auth": (config["api_key"], config["api_secret"]),
        }
        super().__init__(config)

    @property
    def cloud_name(self) -> str:
        return str(self._config["cloud_name"])

    @property
    def api_key(self) -> str:
        return str(self._config["api_key"])

    @property
    def delivery_base(self) -> str:
        return str(self._config.get("delivery_base", DEFAULT_DELIVERY_BASE)).rstrip("/")

    @property
    def delivery_prefix(self) -> str:
        """Base of every delivery URL, up to and including ``image/upload``."""
        return f"{self.delivery_base}/{self.cloud_name}/image/upload"

    def sign(self, params: dict[str, Any]) -> str:
        """Compute the request signature for signed upload API calls.

        The signature is the SHA-1 of the parameters sorted by name, joined
        as ``key=value`` pairs with ``&``, followed by the API secret.
        """
        to_sign = "&".join(
            f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, "")
        )
        secret = str(self._config["api_secret"])
        return hashlib.sha1(f"{to_sign}{secret}".encode("utf-8")).hexdigest()

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        return {**params, "api_key": self.api_key, "signature": self.sign(params)}

    def upload(self, data: bytes, namespace: str, name: str) -> UploadedAsset:
        """Upload image bytes under a namespace.

        Args:
            data: Encoded image bytes
            namespace: Folder path grouping the edition's assets
            name: Asset name within the namespace

        Returns:
            UploadedAsset with delivery URL, asset id and dimensions

        Raises:
            UploadError: If the store cannot be reached or rejects the upload
        """
        params = self._signed({"folder": namespace, "public_id": name})
        files = {"file": (f"{name}.jpg", data, "image/jpeg")}

        try:
            response = self.post(
                f"/v1_1/{self.cloud_name}/image/upload",
                data=params,
                files=files,
                auth=None,
            )
            body = response.json()
            asset = UploadedAsset(
                delivery_url=body["secure_url"],
                asset_id=body["public_id"],
                width=int(body.get("width") or 0),
                height=int(body.get("height") or 0),
                byte_size=int(body.get("bytes") or 0),
            )
        except ClientError as e:
            raise UploadError(
                f"Upload of {namespace}/{name} failed: {e.message}", name=name
            ) from e
        except (KeyError, TypeError, ValueError) as e:
            raise UploadError(
                f"Upload of {namespace}/{name} returned an unexpected response: {e}",
                name=name,
            ) from e

        asset.thumbnail_url = self.derived_url(asset.asset_id, *THUMBNAIL_TRANSFORMS)
        logger.debug(f"Uploaded {asset.asset_id} ({asset.byte_size} bytes)")
        return asset

    def delete(self, asset_id: str) -> bool:
        """Delete a single asset.

        Deleting an asset that does not exist counts as success. Failures
        are logged and reported through the return value, never raised.

        Returns:
            True if the asset is gone, False if the store could not confirm it
        """
        params = self._signed({"public_id": asset_id})
        try:
            response = self.post(
                f"/v1_1/{self.cloud_name}/image/destroy", data=params, auth=None
            )
            result = response.json().get("result")
        except (ClientError, ValueError) as e:
            logger.error(f"Failed to delete asset {asset_id}: {e}")
            return False

        if result not in ("ok", "not found"):
            logger.error(f"Asset store refused to delete {asset_id}: {result}")
            return False
        return True

    def delete_namespace(self, prefix: str) -> int:
        """Delete every asset whose id starts with prefix.

        Failures are logged, never raised.

        Returns:
            Number of assets the store reported as deleted
        """
        deleted = 0
        params: dict[str, Any] = {"prefix": prefix}

        try:
            for _ in range(MAX_DELETE_ROUNDS):
                response = self._request(
                    "DELETE",
                    f"/v1_1/{self.cloud_name}/resources/image/upload",
                    params=params,
                )
                body = response.json()
                deleted += sum(
                    1 for status in body.get("deleted", {}).values() if status == "deleted"
                )
                cursor = body.get("next_cursor")
                if not cursor:
                    break
                params = {"prefix": prefix, "next_cursor": cursor}
        except (ClientError, ValueError) as e:
            logger.error(f"Failed to delete namespace {prefix}: {e}")

        logger.info(f"Deleted {deleted} assets under {prefix}")
        return deleted

    def fetch(self, asset_id: str) -> dict[str, Any]:
        """Fetch the store's metadata record for an asset.

        Raises:
            NotFoundError: If the asset does not exist
            ResponseError: If the response is not a JSON object
        """
        response = self.get(f"/v1_1/{self.cloud_name}/resources/image/upload/{asset_id}")
        try:
            body = response.json()
        except ValueError as e:
            raise ResponseError(f"Invalid metadata response for {asset_id}") from e
        if not isinstance(body, dict):
            raise ResponseError(f"Invalid metadata response for {asset_id}")
        return body

    def exists(self, asset_id: str) -> bool:
        try:
            self.fetch(asset_id)
        except NotFoundError:
            return False
        return True

    def derived_url(self, asset_id: str, *transforms: Transform) -> str:
        """Build the URL of a derived image.

        Pure and synchronous: the store renders the derivative on first
        fetch, so the returned URL may not reference a materialized object yet.
        """
        segments = [t.segment() for t in transforms if t.params]
        return "/".join([self.delivery_prefix, *segments, asset_id])
