"""Download and upload over the remote object service.

Downloads always land in the AssetCache first, so callers get back a
complete local file they can seek in. Uploads go to the default
container under ``{pipeline_id}/{node_id}/{uuid}{ext}``.
"""

from __future__ import annotations

import mimetypes
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Self
from urllib.parse import unquote, urlparse
from uuid import uuid4

from azure.core.exceptions import AzureError

from reelgraph.contracts.errors import TransferError, ValidationError
from reelgraph.core.asset_cache import AssetCache
from reelgraph.core.logging import get_logger

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient

    from reelgraph.core.config import StorageSettings

logger = get_logger(__name__)

_CHUNK_SIZE = 4 * 1024 * 1024
_DEFAULT_UPLOAD_EXT = ".mp4"


@dataclass(frozen=True)
class ObjectLocation:
    container: str
    key: str


@dataclass(frozen=True)
class UploadResult:
    """Where an uploaded file ended up."""

    url: str
    key: str


def parse_object_url(
    url: str, *, endpoint_host: str | None, scheme: str = "az"
) -> ObjectLocation:
    """Split an object URL into (container, key).

    Accepted forms:
        {scheme}://container/key/path.mp4
        https://container.{endpoint_host}/key/path.mp4   (virtual-hosted)
        https://{endpoint_host}/container/key/path.mp4   (path-style)

    Raises:
        ValidationError: If the URL matches none of the forms
    """
    parsed = urlparse(url)
    container = ""
    key = ""

    if parsed.scheme == scheme:
        container = parsed.netloc
        key = parsed.path.lstrip("/")
    elif parsed.scheme in ("http", "https") and endpoint_host and parsed.hostname:
        host = parsed.hostname
        path = parsed.path.lstrip("/")
        if host == endpoint_host:
            container, _, key = path.partition("/")
        elif host.endswith("." + endpoint_host):
            container = host[: -len(endpoint_host) - 1]
            key = path

    if not container or not key:
        raise ValidationError(f"Unable to parse object URL: {url}")
    return ObjectLocation(container=container, key=unquote(key))


def _local_source(url: str) -> Path | None:
    """Local path for file:// URLs and absolute paths, else None."""
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if os.path.isabs(url):
        return Path(url)
    return None


def _read_chunks(path: Path) -> Iterator[bytes]:
    with path.open("rb") as f:
        yield from iter(lambda: f.read(_CHUNK_SIZE), b"")


class RemoteObjectStore:
    """Blob storage client backed by a local AssetCache."""

    def __init__(
        self,
        client: BlobServiceClient,
        cache: AssetCache,
        *,
        container: str,
        url_scheme: str = "az",
        endpoint_host: str | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            client: Blob service client (shared, thread-safe)
            cache: Cache that downloads are written through
            container: Default container for uploads and object_url()
            url_scheme: Scheme of scheme-prefixed object URLs
            endpoint_host: Blob endpoint host for parsing https URLs
        """
        self._client = client
        self._cache = cache
        self.container = container
        self.url_scheme = url_scheme
        self.endpoint_host = endpoint_host

    @classmethod
    def from_settings(cls, settings: StorageSettings, cache: AssetCache) -> Self:
        """Build a store from storage settings.

        Raises:
            pydantic.ValidationError: If the credentials are not configured
        """
        auth = settings.auth_config()
        return cls(
            auth.create_blob_service_client(),
            cache,
            container=settings.container,
            url_scheme=settings.url_scheme,
            endpoint_host=settings.endpoint_host or auth.endpoint_host,
        )

    def object_url(self, key: str) -> str:
        """Fetch URL for a key in the default container."""
        return f"{self.url_scheme}://{self.container}/{key}"

    def download_asset(self, node_id: str, url: str) -> Path:
        """Fetch an asset into the cache and return the local path.

        Raises:
            ValidationError: If the URL cannot be parsed
            TransferError: If the fetch fails
        """
        cached = self._cache.get_cached_path(node_id, url)
        if cached is not None:
            return cached

        local = _local_source(url)
        if local is not None:
            if not local.is_file():
                raise TransferError(f"Local asset not found: {local}")
            path = self._cache.save_stream(node_id, url, _read_chunks(local))
            logger.info("asset copied", node_id=node_id, source=str(local), path=str(path))
            return path

        location = parse_object_url(
            url, endpoint_host=self.endpoint_host, scheme=self.url_scheme
        )
        blob = self._client.get_blob_client(container=location.container, blob=location.key)
        try:
            downloader = blob.download_blob()
            path = self._cache.save_stream(node_id, url, downloader.chunks())
        except AzureError as e:
            raise TransferError(f"Failed to download {url}: {e}") from e

        logger.info(
            "asset downloaded",
            node_id=node_id,
            container=location.container,
            key=location.key,
            path=str(path),
        )
        return path

    def upload_asset(self, local_path: Path, pipeline_id: str, node_id: str) -> UploadResult:
        """Upload a local file to the default container.

        Blobs are never overwritten: every upload gets a fresh uuid key.

        Raises:
            TransferError: If the upload fails
        """
        from azure.storage.blob import ContentSettings

        ext = local_path.suffix or _DEFAULT_UPLOAD_EXT
        key = f"{pipeline_id}/{node_id}/{uuid4()}{ext}"
        content_type = mimetypes.guess_type(f"x{ext}")[0] or "video/mp4"

        blob = self._client.get_blob_client(container=self.container, blob=key)
        try:
            with local_path.open("rb") as f:
                blob.upload_blob(
                    f,
                    overwrite=False,
                    content_settings=ContentSettings(content_type=content_type),
                )
        except AzureError as e:
            raise TransferError(f"Failed to upload {local_path} to {key}: {e}") from e

        logger.info("asset uploaded", pipeline_id=pipeline_id, node_id=node_id, key=key)
        return UploadResult(url=blob.url, key=key)
