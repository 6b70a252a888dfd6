"""Local cache for downloaded assets.

Entries are keyed by (consuming node, source URL):

    base_path/{node_id}-{md5(url)}{ext}

Two nodes fetching the same URL each get their own copy. The cache is
shared between concurrent executors and is not locked; writes land via
atomic rename so a cached path always points at a complete file.
"""

import hashlib
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable
from urllib.parse import urlparse

from reelgraph.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class AssetCache(Protocol):
    """Protocol for asset cache backends."""

    def get_cached_path(self, node_id: str, url: str) -> Path | None:
        """Path of the cached copy, or None on a miss."""
        ...

    def save(self, node_id: str, url: str, content: bytes) -> Path:
        """Store content and return the cached path."""
        ...

    def save_stream(self, node_id: str, url: str, chunks: Iterable[bytes]) -> Path:
        """Store streamed content and return the cached path."""
        ...


def cache_key(node_id: str, url: str) -> str:
    """Cache file name for a node/URL pair.

    The extension is taken from the URL path so tools that sniff by
    suffix (ffmpeg) see the right container format.
    """
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()
    ext = PurePosixPath(urlparse(url).path).suffix
    return f"{node_id}-{digest}{ext}"


class FilesystemAssetCache:
    """Filesystem-based asset cache.

    The directory is created lazily on first write.
    """

    def __init__(self, base_path: Path) -> None:
        """Initialize filesystem cache.

        Args:
            base_path: Root directory for cached files
        """
        self.base_path = base_path

    @property
    def cache_dir(self) -> Path:
        return self.base_path

    def _path_for(self, node_id: str, url: str) -> Path:
        return self.base_path / cache_key(node_id, url)

    def get_cached_path(self, node_id: str, url: str) -> Path | None:
        """Existence check only; content is not verified."""
        path = self._path_for(node_id, url)
        if path.exists():
            logger.debug("cache hit", key=path.name)
            return path
        logger.debug("cache miss", key=path.name)
        return None

    def save(self, node_id: str, url: str, content: bytes) -> Path:
        """Write content to the cache and return its path."""
        return self.save_stream(node_id, url, [content])

    def save_stream(self, node_id: str, url: str, chunks: Iterable[bytes]) -> Path:
        """Write chunks to a temp file in the cache dir, then rename into place.

        A failure part-way through leaves no entry behind.
        """
        self.base_path.mkdir(parents=True, exist_ok=True)
        path = self._path_for(node_id, url)

        fd, tmp_name = tempfile.mkstemp(dir=self.base_path, prefix=".partial-")
        size = 0
        try:
            with os.fdopen(fd, "wb") as f:
                for chunk in chunks:
                    f.write(chunk)
                    size += len(chunk)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("cache saved", key=path.name, size=size)
        return path
