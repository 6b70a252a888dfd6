"""Remote object storage: Azure Blob client, URL parsing, auth."""

from reelgraph.core.storage.auth import AzureAuthConfig
from reelgraph.core.storage.object_store import (
    ObjectLocation,
    RemoteObjectStore,
    UploadResult,
    parse_object_url,
)

__all__ = [
    "AzureAuthConfig",
    "ObjectLocation",
    "RemoteObjectStore",
    "UploadResult",
    "parse_object_url",
]
