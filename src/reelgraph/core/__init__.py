"""Core infrastructure: configuration, logging, graph store, cache, storage, DAG."""

from reelgraph.core.logging import (
    configure_logging,
    get_logger,
)
from reelgraph.core.asset_cache import (
    AssetCache,
    FilesystemAssetCache,
)
from reelgraph.core.config import (
    CacheSettings,
    DatabaseSettings,
    ExecutionSettings,
    LoggingSettings,
    ReelgraphSettings,
    StorageSettings,
    load_settings,
)
from reelgraph.core.dag import (
    GraphValidationError,
    PipelineGraph,
)
from reelgraph.core.validation import validate_node

__all__ = [
    "AssetCache",
    "CacheSettings",
    "DatabaseSettings",
    "ExecutionSettings",
    "FilesystemAssetCache",
    "GraphValidationError",
    "LoggingSettings",
    "PipelineGraph",
    "ReelgraphSettings",
    "StorageSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
    "validate_node",
]
