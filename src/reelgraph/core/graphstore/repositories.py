"""Repository layer for graph store records.

Handles the seam between SQLAlchemy rows (strings, JSON documents) and
domain objects (strict enums, node variants). This is NOT a trust
boundary: a stored status outside the closed set is a bug and loading
it crashes. A stored type outside the node type set raises
UnknownNodeTypeError, so an execution request reports it like any
other unsupported type.
"""

from typing import Any

from reelgraph.contracts.enums import LEGACY_NODE_TYPE_ALIASES, NodeStatus, NodeType
from reelgraph.contracts.errors import UnknownNodeTypeError
from reelgraph.contracts.nodes import Node, parse_node
from reelgraph.contracts.pipeline import Pipeline


class PipelineRepository:
    """Repository for Pipeline records."""

    def load(self, row: Any) -> Pipeline:
        return Pipeline(
            id=row.id,
            version=row.version,
            title=row.title,
            created_at=row.created_at,
            updated_at=row.updated_at,
            config=dict(row.config_json or {}),
            metadata=dict(row.metadata_json or {}),
        )


class NodeRepository:
    """Repository for Node records."""

    def load(self, row: Any) -> Node:
        """Load a Node variant from a database row.

        Legacy single-string inputs are normalised to lists here; the
        stored document is left as is.

        Raises:
            UnknownNodeTypeError: If the stored type is outside the closed set
        """
        if row.type not in LEGACY_NODE_TYPE_ALIASES:
            try:
                NodeType(row.type)
            except ValueError:
                raise UnknownNodeTypeError(row.type) from None

        document: dict[str, Any] = {
            "id": row.id,
            "pipeline_id": row.pipeline_id,
            "title": row.title,
            "type": row.type,
            "inputs": row.inputs_json or {},
            "config": row.config_json or {},
            "status": NodeStatus(row.status),  # Convert HERE
            "metadata": row.metadata_json,
            "output": row.output_json,
        }
        if row.asset_json is not None:
            document["asset"] = row.asset_json
        return parse_node(document)
