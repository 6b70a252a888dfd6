"""Graph store: pipelines and nodes persisted with SQLAlchemy Core.

NodeGraphStore owns structure, ExecutionStateManager owns state. Both
share one GraphDB.
"""

from reelgraph.core.graphstore.database import GraphDB
from reelgraph.core.graphstore.execution import ExecutionStateManager
from reelgraph.core.graphstore.store import NodeGraphStore

__all__ = [
    "ExecutionStateManager",
    "GraphDB",
    "NodeGraphStore",
]
