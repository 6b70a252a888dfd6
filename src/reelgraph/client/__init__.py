"""Client-side models for the pipeline editor."""

from reelgraph.client.optimistic import (
    ClientSnapshot,
    OptimisticClientModel,
    PendingMutation,
    compute_layout,
)

__all__ = [
    "ClientSnapshot",
    "OptimisticClientModel",
    "PendingMutation",
    "compute_layout",
]
