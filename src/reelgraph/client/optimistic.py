"""Client-side mirror of a pipeline with optimistic structural edits.

Each command snapshots the mirror, applies the edit locally, then calls
the authoritative NodeGraphStore. If the store rejects it the snapshot
is restored and MutationRejectedError is raised.

    model = OptimisticClientModel.load(store, "pipeline-1")
    model.connect("intro", "merged", "segments")
    model.delete_nodes(["outro"])

Batch deletes are not atomic on the server: ids deleted before the
failing one stay deleted there while the mirror is restored in full.
Reload the mirror after a rejected batch delete.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from reelgraph.contracts.enums import MutationState, NodeStatus
from reelgraph.contracts.errors import MutationRejectedError
from reelgraph.contracts.nodes import Node
from reelgraph.core.dag import PipelineGraph
from reelgraph.core.graphstore.store import NodeGraphStore
from reelgraph.core.logging import get_logger

logger = get_logger(__name__)

# (column, row) on the editor grid
Position = tuple[int, int]


def compute_layout(nodes: Iterable[Node]) -> dict[str, Position]:
    """Rank-based layered layout.

    Column is the node's longest-path depth from a source; row is its
    index among nodes in that column, in list order. A graph with a
    cycle is laid out in a single column.
    """
    node_list = list(nodes)
    graph = PipelineGraph.from_nodes(node_list)
    if graph.is_acyclic():
        depths = graph.layers()
    else:
        depths = {node.id: 0 for node in node_list}

    positions: dict[str, Position] = {}
    next_row: dict[int, int] = {}
    for node in node_list:
        column = depths[node.id]
        row = next_row.get(column, 0)
        positions[node.id] = (column, row)
        next_row[column] = row + 1
    return positions


@dataclass(frozen=True)
class ClientSnapshot:
    """Everything a command may change, captured before it runs."""

    nodes: tuple[Node, ...]
    positions: Mapping[str, Position]
    selected_node_id: str | None


@dataclass
class PendingMutation:
    """One optimistic command.

    APPLIED_LOCALLY -> CONFIRMED | ROLLED_BACK
    """

    command: str
    before: ClientSnapshot
    state: MutationState = MutationState.APPLIED_LOCALLY
    error: str | None = field(default=None)

    def confirm(self) -> None:
        self._require_pending()
        self.state = MutationState.CONFIRMED

    def roll_back(self, error: str) -> None:
        self._require_pending()
        self.state = MutationState.ROLLED_BACK
        self.error = error

    def _require_pending(self) -> None:
        if self.state is not MutationState.APPLIED_LOCALLY:
            raise RuntimeError(
                f"Mutation '{self.command}' already settled as {self.state.value}"
            )


class OptimisticClientModel:
    """Local node list, positions and selection over a NodeGraphStore."""

    def __init__(self, store: NodeGraphStore, pipeline_id: str, nodes: Iterable[Node]) -> None:
        self._store = store
        self.pipeline_id = pipeline_id
        self._nodes: list[Node] = list(nodes)
        self._positions: dict[str, Position] = compute_layout(self._nodes)
        self._selected_node_id: str | None = None
        self._history: list[PendingMutation] = []

    @classmethod
    def load(cls, store: NodeGraphStore, pipeline_id: str) -> "OptimisticClientModel":
        """Build a mirror from the store's current nodes."""
        return cls(store, pipeline_id, store.list_nodes(pipeline_id))

    # === Read access ===

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._nodes)

    @property
    def positions(self) -> Mapping[str, Position]:
        return MappingProxyType(dict(self._positions))

    @property
    def selected_node_id(self) -> str | None:
        return self._selected_node_id

    @property
    def history(self) -> tuple[PendingMutation, ...]:
        return tuple(self._history)

    def node(self, node_id: str) -> Node | None:
        return next((n for n in self._nodes if n.id == node_id), None)

    def select(self, node_id: str | None) -> None:
        self._selected_node_id = node_id

    def relayout(self) -> None:
        """Recompute positions from the current graph."""
        self._positions = compute_layout(self._nodes)

    # === Commands ===

    def connect(self, source_id: str, target_id: str, input_key: str) -> PendingMutation:
        """Append source to target's slot, locally first.

        Raises:
            MutationRejectedError: If the store rejects the connection
        """

        def apply() -> None:
            target = self.node(target_id)
            if target is None:
                return
            refs = target.input_ids(input_key)
            if source_id in refs:
                return
            inputs = {**target.inputs, input_key: [*refs, source_id]}
            self._replace(target.model_copy(update={"inputs": inputs}))

        def remote() -> None:
            self._replace(
                self._store.connect_nodes(self.pipeline_id, source_id, target_id, input_key)
            )

        return self._run("connect nodes", apply, remote)

    def delete_nodes(self, node_ids: list[str]) -> PendingMutation:
        """Delete a batch of nodes, locally first, then one by one on the store.

        Stops at the first rejected id. Ids deleted before it stay
        deleted in the store; the mirror is restored in full.

        Raises:
            MutationRejectedError: If any delete is rejected
        """
        doomed = set(node_ids)

        def apply() -> None:
            remaining: list[Node] = []
            for node in self._nodes:
                if node.id in doomed:
                    continue
                inputs = {
                    key: [ref for ref in refs if ref not in doomed]
                    for key, refs in node.inputs.items()
                }
                if inputs != node.inputs:
                    node = node.model_copy(update={"inputs": inputs})
                remaining.append(node)
            self._nodes = remaining
            self._positions = {
                k: v for k, v in self._positions.items() if k not in doomed
            }
            if self._selected_node_id in doomed:
                self._selected_node_id = None

        def remote() -> None:
            for node_id in node_ids:
                self._store.delete_node(self.pipeline_id, node_id)

        return self._run("delete nodes", apply, remote)

    def reorder(self, node_id: str, input_key: str, new_order: list[str]) -> PendingMutation:
        """Reorder an input slot, locally first. The node goes back to pending.

        Raises:
            MutationRejectedError: If the store rejects the new order
        """

        def apply() -> None:
            node = self.node(node_id)
            if node is None:
                return
            inputs = {**node.inputs, input_key: list(new_order)}
            self._replace(
                node.model_copy(update={"inputs": inputs, "status": NodeStatus.PENDING})
            )

        def remote() -> None:
            self._replace(
                self._store.reorder_inputs(self.pipeline_id, node_id, input_key, new_order)
            )

        return self._run("reorder inputs", apply, remote)

    # === Internals ===

    def _run(
        self, command: str, apply: Callable[[], None], remote: Callable[[], None]
    ) -> PendingMutation:
        mutation = PendingMutation(command=command, before=self._snapshot())
        self._history.append(mutation)
        apply()
        try:
            remote()
        except Exception as e:
            self._restore(mutation.before)
            mutation.roll_back(str(e))
            logger.warning(
                "mutation rolled back",
                pipeline_id=self.pipeline_id,
                command=command,
                error=str(e),
            )
            raise MutationRejectedError(command, e) from e
        mutation.confirm()
        return mutation

    def _snapshot(self) -> ClientSnapshot:
        return ClientSnapshot(
            nodes=tuple(self._nodes),
            positions=MappingProxyType(dict(self._positions)),
            selected_node_id=self._selected_node_id,
        )

    def _restore(self, snapshot: ClientSnapshot) -> None:
        self._nodes = list(snapshot.nodes)
        self._positions = dict(snapshot.positions)
        self._selected_node_id = snapshot.selected_node_id

    def _replace(self, updated: Node) -> None:
        self._nodes = [updated if n.id == updated.id else n for n in self._nodes]
