"""ExecutionStateManager: state-only access for executors.

Writes touch only status, metadata_json and output_json. Metadata is
merged (read-modify-write inside one transaction) so keys written by
other parties survive; output is replaced wholesale.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import select

from reelgraph.contracts.enums import NodeStatus
from reelgraph.contracts.errors import NotFoundError
from reelgraph.contracts.nodes import Node, NodeOutput
from reelgraph.core.graphstore.database import GraphDB, utc_now
from reelgraph.core.graphstore.repositories import NodeRepository
from reelgraph.core.graphstore.schema import nodes_table
from reelgraph.core.logging import get_logger

logger = get_logger(__name__)

_KEEP = object()


class ExecutionStateManager:
    """Status transitions and read accessors used by executors."""

    def __init__(self, db: GraphDB, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._db = db
        self._clock = clock
        self._nodes = NodeRepository()

    def mark_started(self, pipeline_id: str, node_id: str) -> None:
        """pending -> in_progress, recording startedAt."""
        self._transition(
            pipeline_id,
            node_id,
            NodeStatus.IN_PROGRESS,
            {"startedAt": self._clock().isoformat()},
        )

    def mark_completed(self, pipeline_id: str, node_id: str, output: NodeOutput) -> None:
        """in_progress -> completed, recording completedAt and the output."""
        self._transition(
            pipeline_id,
            node_id,
            NodeStatus.COMPLETED,
            {"completedAt": self._clock().isoformat()},
            output=output.to_document(),
        )

    def mark_failed(self, pipeline_id: str, node_id: str, error_message: str) -> None:
        """in_progress -> failed, recording completedAt and the error."""
        self._transition(
            pipeline_id,
            node_id,
            NodeStatus.FAILED,
            {"completedAt": self._clock().isoformat(), "error": error_message},
        )

    def get_node(self, pipeline_id: str, node_id: str) -> Node | None:
        with self._db.connection() as conn:
            row = conn.execute(
                select(nodes_table)
                .where(nodes_table.c.pipeline_id == pipeline_id)
                .where(nodes_table.c.id == node_id)
            ).fetchone()
        return self._nodes.load(row) if row is not None else None

    def get_nodes(self, pipeline_id: str, node_ids: list[str]) -> list[Node]:
        """Batch load. Result follows the requested order; missing ids are skipped."""
        if not node_ids:
            return []
        with self._db.connection() as conn:
            rows = conn.execute(
                select(nodes_table)
                .where(nodes_table.c.pipeline_id == pipeline_id)
                .where(nodes_table.c.id.in_(set(node_ids)))
            ).fetchall()
        by_id = {row.id: self._nodes.load(row) for row in rows}
        return [by_id[node_id] for node_id in node_ids if node_id in by_id]

    def _transition(
        self,
        pipeline_id: str,
        node_id: str,
        status: NodeStatus,
        metadata_patch: dict[str, Any],
        *,
        output: Any = _KEEP,
    ) -> None:
        with self._db.connection() as conn:
            row = conn.execute(
                select(nodes_table.c.metadata_json)
                .where(nodes_table.c.pipeline_id == pipeline_id)
                .where(nodes_table.c.id == node_id)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Node not found: {pipeline_id}/{node_id}")

            values: dict[str, Any] = {
                "status": status.value,
                "metadata_json": {**(row.metadata_json or {}), **metadata_patch},
            }
            if output is not _KEEP:
                values["output_json"] = output
            conn.execute(
                nodes_table.update()
                .where(nodes_table.c.pipeline_id == pipeline_id)
                .where(nodes_table.c.id == node_id)
                .values(**values)
            )

        logger.debug(
            "node state changed",
            pipeline_id=pipeline_id,
            node_id=node_id,
            status=status.value,
        )
