"""NodeGraphStore: structural mutations on a pipeline's node graph.

Every public method runs in its own transaction. A failure anywhere in
the method rolls back everything it did, including referential cleanup.

Only structure columns are written here. The one exception is
reorder_inputs(), which resets the node's status to pending because the
previous output no longer matches the input order.
"""

from collections import Counter
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import Connection, select
from sqlalchemy.exc import IntegrityError

from reelgraph.contracts.enums import NodeStatus
from reelgraph.contracts.errors import ConflictError, NotFoundError, ValidationError
from reelgraph.contracts.nodes import Node, NodeSpec, normalize_inputs, parse_node
from reelgraph.contracts.pipeline import Pipeline
from reelgraph.core.graphstore.database import GraphDB, utc_now
from reelgraph.core.graphstore.repositories import NodeRepository, PipelineRepository
from reelgraph.core.graphstore.schema import nodes_table, pipelines_table
from reelgraph.core.logging import get_logger

logger = get_logger(__name__)


def _node_ref(pipeline_id: str, node_id: str) -> str:
    return f"{pipeline_id}/{node_id}"


class NodeGraphStore:
    """Structural editing operations over the graph store."""

    def __init__(self, db: GraphDB, *, clock: Callable[[], datetime] = utc_now) -> None:
        """Initialize the store.

        Args:
            db: Shared database handle
            clock: Source of timestamps for updated_at / created_at
        """
        self._db = db
        self._clock = clock
        self._pipelines = PipelineRepository()
        self._nodes = NodeRepository()

    # === Pipelines ===

    def create_pipeline(
        self,
        pipeline_id: str,
        *,
        title: str,
        version: str = "1.0",
        config: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Pipeline:
        """Create an empty pipeline.

        Raises:
            ConflictError: If a pipeline with this id exists
        """
        now = self._clock()
        try:
            with self._db.connection() as conn:
                if self._pipeline_exists(conn, pipeline_id):
                    raise ConflictError(f"Pipeline already exists: {pipeline_id}")
                conn.execute(
                    pipelines_table.insert().values(
                        id=pipeline_id,
                        version=version,
                        title=title,
                        created_at=now,
                        updated_at=now,
                        config_json=config or {},
                        metadata_json=metadata or {},
                    )
                )
        except IntegrityError as e:
            raise ConflictError(f"Pipeline already exists: {pipeline_id}") from e

        logger.info("pipeline created", pipeline_id=pipeline_id)
        pipeline = self.get_pipeline(pipeline_id)
        assert pipeline is not None
        return pipeline

    def get_pipeline(self, pipeline_id: str) -> Pipeline | None:
        with self._db.connection() as conn:
            row = conn.execute(
                select(pipelines_table).where(pipelines_table.c.id == pipeline_id)
            ).fetchone()
        return self._pipelines.load(row) if row is not None else None

    def list_nodes(self, pipeline_id: str) -> list[Node]:
        """All nodes of a pipeline in creation order."""
        with self._db.connection() as conn:
            rows = conn.execute(
                select(nodes_table)
                .where(nodes_table.c.pipeline_id == pipeline_id)
                .order_by(nodes_table.c.created_at, nodes_table.c.id)
            ).fetchall()
        return [self._nodes.load(row) for row in rows]

    # === Structural mutations ===

    def create_node(self, pipeline_id: str, spec: NodeSpec) -> Node:
        """Insert a node built from a spec.

        Asset nodes start completed, everything else pending. Metadata
        and output start empty.

        Raises:
            NotFoundError: If the pipeline does not exist
            ConflictError: If the node id is taken in this pipeline
        """
        # Validates the variant's config before anything is written
        parse_node(
            {
                "id": spec.id,
                "pipeline_id": pipeline_id,
                "title": spec.title,
                "type": spec.type,
                "inputs": spec.inputs,
                "config": spec.config,
                "asset": spec.asset,
                "status": spec.initial_status,
            }
        )

        now = self._clock()
        try:
            with self._db.connection() as conn:
                if not self._pipeline_exists(conn, pipeline_id):
                    raise NotFoundError(f"Pipeline not found: {pipeline_id}")
                if self._fetch_node_row(conn, pipeline_id, spec.id) is not None:
                    raise ConflictError(
                        f"Node already exists: {_node_ref(pipeline_id, spec.id)}"
                    )
                conn.execute(
                    nodes_table.insert().values(
                        pipeline_id=pipeline_id,
                        id=spec.id,
                        title=spec.title,
                        type=spec.type.value,
                        inputs_json=spec.inputs,
                        config_json=spec.config,
                        asset_json=spec.asset.model_dump(mode="json")
                        if spec.asset is not None
                        else None,
                        status=spec.initial_status.value,
                        metadata_json=None,
                        output_json=None,
                        created_at=now,
                    )
                )
                self._touch_pipeline(conn, pipeline_id, now)
        except IntegrityError as e:
            raise ConflictError(
                f"Node already exists: {_node_ref(pipeline_id, spec.id)}"
            ) from e

        logger.info(
            "node created",
            pipeline_id=pipeline_id,
            node_id=spec.id,
            type=spec.type.value,
        )
        return self._get_node(pipeline_id, spec.id)

    def delete_node(self, pipeline_id: str, node_id: str) -> None:
        """Delete a node and every reference to it.

        The id is removed from every other node's input slots before the
        row is deleted. Dependents keep their status.

        Raises:
            NotFoundError: If the node does not exist (nothing is changed)
        """
        now = self._clock()
        with self._db.connection() as conn:
            rows = conn.execute(
                select(nodes_table.c.id, nodes_table.c.inputs_json).where(
                    nodes_table.c.pipeline_id == pipeline_id
                )
            ).fetchall()

            cleaned: list[str] = []
            for row in rows:
                if row.id == node_id:
                    continue
                inputs, changed = _without_reference(row.inputs_json or {}, node_id)
                if changed:
                    conn.execute(
                        nodes_table.update()
                        .where(nodes_table.c.pipeline_id == pipeline_id)
                        .where(nodes_table.c.id == row.id)
                        .values(inputs_json=inputs)
                    )
                    cleaned.append(row.id)

            result = conn.execute(
                nodes_table.delete()
                .where(nodes_table.c.pipeline_id == pipeline_id)
                .where(nodes_table.c.id == node_id)
            )
            if result.rowcount == 0:
                # Raising inside the transaction rolls back the cleanup
                raise NotFoundError(f"Node not found: {_node_ref(pipeline_id, node_id)}")

            self._touch_pipeline(conn, pipeline_id, now)

        logger.info(
            "node deleted",
            pipeline_id=pipeline_id,
            node_id=node_id,
            references_removed=cleaned,
        )

    def connect_nodes(
        self, pipeline_id: str, source_id: str, target_id: str, input_key: str
    ) -> Node:
        """Append source_id to target's input slot.

        Idempotent: connecting an already-connected source changes nothing
        (not even updated_at). A legacy single-string slot becomes a list.

        Returns:
            The target node after the change

        Raises:
            NotFoundError: If either node does not exist
        """
        now = self._clock()
        with self._db.connection() as conn:
            if self._fetch_node_row(conn, pipeline_id, source_id) is None:
                raise NotFoundError(f"Node not found: {_node_ref(pipeline_id, source_id)}")
            target = self._fetch_node_row(conn, pipeline_id, target_id)
            if target is None:
                raise NotFoundError(f"Node not found: {_node_ref(pipeline_id, target_id)}")

            inputs = dict(target.inputs_json or {})
            existing = inputs.get(input_key)
            if existing is None:
                inputs[input_key] = [source_id]
            elif isinstance(existing, str):
                if existing == source_id:
                    return self._nodes.load(target)
                inputs[input_key] = [existing, source_id]
            else:
                if source_id in existing:
                    return self._nodes.load(target)
                inputs[input_key] = [*existing, source_id]

            self._write_inputs(conn, pipeline_id, target_id, inputs)
            self._touch_pipeline(conn, pipeline_id, now)

        logger.info(
            "nodes connected",
            pipeline_id=pipeline_id,
            source_id=source_id,
            target_id=target_id,
            input_key=input_key,
        )
        return self._get_node(pipeline_id, target_id)

    def reorder_inputs(
        self, pipeline_id: str, node_id: str, input_key: str, new_order: list[str]
    ) -> Node:
        """Replace an input slot with a permutation of itself.

        The node goes back to pending since its output was built from
        the old order.

        Returns:
            The node after the change

        Raises:
            NotFoundError: If the node does not exist
            ValidationError: If the slot is not a list, or new_order is
                not an exact permutation of it
        """
        now = self._clock()
        ref = _node_ref(pipeline_id, node_id)
        with self._db.connection() as conn:
            row = self._fetch_node_row(conn, pipeline_id, node_id)
            if row is None:
                raise NotFoundError(f"Node not found: {ref}")

            inputs = dict(row.inputs_json or {})
            current = inputs.get(input_key)
            if not isinstance(current, list):
                raise ValidationError(
                    f'Input key "{input_key}" is not an array for node: {ref}'
                )
            if len(new_order) != len(current) or Counter(new_order) != Counter(current):
                raise ValidationError(
                    "New order must contain the same node IDs as the current order"
                )

            inputs[input_key] = list(new_order)
            conn.execute(
                nodes_table.update()
                .where(nodes_table.c.pipeline_id == pipeline_id)
                .where(nodes_table.c.id == node_id)
                .values(inputs_json=inputs, status=NodeStatus.PENDING.value)
            )
            self._touch_pipeline(conn, pipeline_id, now)

        logger.info(
            "inputs reordered",
            pipeline_id=pipeline_id,
            node_id=node_id,
            input_key=input_key,
            order=new_order,
        )
        return self._get_node(pipeline_id, node_id)

    def migrate_inputs_to_lists(self) -> int:
        """Rewrite legacy single-string input values as one-element lists.

        Covers every pipeline in one transaction.

        Returns:
            Number of nodes rewritten
        """
        migrated = 0
        with self._db.connection() as conn:
            rows = conn.execute(
                select(
                    nodes_table.c.pipeline_id, nodes_table.c.id, nodes_table.c.inputs_json
                )
            ).fetchall()
            for row in rows:
                raw = row.inputs_json or {}
                if not any(isinstance(v, str) for v in raw.values()):
                    continue
                self._write_inputs(conn, row.pipeline_id, row.id, normalize_inputs(raw))
                migrated += 1
                logger.info("inputs migrated", pipeline_id=row.pipeline_id, node_id=row.id)

        logger.info("migration complete", migrated=migrated, scanned=len(rows))
        return migrated

    # === Helpers ===

    def _get_node(self, pipeline_id: str, node_id: str) -> Node:
        with self._db.connection() as conn:
            row = self._fetch_node_row(conn, pipeline_id, node_id)
        if row is None:
            raise NotFoundError(f"Node not found: {_node_ref(pipeline_id, node_id)}")
        return self._nodes.load(row)

    @staticmethod
    def _pipeline_exists(conn: Connection, pipeline_id: str) -> bool:
        row = conn.execute(
            select(pipelines_table.c.id).where(pipelines_table.c.id == pipeline_id)
        ).fetchone()
        return row is not None

    @staticmethod
    def _fetch_node_row(conn: Connection, pipeline_id: str, node_id: str) -> Any:
        return conn.execute(
            select(nodes_table)
            .where(nodes_table.c.pipeline_id == pipeline_id)
            .where(nodes_table.c.id == node_id)
        ).fetchone()

    @staticmethod
    def _write_inputs(
        conn: Connection, pipeline_id: str, node_id: str, inputs: dict[str, Any]
    ) -> None:
        conn.execute(
            nodes_table.update()
            .where(nodes_table.c.pipeline_id == pipeline_id)
            .where(nodes_table.c.id == node_id)
            .values(inputs_json=inputs)
        )

    @staticmethod
    def _touch_pipeline(conn: Connection, pipeline_id: str, now: datetime) -> None:
        conn.execute(
            pipelines_table.update()
            .where(pipelines_table.c.id == pipeline_id)
            .values(updated_at=now)
        )


def _without_reference(inputs: dict[str, Any], node_id: str) -> tuple[dict[str, Any], bool]:
    """Drop node_id from every slot.

    A legacy single-string slot holding the id is removed entirely; list
    slots are filtered in order. Returns (new inputs, changed).
    """
    result: dict[str, Any] = {}
    changed = False
    for key, value in inputs.items():
        if isinstance(value, str):
            if value == node_id:
                changed = True
                continue
            result[key] = value
        else:
            filtered = [ref for ref in value if ref != node_id]
            if len(filtered) != len(value):
                changed = True
            result[key] = filtered
    return result, changed
