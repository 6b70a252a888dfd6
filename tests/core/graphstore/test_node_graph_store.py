"""Tests for structural mutations in NodeGraphStore."""

import pytest
from conftest import PIPELINE_ID, make_spec, seed_video_output, video_asset_spec
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select

from reelgraph.contracts import (
    ConflictError,
    NodeStatus,
    NotFoundError,
    Pipeline,
    ValidationError,
)
from reelgraph.core.graphstore import ExecutionStateManager, GraphDB, NodeGraphStore
from reelgraph.core.graphstore.schema import nodes_table


def _set_raw_inputs(db: GraphDB, node_id: str, inputs: dict) -> None:
    with db.connection() as conn:
        conn.execute(
            nodes_table.update()
            .where(nodes_table.c.pipeline_id == PIPELINE_ID)
            .where(nodes_table.c.id == node_id)
            .values(inputs_json=inputs)
        )


def _raw_inputs(db: GraphDB, node_id: str) -> dict:
    with db.connection() as conn:
        return conn.execute(
            select(nodes_table.c.inputs_json)
            .where(nodes_table.c.pipeline_id == PIPELINE_ID)
            .where(nodes_table.c.id == node_id)
        ).scalar_one()


class TestPipelines:
    """Pipeline records."""

    def test_create_and_get(self, store: NodeGraphStore) -> None:
        created = store.create_pipeline(
            "demo",
            title="Demo",
            config={"storage": {"bucket": "media", "prefix": "demo/"}, "workingDirectory": "./work"},
            metadata={"totalCost": 0, "progress": {"pending": 1, "total": 1}},
        )

        loaded = store.get_pipeline("demo")
        assert loaded == created
        assert loaded.version == "1.0"
        assert loaded.working_directory == "./work"
        assert loaded.progress.pending == 1
        assert loaded.progress.is_consistent

    def test_duplicate_pipeline(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        with pytest.raises(ConflictError, match="Pipeline already exists"):
            store.create_pipeline(PIPELINE_ID, title="Again")

    def test_get_missing_pipeline(self, store: NodeGraphStore) -> None:
        assert store.get_pipeline("nope") is None


class TestCreateNode:
    """create_node derives the initial status from the type."""

    def test_non_asset_starts_pending(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        node = store.create_node(PIPELINE_ID, make_spec("m", "merge-videos"))

        assert node.status is NodeStatus.PENDING
        assert node.metadata is None
        assert node.output is None
        assert node.pipeline_id == PIPELINE_ID

    def test_asset_starts_completed(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        node = store.create_node(PIPELINE_ID, video_asset_spec("a"))

        assert node.status is NodeStatus.COMPLETED
        assert node.asset is not None
        assert node.asset.source == "az://media/clips/a.mp4"
        assert node.metadata is None
        assert node.output is None

    def test_missing_pipeline(self, store: NodeGraphStore) -> None:
        with pytest.raises(NotFoundError, match="Pipeline not found: nope"):
            store.create_node("nope", make_spec("m", "merge-videos"))

    def test_duplicate_node(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_node(PIPELINE_ID, make_spec("m", "merge-videos"))

        with pytest.raises(ConflictError, match=f"Node already exists: {PIPELINE_ID}/m"):
            store.create_node(PIPELINE_ID, make_spec("m", "compose-video"))

    def test_same_id_in_other_pipeline(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_pipeline("other", title="Other")
        store.create_node(PIPELINE_ID, make_spec("m", "merge-videos"))

        node = store.create_node("other", make_spec("m", "merge-videos"))

        assert node.pipeline_id == "other"

    def test_touches_pipeline(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_node(PIPELINE_ID, make_spec("m", "merge-videos"))

        assert store.get_pipeline(PIPELINE_ID).updated_at > pipeline.updated_at

    def test_invalid_variant_config_writes_nothing(
        self, store: NodeGraphStore, pipeline: Pipeline
    ) -> None:
        with pytest.raises(PydanticValidationError):
            store.create_node(
                PIPELINE_ID,
                make_spec("t", "generate-talking-head", config={"avatarId": ["not", "a", "str"]}),
            )

        assert store.list_nodes(PIPELINE_ID) == []

    def test_list_nodes_in_creation_order(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        for node_id in ["z", "a", "m"]:
            store.create_node(PIPELINE_ID, make_spec(node_id, "generate-animation"))

        assert [n.id for n in store.list_nodes(PIPELINE_ID)] == ["z", "a", "m"]


class TestDeleteNode:
    """delete_node removes the node and every reference to it."""

    def test_removes_id_from_every_slot(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_node(PIPELINE_ID, video_asset_spec("a"))
        store.create_node(PIPELINE_ID, video_asset_spec("b"))
        store.create_node(
            PIPELINE_ID, make_spec("m", "merge-videos", inputs={"segments": ["a", "b", "a"]})
        )
        store.create_node(
            PIPELINE_ID, make_spec("x", "mix-audio", inputs={"video": ["a"], "audio": ["b"]})
        )

        store.delete_node(PIPELINE_ID, "a")

        nodes = {n.id: n for n in store.list_nodes(PIPELINE_ID)}
        assert "a" not in nodes
        assert nodes["m"].segments == ["b"]
        assert nodes["x"].inputs == {"video": [], "audio": ["b"]}

    def test_legacy_string_slot_removed_entirely(
        self, db: GraphDB, store: NodeGraphStore, pipeline: Pipeline
    ) -> None:
        store.create_node(PIPELINE_ID, video_asset_spec("a"))
        store.create_node(PIPELINE_ID, make_spec("x", "mix-audio"))
        _set_raw_inputs(db, "x", {"video": "a", "audio": "b"})

        store.delete_node(PIPELINE_ID, "a")

        assert _raw_inputs(db, "x") == {"audio": "b"}

    def test_delete_segment_source_leaves_merge_status_unchanged(
        self,
        store: NodeGraphStore,
        state: ExecutionStateManager,
        pipeline: Pipeline,
    ) -> None:
        store.create_node(PIPELINE_ID, video_asset_spec("a"))
        store.create_node(PIPELINE_ID, video_asset_spec("b"))
        store.create_node(
            PIPELINE_ID, make_spec("m", "merge-videos", inputs={"segments": ["a", "b"]})
        )
        state.mark_started(PIPELINE_ID, "m")
        seed_video_output(state, "m")

        store.delete_node(PIPELINE_ID, "a")

        merged = state.get_node(PIPELINE_ID, "m")
        assert merged.segments == ["b"]
        # Unlike reorder, losing an input does not invalidate the output
        assert merged.status is NodeStatus.COMPLETED
        assert merged.output is not None

    def test_missing_node_raises_and_rolls_back(
        self, store: NodeGraphStore, pipeline: Pipeline
    ) -> None:
        store.create_node(
            PIPELINE_ID, make_spec("m", "merge-videos", inputs={"segments": ["ghost", "b"]})
        )
        before = store.get_pipeline(PIPELINE_ID)

        with pytest.raises(NotFoundError, match=f"Node not found: {PIPELINE_ID}/ghost"):
            store.delete_node(PIPELINE_ID, "ghost")

        # Reference cleanup is undone with the failed delete
        assert store.list_nodes(PIPELINE_ID)[0].segments == ["ghost", "b"]
        assert store.get_pipeline(PIPELINE_ID).updated_at == before.updated_at

    def test_touches_pipeline(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_node(PIPELINE_ID, video_asset_spec("a"))
        before = store.get_pipeline(PIPELINE_ID)

        store.delete_node(PIPELINE_ID, "a")

        assert store.get_pipeline(PIPELINE_ID).updated_at > before.updated_at


class TestConnectNodes:
    """connect_nodes appends idempotently."""

    def test_appends_in_order(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        for node_id in ["a", "b", "c"]:
            store.create_node(PIPELINE_ID, video_asset_spec(node_id))
        store.create_node(PIPELINE_ID, make_spec("m", "merge-videos"))

        store.connect_nodes(PIPELINE_ID, "b", "m", "segments")
        store.connect_nodes(PIPELINE_ID, "a", "m", "segments")
        merged = store.connect_nodes(PIPELINE_ID, "c", "m", "segments")

        assert merged.segments == ["b", "a", "c"]

    def test_idempotent(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_node(PIPELINE_ID, video_asset_spec("a"))
        store.create_node(PIPELINE_ID, make_spec("m", "merge-videos"))
        store.connect_nodes(PIPELINE_ID, "a", "m", "segments")
        after_first = store.get_pipeline(PIPELINE_ID)

        merged = store.connect_nodes(PIPELINE_ID, "a", "m", "segments")

        assert merged.segments == ["a"]
        assert store.get_pipeline(PIPELINE_ID).updated_at == after_first.updated_at

    def test_legacy_string_becomes_list(
        self, db: GraphDB, store: NodeGraphStore, pipeline: Pipeline
    ) -> None:
        store.create_node(PIPELINE_ID, video_asset_spec("a"))
        store.create_node(PIPELINE_ID, video_asset_spec("b"))
        store.create_node(PIPELINE_ID, make_spec("m", "merge-videos"))
        _set_raw_inputs(db, "m", {"segments": "a"})

        store.connect_nodes(PIPELINE_ID, "b", "m", "segments")

        assert _raw_inputs(db, "m") == {"segments": ["a", "b"]}

    def test_does_not_reset_status(
        self, store: NodeGraphStore, state: ExecutionStateManager, pipeline: Pipeline
    ) -> None:
        store.create_node(PIPELINE_ID, video_asset_spec("a"))
        store.create_node(PIPELINE_ID, make_spec("m", "merge-videos"))
        seed_video_output(state, "m")

        merged = store.connect_nodes(PIPELINE_ID, "a", "m", "segments")

        assert merged.status is NodeStatus.COMPLETED

    def test_missing_source(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_node(PIPELINE_ID, make_spec("m", "merge-videos"))

        with pytest.raises(NotFoundError, match=f"Node not found: {PIPELINE_ID}/ghost"):
            store.connect_nodes(PIPELINE_ID, "ghost", "m", "segments")

    def test_missing_target(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_node(PIPELINE_ID, video_asset_spec("a"))

        with pytest.raises(NotFoundError, match=f"Node not found: {PIPELINE_ID}/ghost"):
            store.connect_nodes(PIPELINE_ID, "a", "ghost", "segments")


class TestReorderInputs:
    """reorder_inputs accepts exact permutations only."""

    @pytest.fixture
    def merge_node(self, store: NodeGraphStore, state: ExecutionStateManager, pipeline: Pipeline) -> None:
        for node_id in ["a", "b", "c"]:
            store.create_node(PIPELINE_ID, video_asset_spec(node_id))
        store.create_node(
            PIPELINE_ID, make_spec("m", "merge-videos", inputs={"segments": ["a", "b", "c"]})
        )
        seed_video_output(state, "m")

    def test_permutation_resets_completed_to_pending(
        self, store: NodeGraphStore, state: ExecutionStateManager, merge_node: None
    ) -> None:
        reordered = store.reorder_inputs(PIPELINE_ID, "m", "segments", ["c", "a", "b"])

        assert reordered.segments == ["c", "a", "b"]
        assert reordered.status is NodeStatus.PENDING
        persisted = state.get_node(PIPELINE_ID, "m")
        assert persisted.segments == ["c", "a", "b"]
        assert persisted.status is NodeStatus.PENDING

    def test_keeps_previous_output(
        self, store: NodeGraphStore, state: ExecutionStateManager, merge_node: None
    ) -> None:
        store.reorder_inputs(PIPELINE_ID, "m", "segments", ["b", "a", "c"])

        assert state.get_node(PIPELINE_ID, "m").output is not None

    @pytest.mark.parametrize(
        "new_order",
        [
            ["a", "b"],
            ["a", "b", "c", "d"],
            ["a", "b", "d"],
            ["a", "a", "b"],
            [],
        ],
    )
    def test_rejects_non_permutations(
        self, store: NodeGraphStore, state: ExecutionStateManager, merge_node: None, new_order: list[str]
    ) -> None:
        with pytest.raises(ValidationError, match="New order must contain the same node IDs"):
            store.reorder_inputs(PIPELINE_ID, "m", "segments", new_order)

        unchanged = state.get_node(PIPELINE_ID, "m")
        assert unchanged.segments == ["a", "b", "c"]
        assert unchanged.status is NodeStatus.COMPLETED

    def test_missing_slot_is_not_an_array(self, store: NodeGraphStore, merge_node: None) -> None:
        with pytest.raises(
            ValidationError,
            match=f'Input key "overlay" is not an array for node: {PIPELINE_ID}/m',
        ):
            store.reorder_inputs(PIPELINE_ID, "m", "overlay", [])

    def test_legacy_string_slot_is_not_an_array(
        self, db: GraphDB, store: NodeGraphStore, pipeline: Pipeline
    ) -> None:
        store.create_node(PIPELINE_ID, make_spec("x", "mix-audio"))
        _set_raw_inputs(db, "x", {"video": "a"})

        with pytest.raises(ValidationError, match="is not an array"):
            store.reorder_inputs(PIPELINE_ID, "x", "video", ["a"])

    def test_missing_node(self, store: NodeGraphStore, pipeline: Pipeline) -> None:
        with pytest.raises(NotFoundError, match=f"Node not found: {PIPELINE_ID}/m"):
            store.reorder_inputs(PIPELINE_ID, "m", "segments", ["a"])


class TestMigrateInputsToLists:
    """One-off migration of legacy single-string inputs."""

    def test_rewrites_strings(self, db: GraphDB, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_node(PIPELINE_ID, make_spec("x", "mix-audio"))
        store.create_node(
            PIPELINE_ID, make_spec("m", "merge-videos", inputs={"segments": ["a", "b"]})
        )
        _set_raw_inputs(db, "x", {"video": "a", "audio": ["b"]})

        migrated = store.migrate_inputs_to_lists()

        assert migrated == 1
        assert _raw_inputs(db, "x") == {"video": ["a"], "audio": ["b"]}
        assert _raw_inputs(db, "m") == {"segments": ["a", "b"]}

    def test_second_run_is_noop(self, db: GraphDB, store: NodeGraphStore, pipeline: Pipeline) -> None:
        store.create_node(PIPELINE_ID, make_spec("x", "mix-audio"))
        _set_raw_inputs(db, "x", {"video": "a"})
        store.migrate_inputs_to_lists()

        assert store.migrate_inputs_to_lists() == 0
