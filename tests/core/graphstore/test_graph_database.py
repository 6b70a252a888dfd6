"""Tests for GraphDB connection management."""

from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from reelgraph.core.graphstore import GraphDB
from reelgraph.core.graphstore.schema import nodes_table


class TestGraphDB:
    """Engine setup and transaction handling."""

    def test_in_memory_creates_tables(self) -> None:
        with GraphDB.in_memory() as db:
            tables = set(inspect(db.engine).get_table_names())

        assert {"pipelines", "nodes"} <= tables

    def test_file_database_uses_wal(self, tmp_path: Path) -> None:
        db = GraphDB(f"sqlite:///{tmp_path / 'graph.db'}")
        try:
            with db.connection() as conn:
                mode = conn.execute(text("PRAGMA journal_mode")).scalar()
        finally:
            db.close()

        assert mode == "wal"

    def test_from_url_without_tables(self, tmp_path: Path) -> None:
        db = GraphDB.from_url(f"sqlite:///{tmp_path / 'empty.db'}", create_tables=False)
        try:
            assert inspect(db.engine).get_table_names() == []
        finally:
            db.close()

    def test_foreign_keys_enforced(self) -> None:
        """A node row cannot point at a missing pipeline."""
        with GraphDB.in_memory() as db:
            with pytest.raises(IntegrityError):
                with db.connection() as conn:
                    conn.execute(
                        nodes_table.insert().values(
                            pipeline_id="nope",
                            id="n",
                            title="",
                            type="asset",
                            inputs_json={},
                            config_json={},
                            status="completed",
                            created_at=datetime(2024, 1, 1, tzinfo=UTC),
                        )
                    )

    def test_engine_unavailable_after_close(self) -> None:
        db = GraphDB.in_memory()
        db.close()

        with pytest.raises(RuntimeError, match="Database not initialized"):
            _ = db.engine
