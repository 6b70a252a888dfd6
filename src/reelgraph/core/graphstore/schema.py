"""SQLAlchemy table definitions for the graph store.

Uses SQLAlchemy Core (not ORM) for explicit control over queries
and compatibility with multiple database backends.

Structure columns (title, type, inputs_json, config_json, asset_json)
are written by NodeGraphStore; state columns (status, metadata_json,
output_json) by ExecutionStateManager. No statement writes both
families, except reorder resetting status.
"""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
)

# Shared metadata for all tables
metadata = MetaData()

# none_as_null: Python None is stored as SQL NULL, not JSON 'null'
_Json = JSON(none_as_null=True)

# === Pipelines ===

pipelines_table = Table(
    "pipelines",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("version", String(32), nullable=False),
    Column("title", String(256), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("config_json", _Json, nullable=False),
    Column("metadata_json", _Json, nullable=False),
)

# === Nodes ===

nodes_table = Table(
    "nodes",
    metadata,
    Column("pipeline_id", String(64), ForeignKey("pipelines.id"), primary_key=True),
    Column("id", String(64), primary_key=True),
    Column("title", String(256), nullable=False),
    Column("type", String(32), nullable=False),
    Column("inputs_json", _Json, nullable=False),
    Column("config_json", _Json, nullable=False),
    Column("asset_json", _Json),
    Column("status", String(32), nullable=False),
    Column("metadata_json", _Json),
    Column("output_json", _Json),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

Index("ix_nodes_pipeline_status", nodes_table.c.pipeline_id, nodes_table.c.status)
