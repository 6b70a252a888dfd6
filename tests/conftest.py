# tests/conftest.py
"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from reelgraph.contracts import NodeOutput, NodeSpec, Pipeline
from reelgraph.core.graphstore import ExecutionStateManager, GraphDB, NodeGraphStore

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Fixtures
# =============================================================================

PIPELINE_ID = "pipe-1"


class TickingClock:
    """Deterministic clock: every call is one second after the previous."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    # CLI tests configure structlog against a captured stream
    yield
    structlog.reset_defaults()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def db() -> Iterator[GraphDB]:
    with GraphDB.in_memory() as database:
        yield database


@pytest.fixture
def store(db: GraphDB, clock: TickingClock) -> NodeGraphStore:
    return NodeGraphStore(db, clock=clock)


@pytest.fixture
def state(db: GraphDB, clock: TickingClock) -> ExecutionStateManager:
    return ExecutionStateManager(db, clock=clock)


@pytest.fixture
def pipeline(store: NodeGraphStore) -> Pipeline:
    return store.create_pipeline(PIPELINE_ID, title="Test pipeline")


def make_spec(node_id: str, node_type: str, **fields: Any) -> NodeSpec:
    """NodeSpec with sensible defaults for tests."""
    return NodeSpec(id=node_id, type=node_type, title=fields.pop("title", node_id), **fields)


def video_asset_spec(node_id: str) -> NodeSpec:
    return make_spec(
        node_id,
        "asset",
        asset={"source": f"az://media/clips/{node_id}.mp4", "type": "video"},
    )


def seed_video_output(
    state: ExecutionStateManager, node_id: str, *, key: str | None = None
) -> NodeOutput:
    """Give a node a completed video output stored under a remote key."""
    output = NodeOutput(type="video", key=key or f"clips/{node_id}.mp4", duration=5.0)
    state.mark_completed(PIPELINE_ID, node_id, output)
    return output
