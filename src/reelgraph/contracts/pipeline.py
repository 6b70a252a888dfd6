"""Pipeline record and the documents stored on it."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class PipelineProgress:
    """Status counts across a pipeline's nodes.

    Maintained by the seeding/editor layer. The store never recomputes it
    on mutation, so it may lag behind the nodes table.
    """

    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    failed: int = 0
    total: int = 0

    @property
    def is_consistent(self) -> bool:
        """The four status counts sum to total."""
        return self.pending + self.in_progress + self.completed + self.failed == self.total

    def to_document(self) -> dict[str, int]:
        return {
            "completed": self.completed,
            "in_progress": self.in_progress,
            "pending": self.pending,
            "failed": self.failed,
            "total": self.total,
        }


@dataclass(frozen=True)
class Pipeline:
    """A named graph of nodes.

    config holds storage location hints (``{"storage": {"bucket", "prefix"}}``)
    and ``workingDirectory``; metadata holds ``totalCost``,
    ``estimatedTotalCost`` and the ``progress`` counters. Both allow extra
    keys.
    """

    id: str
    version: str
    title: str
    created_at: datetime
    updated_at: datetime
    config: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def progress(self) -> PipelineProgress:
        raw = self.metadata.get("progress") or {}
        return PipelineProgress(
            pending=int(raw.get("pending", 0)),
            in_progress=int(raw.get("in_progress", 0)),
            completed=int(raw.get("completed", 0)),
            failed=int(raw.get("failed", 0)),
            total=int(raw.get("total", 0)),
        )

    @property
    def working_directory(self) -> str | None:
        value = self.config.get("workingDirectory")
        return str(value) if value is not None else None
