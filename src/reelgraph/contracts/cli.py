"""CLI-related type contracts."""

from typing import TypedDict


class ExecutionResult(TypedDict, total=False):
    """Result of executing a single node from the CLI.

    Returned by _execute_node() in cli.py.

    Required fields (always present in practice):
        pipeline_id: Pipeline the node belongs to.
        node_id: Node that was executed.
        status: Final node status ("completed", "failed").

    Optional fields:
        output_key: Remote key of the produced artifact, if any.
        duration_seconds: Wall-clock execution time in seconds.
    """

    pipeline_id: str
    node_id: str
    status: str
    output_key: str
    duration_seconds: float
