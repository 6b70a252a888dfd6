"""Error taxonomy shared by the store, the engine and the client model.

Every error the core raises on purpose derives from ReelgraphError so
callers (CLI, editor layer) can separate "the pipeline said no" from
programming bugs.
"""


class ReelgraphError(Exception):
    """Base class for all expected reelgraph failures."""


class NotFoundError(ReelgraphError):
    """A pipeline, node, or referenced input does not exist."""


class ConflictError(ReelgraphError):
    """A node with the same id already exists in the pipeline."""


class ValidationError(ReelgraphError):
    """Input rejected: bad reorder, too few segments, unparseable URL, etc."""


class TypeMismatchError(ReelgraphError):
    """An executor was invoked against a node of the wrong type."""

    def __init__(self, node_id: str, expected: str, actual: str) -> None:
        self.node_id = node_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Node {node_id} is not a {expected} node: {actual}"
        )


class ExternalToolError(ReelgraphError):
    """An external media tool exited non-zero."""

    def __init__(self, tool: str, returncode: int, stderr: str) -> None:
        """Initialize with process details.

        Args:
            tool: Name of the binary that failed
            returncode: Process exit code
            stderr: Captured standard error (only the tail is kept)
        """
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr[-2000:]
        tail = self.stderr.strip().splitlines()[-1:] or [""]
        super().__init__(f"{tool} failed with exit code {returncode}: {tail[0]}")


class TransferError(ReelgraphError):
    """Fetching from or uploading to the remote object service failed."""


class ExecutorNotImplementedError(ReelgraphError):
    """The node type is known but has no executor yet."""

    def __init__(self, node_type: str) -> None:
        self.node_type = node_type
        super().__init__(f"Executor not yet implemented for node type: {node_type}")


class UnknownNodeTypeError(ReelgraphError):
    """The node type is not part of the closed type set."""

    def __init__(self, node_type: object) -> None:
        self.node_type = node_type
        super().__init__(f"Unknown node type: {node_type}")


class MutationRejectedError(ReelgraphError):
    """The authoritative store rejected an optimistic client mutation.

    The client mirror has already been restored to its pre-command
    snapshot when this is raised. ``cause`` is the store error.
    """

    def __init__(self, command: str, cause: Exception) -> None:
        self.command = command
        self.cause = cause
        super().__init__(f"Failed to {command}: {cause}")
