"""Routes a loaded node to the executor for its type."""

from reelgraph.contracts.errors import (
    ExecutorNotImplementedError,
    NotFoundError,
    UnknownNodeTypeError,
)
from reelgraph.contracts.nodes import (
    AssetNode,
    ComposeVideoNode,
    GenerateAnimationNode,
    GenerateTalkingHeadNode,
    GenerateVoiceoverNode,
    MergeVideosNode,
    MixAudioNode,
    Node,
    NodeOutput,
    RenderCodeNode,
)
from reelgraph.core.graphstore.execution import ExecutionStateManager
from reelgraph.core.logging import get_logger
from reelgraph.engine.executors import VideoMergeExecutor

logger = get_logger(__name__)


class ExecutorDispatcher:
    """Picks and runs the executor for a node."""

    def __init__(self, state: ExecutionStateManager, merge_executor: VideoMergeExecutor) -> None:
        self._state = state
        self._merge = merge_executor

    def dispatch(self, node: Node) -> NodeOutput | None:
        """Execute a node according to its type.

        Returns:
            The produced output, or None for nodes that need no work

        Raises:
            ExecutorNotImplementedError: Known type without an executor
            UnknownNodeTypeError: Anything outside the node type set
        """
        match node:
            case MergeVideosNode():
                return self._merge.execute(node.pipeline_id, node.id)
            case AssetNode():
                logger.info(
                    "asset nodes need no execution (already completed)",
                    pipeline_id=node.pipeline_id,
                    node_id=node.id,
                )
                return None
            case (
                GenerateTalkingHeadNode()
                | GenerateAnimationNode()
                | GenerateVoiceoverNode()
                | RenderCodeNode()
                | MixAudioNode()
                | ComposeVideoNode()
            ):
                raise ExecutorNotImplementedError(node.type)
            case _:
                raise UnknownNodeTypeError(getattr(node, "type", type(node).__name__))

    def execute(self, pipeline_id: str, node_id: str) -> NodeOutput | None:
        """Load a node and dispatch it.

        Raises:
            NotFoundError: If the node does not exist
        """
        node = self._state.get_node(pipeline_id, node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {pipeline_id}/{node_id}")
        logger.info(
            "dispatching node",
            pipeline_id=pipeline_id,
            node_id=node_id,
            type=node.type,
            status=node.status.value,
        )
        return self.dispatch(node)
