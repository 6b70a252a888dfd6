"""Shared contracts for cross-boundary data types.

Enums, node models, pipeline records and errors that cross subsystem
boundaries live here.

Import pattern:
    from reelgraph.contracts import NodeStatus, MergeVideosNode, NotFoundError
"""

from reelgraph.contracts.enums import (
    LEGACY_NODE_TYPE_ALIASES,
    MediaKind,
    MutationState,
    NodeStatus,
    NodeType,
)
from reelgraph.contracts.errors import (
    ConflictError,
    ExecutorNotImplementedError,
    ExternalToolError,
    MutationRejectedError,
    NotFoundError,
    ReelgraphError,
    TransferError,
    TypeMismatchError,
    UnknownNodeTypeError,
    ValidationError,
)
from reelgraph.contracts.inputs import (
    NODE_INPUT_CONFIG,
    UNBOUNDED,
    InputConfig,
    get_input_config,
    has_inputs,
    is_ordered_input,
    is_unbounded_input,
    max_connections,
)
from reelgraph.contracts.nodes import (
    AssetConfig,
    AssetNode,
    ComposeVideoNode,
    GenerateAnimationNode,
    GenerateTalkingHeadNode,
    GenerateVoiceoverNode,
    MergeVideosNode,
    MixAudioNode,
    Node,
    NodeConfig,
    NodeMetadata,
    NodeOutput,
    NodeSpec,
    RenderCodeNode,
    normalize_inputs,
    parse_node,
)
from reelgraph.contracts.pipeline import Pipeline, PipelineProgress
from reelgraph.contracts.cli import ExecutionResult

__all__ = [
    # enums
    "LEGACY_NODE_TYPE_ALIASES",
    "MediaKind",
    "MutationState",
    "NodeStatus",
    "NodeType",
    # errors
    "ConflictError",
    "ExecutorNotImplementedError",
    "ExternalToolError",
    "MutationRejectedError",
    "NotFoundError",
    "ReelgraphError",
    "TransferError",
    "TypeMismatchError",
    "UnknownNodeTypeError",
    "ValidationError",
    # inputs
    "NODE_INPUT_CONFIG",
    "UNBOUNDED",
    "InputConfig",
    "get_input_config",
    "has_inputs",
    "is_ordered_input",
    "is_unbounded_input",
    "max_connections",
    # nodes
    "AssetConfig",
    "AssetNode",
    "ComposeVideoNode",
    "GenerateAnimationNode",
    "GenerateTalkingHeadNode",
    "GenerateVoiceoverNode",
    "MergeVideosNode",
    "MixAudioNode",
    "Node",
    "NodeConfig",
    "NodeMetadata",
    "NodeOutput",
    "NodeSpec",
    "RenderCodeNode",
    "normalize_inputs",
    "parse_node",
    # pipeline
    "Pipeline",
    "PipelineProgress",
    # cli
    "ExecutionResult",
]
