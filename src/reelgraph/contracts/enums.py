"""All status codes and kinds used across subsystem boundaries.

The node type set is CLOSED. The repository layer raises
UnknownNodeTypeError for a stored type outside it rather than guessing.
"""

from enum import Enum


class NodeStatus(str, Enum):
    """Execution status of a node.

    Uses (str, Enum) because this IS stored in the database (nodes.status).

    Lifecycle: PENDING -> IN_PROGRESS -> {COMPLETED, FAILED}.
    Only executors move a node out of PENDING.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class NodeType(str, Enum):
    """Type of node in the pipeline graph.

    Uses (str, Enum) for database serialization to nodes.type.
    """

    ASSET = "asset"
    GENERATE_TALKING_HEAD = "generate-talking-head"
    GENERATE_ANIMATION = "generate-animation"
    GENERATE_VOICEOVER = "generate-voiceover"
    RENDER_CODE = "render-code"
    MIX_AUDIO = "mix-audio"
    MERGE_VIDEOS = "merge-videos"
    COMPOSE_VIDEO = "compose-video"


# Older pipelines were seeded before the talking-head rename.
LEGACY_NODE_TYPE_ALIASES: dict[str, NodeType] = {
    "talking-head": NodeType.GENERATE_TALKING_HEAD,
}


class MediaKind(str, Enum):
    """Kind of media an asset or output carries.

    Uses (str, Enum) for JSON serialization in asset/output documents.
    """

    TEXT = "text"
    JSON = "json"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class MutationState(Enum):
    """State of a client-side optimistic mutation.

    Never persisted, so plain Enum rather than (str, Enum).

    APPLIED_LOCALLY -> CONFIRMED | ROLLED_BACK
    """

    APPLIED_LOCALLY = "applied_locally"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"
