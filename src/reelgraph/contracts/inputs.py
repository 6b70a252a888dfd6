"""Declared input slots for each node type.

Slots are declared, never inferred from stored data. The table drives
connection validation in the editor, the reorder UI for ordered slots,
and validate_node().
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from reelgraph.contracts.enums import NodeType

UNBOUNDED = -1


@dataclass(frozen=True)
class InputConfig:
    """Declaration of a single input slot.

    max_connections: UNBOUNDED (-1), 0 (no inputs) or a positive limit
    ordered: position in the slot list carries meaning
    required: at least one connection is needed before execution
    """

    max_connections: int
    ordered: bool
    label: str
    required: bool


_SINGLE = 1

NODE_INPUT_CONFIG: Mapping[NodeType, Mapping[str, InputConfig]] = MappingProxyType(
    {
        NodeType.ASSET: {},
        NodeType.GENERATE_TALKING_HEAD: {
            "script": InputConfig(_SINGLE, ordered=False, label="Script", required=False),
        },
        NodeType.GENERATE_ANIMATION: {
            "prompt": InputConfig(_SINGLE, ordered=False, label="Prompt", required=False),
            "referenceImage": InputConfig(
                _SINGLE, ordered=False, label="Reference Image", required=False
            ),
        },
        NodeType.GENERATE_VOICEOVER: {
            "script": InputConfig(_SINGLE, ordered=False, label="Script", required=True),
        },
        NodeType.RENDER_CODE: {
            "config": InputConfig(_SINGLE, ordered=False, label="Config", required=True),
        },
        NodeType.MIX_AUDIO: {
            "video": InputConfig(_SINGLE, ordered=False, label="Video", required=True),
            "audio": InputConfig(_SINGLE, ordered=False, label="Audio", required=True),
        },
        NodeType.MERGE_VIDEOS: {
            # Order determines the video sequence
            "segments": InputConfig(
                UNBOUNDED, ordered=True, label="Video Segments", required=True
            ),
        },
        NodeType.COMPOSE_VIDEO: {
            "background": InputConfig(
                _SINGLE, ordered=False, label="Background", required=True
            ),
            "overlay": InputConfig(_SINGLE, ordered=False, label="Overlay", required=True),
        },
    }
)


def get_input_config(node_type: NodeType | str) -> Mapping[str, InputConfig]:
    """Get the slot declarations for a node type (empty for unknown types)."""
    try:
        return NODE_INPUT_CONFIG[NodeType(node_type)]
    except ValueError:
        return {}


def has_inputs(node_type: NodeType | str) -> bool:
    """Check if a node type declares any input slots."""
    return len(get_input_config(node_type)) > 0


def max_connections(node_type: NodeType | str, input_key: str) -> int:
    """Maximum connections for a slot. Undeclared slots default to 1."""
    slot = get_input_config(node_type).get(input_key)
    return slot.max_connections if slot is not None else _SINGLE


def is_unbounded_input(node_type: NodeType | str, input_key: str) -> bool:
    """Check if a slot accepts any number of connections."""
    return max_connections(node_type, input_key) == UNBOUNDED


def is_ordered_input(node_type: NodeType | str, input_key: str) -> bool:
    """Check if position within a slot carries meaning."""
    slot = get_input_config(node_type).get(input_key)
    return slot.ordered if slot is not None else False
