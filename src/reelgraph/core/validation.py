"""Per-type completeness checks for nodes.

Advisory only: the store accepts incomplete nodes so the editor can
build a graph up step by step. Callers run validate_node() before
offering execution.
"""

from reelgraph.contracts.enums import NodeType
from reelgraph.contracts.inputs import get_input_config
from reelgraph.contracts.nodes import AssetNode, Node

_DISPLAY_NAMES: dict[NodeType, str] = {
    NodeType.ASSET: "Asset",
    NodeType.GENERATE_TALKING_HEAD: "Talking head",
    NodeType.GENERATE_ANIMATION: "Animation",
    NodeType.GENERATE_VOICEOVER: "Voiceover",
    NodeType.RENDER_CODE: "Render code",
    NodeType.MIX_AUDIO: "Mix audio",
    NodeType.MERGE_VIDEOS: "Merge videos",
    NodeType.COMPOSE_VIDEO: "Compose video",
}


def validate_node(node: Node) -> list[str]:
    """Return human-readable problems with a node (empty when complete).

    Checks:
    - asset nodes carry an asset config
    - every other node names a provider
    - every required input slot has at least one connection
    """
    errors: list[str] = []
    name = _DISPLAY_NAMES[node.node_type]

    if isinstance(node, AssetNode):
        if node.asset is None:
            errors.append("Asset node missing asset configuration")
        return errors

    if not node.provider:
        errors.append(f"{name} node missing provider")

    for input_key, slot in get_input_config(node.node_type).items():
        if slot.required and not node.inputs.get(input_key):
            errors.append(f"{name} node missing {input_key} input")

    return errors
