"""Node contracts: a tagged union keyed by ``type``.

Each variant carries its own config shape. Structure fields (type,
inputs, config, asset, title) belong to the editor; state fields
(status, metadata, output) belong to executors. Both live on one
record, which is why every model here is frozen - writers build a new
value for their own field family and the store merges it.

Uses Pydantic because nodes cross a trust boundary twice: editor input
going in, and JSON documents coming back out of the store.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from reelgraph.contracts.enums import (
    LEGACY_NODE_TYPE_ALIASES,
    MediaKind,
    NodeStatus,
    NodeType,
)


def normalize_inputs(value: Any) -> dict[str, list[str]]:
    """Coerce an inputs document to slot -> list of node ids.

    Legacy documents stored single-valued slots as a bare string.
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"inputs must be a mapping, got {type(value).__name__}")

    normalized: dict[str, list[str]] = {}
    for key, refs in value.items():
        if isinstance(refs, str):
            normalized[key] = [refs]
        elif isinstance(refs, list):
            normalized[key] = [str(ref) for ref in refs]
        else:
            raise ValueError(
                f"input '{key}' must be a node id or list of node ids, "
                f"got {type(refs).__name__}"
            )
    return normalized


# === Documents embedded in a node ===


class AssetConfig(BaseModel):
    """Reference to a pre-existing external file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str
    type: MediaKind


class NodeOutput(BaseModel):
    """Descriptor of the artifact a node produced.

    At least one of local_file / key must be set for any node that is
    consumed as a video or audio input. ``s3Key`` is accepted on read for
    documents written before the key was renamed.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    type: MediaKind
    local_file: str | None = Field(default=None, alias="localFile")
    key: str | None = Field(
        default=None, validation_alias=AliasChoices("key", "s3Key")
    )
    duration: float | None = None
    size: int | None = None

    @property
    def has_location(self) -> bool:
        """Whether the output points at a remote key or a local file."""
        return bool(self.key) or bool(self.local_file)

    def to_document(self) -> dict[str, Any]:
        """Serialize for storage in nodes.output_json."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class NodeMetadata(BaseModel):
    """Execution bookkeeping written by executors."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    started_at: datetime | None = Field(default=None, alias="startedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    job_id: str | None = Field(default=None, alias="jobId")
    cost: float | None = None
    retries: int | None = None
    error: str | None = None


# === Per-variant config ===


class NodeConfig(BaseModel):
    """Config shared by every node type. Providers add their own keys."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    provider: str | None = None


class TalkingHeadConfig(NodeConfig):
    """AI presenter video (e.g. heygen)."""

    avatar_id: str | None = Field(default=None, alias="avatarId")


class AnimationConfig(NodeConfig):
    """Generated video clip from a prompt."""

    prompt: str | None = None


class VoiceoverConfig(NodeConfig):
    """Text-to-speech."""

    voice_id: str | None = Field(default=None, alias="voiceId")


class RenderCodeConfig(NodeConfig):
    """Code screen animation rendered from a composition."""

    composition_id: str | None = Field(default=None, alias="compositionId")


# === Node variants ===


class _NodeBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    pipeline_id: str
    title: str = ""
    inputs: dict[str, list[str]] = Field(default_factory=dict)
    config: NodeConfig = Field(default_factory=NodeConfig)
    status: NodeStatus = NodeStatus.PENDING
    metadata: NodeMetadata | None = None
    output: NodeOutput | None = None

    @field_validator("inputs", mode="before")
    @classmethod
    def _normalize_inputs(cls, v: Any) -> dict[str, list[str]]:
        return normalize_inputs(v)

    @property
    def node_type(self) -> NodeType:
        return NodeType(self.type)  # type: ignore[attr-defined]

    @property
    def provider(self) -> str | None:
        return self.config.provider

    def input_ids(self, input_key: str) -> list[str]:
        """Node ids connected to a slot, in stored order."""
        return list(self.inputs.get(input_key, []))

    def referenced_ids(self) -> set[str]:
        """Every node id referenced from any slot."""
        return {ref for refs in self.inputs.values() for ref in refs}


class AssetNode(_NodeBase):
    """Leaf node wrapping an existing file. Created already completed."""

    type: Literal["asset"] = "asset"
    asset: AssetConfig | None = None


class GenerateTalkingHeadNode(_NodeBase):
    type: Literal["generate-talking-head"] = "generate-talking-head"
    config: TalkingHeadConfig = Field(default_factory=TalkingHeadConfig)


class GenerateAnimationNode(_NodeBase):
    type: Literal["generate-animation"] = "generate-animation"
    config: AnimationConfig = Field(default_factory=AnimationConfig)


class GenerateVoiceoverNode(_NodeBase):
    type: Literal["generate-voiceover"] = "generate-voiceover"
    config: VoiceoverConfig = Field(default_factory=VoiceoverConfig)


class RenderCodeNode(_NodeBase):
    type: Literal["render-code"] = "render-code"
    config: RenderCodeConfig = Field(default_factory=RenderCodeConfig)


class MixAudioNode(_NodeBase):
    type: Literal["mix-audio"] = "mix-audio"


class MergeVideosNode(_NodeBase):
    """Concatenates its ordered ``segments`` input."""

    type: Literal["merge-videos"] = "merge-videos"

    @property
    def segments(self) -> list[str]:
        return self.input_ids("segments")


class ComposeVideoNode(_NodeBase):
    type: Literal["compose-video"] = "compose-video"


Node = Annotated[
    Union[
        AssetNode,
        GenerateTalkingHeadNode,
        GenerateAnimationNode,
        GenerateVoiceoverNode,
        RenderCodeNode,
        MixAudioNode,
        MergeVideosNode,
        ComposeVideoNode,
    ],
    Field(discriminator="type"),
]

_NODE_ADAPTER: TypeAdapter[Node] = TypeAdapter(Node)


def parse_node(data: Mapping[str, Any]) -> Node:
    """Build the matching Node variant from a plain mapping.

    Raises:
        pydantic.ValidationError: If the type is outside the closed set
            or a field does not fit the variant
    """
    document = dict(data)
    node_type = document.get("type")
    if isinstance(node_type, str) and node_type in LEGACY_NODE_TYPE_ALIASES:
        document["type"] = LEGACY_NODE_TYPE_ALIASES[node_type].value
    elif isinstance(node_type, NodeType):
        document["type"] = node_type.value
    return _NODE_ADAPTER.validate_python(document)


# === Editor input ===


class NodeSpec(BaseModel):
    """Structure fields for creating a node.

    State fields are not accepted here: the initial status is derived
    from the type.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    type: NodeType
    title: str = ""
    inputs: dict[str, list[str]] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)
    asset: AssetConfig | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _resolve_legacy_type(cls, v: Any) -> Any:
        if isinstance(v, str) and v in LEGACY_NODE_TYPE_ALIASES:
            return LEGACY_NODE_TYPE_ALIASES[v]
        return v

    @field_validator("inputs", mode="before")
    @classmethod
    def _normalize_inputs(cls, v: Any) -> dict[str, list[str]]:
        return normalize_inputs(v)

    @model_validator(mode="after")
    def _asset_only_on_asset_nodes(self) -> "NodeSpec":
        if self.asset is not None and self.type is not NodeType.ASSET:
            raise ValueError(f"asset config is only valid on asset nodes, not {self.type.value}")
        return self

    @property
    def initial_status(self) -> NodeStatus:
        """Asset nodes are pre-satisfied leaves; everything else waits."""
        if self.type is NodeType.ASSET:
            return NodeStatus.COMPLETED
        return NodeStatus.PENDING
