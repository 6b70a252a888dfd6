"""Node executors.

Every executor follows the same protocol:

    load node -> check type -> mark_started -> resolve inputs ->
    download -> process -> upload -> mark_completed

Any failure after mark_started is recorded with mark_failed and then
re-raised. Failures before it (missing node, wrong type) leave state
untouched. Temporary outputs are removed whatever happens.
"""

from pathlib import Path
from uuid import uuid4

from reelgraph.contracts.enums import MediaKind, NodeType
from reelgraph.contracts.errors import NotFoundError, TypeMismatchError, ValidationError
from reelgraph.contracts.nodes import MergeVideosNode, Node, NodeOutput
from reelgraph.core.graphstore.execution import ExecutionStateManager
from reelgraph.core.logging import get_logger
from reelgraph.core.storage.object_store import RemoteObjectStore
from reelgraph.engine import ffmpeg

logger = get_logger(__name__)


class VideoMergeExecutor:
    """Concatenates a merge-videos node's ordered segments."""

    node_type = NodeType.MERGE_VIDEOS

    def __init__(
        self,
        state: ExecutionStateManager,
        objects: RemoteObjectStore,
        *,
        work_dir: Path,
        ffmpeg_binary: str = "ffmpeg",
    ) -> None:
        """Initialize executor.

        Args:
            state: State accessors for reading nodes and recording status
            objects: Remote store used for segment downloads and the upload
            work_dir: Scratch directory; merged files go in work_dir/outputs
            ffmpeg_binary: ffmpeg executable
        """
        self._state = state
        self._objects = objects
        self._work_dir = work_dir
        self._ffmpeg_binary = ffmpeg_binary

    def execute(self, pipeline_id: str, node_id: str) -> NodeOutput:
        """Run the merge for one node.

        Returns:
            The output recorded on the node

        Raises:
            NotFoundError: Node does not exist (state untouched)
            TypeMismatchError: Node is not merge-videos (state untouched)
            ValidationError, TransferError, ExternalToolError: Recorded on
                the node as failed, then re-raised
        """
        log = logger.bind(pipeline_id=pipeline_id, node_id=node_id)

        node = self._state.get_node(pipeline_id, node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {pipeline_id}/{node_id}")
        if not isinstance(node, MergeVideosNode):
            raise TypeMismatchError(node_id, self.node_type.value, node.type)

        self._state.mark_started(pipeline_id, node_id)
        log.info("merge started")

        temp_output: Path | None = None
        try:
            segments = self._load_segments(node)
            log.info("segments loaded", segments=[s.id for s in segments])

            local_paths = self._download_segments(node, segments)
            ffmpeg.validate_input_videos(local_paths)

            outputs_dir = self._work_dir / "outputs"
            outputs_dir.mkdir(parents=True, exist_ok=True)
            temp_output = outputs_dir / f"{node_id}-{uuid4()}.mp4"

            merged = ffmpeg.concat_videos(
                local_paths,
                temp_output,
                work_dir=self._work_dir,
                ffmpeg_binary=self._ffmpeg_binary,
            )

            uploaded = self._objects.upload_asset(temp_output, pipeline_id, node_id)
            output = NodeOutput(
                type=MediaKind.VIDEO,
                key=uploaded.key,
                duration=merged.duration,
                size=merged.size,
            )
            self._state.mark_completed(pipeline_id, node_id, output)
            log.info(
                "merge completed",
                key=uploaded.key,
                url=uploaded.url,
                duration=merged.duration,
                size=merged.size,
            )
            return output
        except Exception as e:
            log.error("merge failed", error=str(e))
            self._state.mark_failed(pipeline_id, node_id, str(e))
            raise
        finally:
            if temp_output is not None and temp_output.exists():
                try:
                    temp_output.unlink()
                    log.debug("temp output removed", path=str(temp_output))
                except OSError as e:
                    log.warning("temp output cleanup failed", path=str(temp_output), error=str(e))

    def _load_segments(self, node: MergeVideosNode) -> list[Node]:
        segment_ids = node.segments
        if not segment_ids:
            raise ValidationError("No input segments specified")
        if len(segment_ids) == 1:
            raise ValidationError("At least 2 segments required for merging")

        segments = self._state.get_nodes(node.pipeline_id, segment_ids)
        if len(segments) != len(segment_ids):
            found = {s.id for s in segments}
            missing = [sid for sid in segment_ids if sid not in found]
            raise ValidationError(f"Input segments not found: {', '.join(missing)}")
        return segments

    def _download_segments(self, node: MergeVideosNode, segments: list[Node]) -> list[Path]:
        # Sequential, in declared order
        local_paths: list[Path] = []
        for index, segment in enumerate(segments, start=1):
            output = segment.output
            if output is None:
                raise ValidationError(f"Input node has no output: {segment.id}")
            if output.key:
                url = self._objects.object_url(output.key)
            elif output.local_file:
                url = output.local_file
            else:
                raise ValidationError(
                    f"Input node has no remote key or local file: {segment.id}"
                )

            logger.info(
                "downloading segment",
                node_id=node.id,
                segment=segment.id,
                position=f"{index}/{len(segments)}",
            )
            local_paths.append(self._objects.download_asset(node.id, url))
        return local_paths
