"""Execution engine: executors, dispatch and the ffmpeg wrapper."""

from reelgraph.engine.dispatcher import ExecutorDispatcher
from reelgraph.engine.executors import VideoMergeExecutor
from reelgraph.engine.ffmpeg import MergeResult, concat_videos

__all__ = [
    "ExecutorDispatcher",
    "MergeResult",
    "VideoMergeExecutor",
    "concat_videos",
]
