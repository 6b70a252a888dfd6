"""ffmpeg wrapper for concatenating video files.

Uses the concat demuxer with stream copy, so every input must already
share codec, resolution and frame rate. No re-encoding is attempted.
"""

import re
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from reelgraph.contracts.errors import ExternalToolError, ValidationError
from reelgraph.core.logging import get_logger

logger = get_logger(__name__)

DURATION_PATTERN = re.compile(r"Duration: (\d{2}):(\d{2}):(\d{2}\.\d{2})")


@dataclass(frozen=True)
class MergeResult:
    """Measurements of a merged file."""

    duration: float  # seconds, 0.0 when ffmpeg did not report one
    size: int  # bytes


def parse_duration(output: str) -> float:
    """Read the first ``Duration: HH:MM:SS.ss`` line from ffmpeg output."""
    match = DURATION_PATTERN.search(output)
    if match is None:
        return 0.0
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def validate_input_videos(paths: Sequence[Path]) -> None:
    """Raise ValidationError for the first path that does not exist."""
    for path in paths:
        if not path.exists():
            raise ValidationError(f"Input video not found: {path}")


def _concat_list(paths: Sequence[Path]) -> str:
    # concat demuxer syntax: single quotes, embedded quotes as '\''
    lines = []
    for path in paths:
        escaped = str(path.resolve()).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    return "\n".join(lines) + "\n"


def concat_videos(
    input_paths: Sequence[Path],
    output_path: Path,
    *,
    work_dir: Path,
    ffmpeg_binary: str = "ffmpeg",
) -> MergeResult:
    """Concatenate videos in order into output_path.

    Args:
        input_paths: Local files, in playback order
        output_path: Destination file (must not exist)
        work_dir: Where the temporary concat list is written
        ffmpeg_binary: ffmpeg executable

    Raises:
        ValidationError: If fewer than two inputs are given
        ExternalToolError: If ffmpeg is missing or exits non-zero
    """
    if not input_paths:
        raise ValidationError("No input videos provided")
    if len(input_paths) == 1:
        raise ValidationError("At least 2 videos required for merging")

    work_dir.mkdir(parents=True, exist_ok=True)
    list_path = work_dir / f"concat-{uuid4()}.txt"
    list_path.write_text(_concat_list(input_paths), encoding="utf-8")

    cmd = [
        ffmpeg_binary,
        "-f",
        "concat",
        "-safe",
        "0",
        "-i",
        str(list_path),
        "-c",
        "copy",
        str(output_path),
    ]
    logger.info("ffmpeg merge", inputs=len(input_paths), output=str(output_path))

    try:
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise ExternalToolError(ffmpeg_binary, 127, str(e)) from e

        if result.returncode != 0:
            raise ExternalToolError(ffmpeg_binary, result.returncode, result.stderr)

        # ffmpeg reports to stderr
        duration = parse_duration(result.stderr)
        size = output_path.stat().st_size
    finally:
        try:
            list_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("concat list cleanup failed", path=str(list_path), error=str(e))

    logger.info("ffmpeg merge done", size=size, duration=round(duration, 2))
    return MergeResult(duration=duration, size=size)
