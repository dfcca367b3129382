"""Media probe results and segment/screenshot planning"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class MediaInfo:
    """Probed properties of a source file."""

    duration: float
    size: int = 0
    is_video: bool = False
    width: int = 0
    height: int = 0
    video_codec: str | None = None
    audio_codec: str | None = None
    bitrate: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "size": self.size,
            "is_video": self.is_video,
            "width": self.width,
            "height": self.height,
            "video_codec": self.video_codec,
            "audio_codec": self.audio_codec,
            "bitrate": self.bitrate,
        }


@dataclass
class MediaSegment:
    """Audio segment with overlapping extraction window and true bookkeeping boundaries.

    ``start``/``end`` are what gets extracted (including overlap with the next
    segment); ``boundary_start``/``boundary_end`` tile the timeline without
    overlap.
    """

    index: int
    start: float
    end: float
    boundary_start: float
    boundary_end: float
    path: str = ""
    duration: float = 0.0

    def __post_init__(self):
        if self.start < 0:
            raise ValueError("start cannot be negative")

        if self.end <= self.start:
            raise ValueError("end must be greater than start")

        if not (self.start <= self.boundary_start < self.boundary_end <= self.end):
            raise ValueError("boundaries must lie within the extraction window")

        if self.duration != (self.end - self.start):
            self.duration = self.end - self.start

    def format_range(self) -> str:
        """Format extraction window as MM:SS-MM:SS."""
        return f"{_mmss(self.start)}-{_mmss(self.end)}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "start": self.start,
            "end": self.end,
            "boundary_start": self.boundary_start,
            "boundary_end": self.boundary_end,
            "duration": self.duration,
            "path": str(self.path),
        }


@dataclass
class Screenshot:
    """Single frame grabbed from a visual source."""

    index: int
    timestamp: float
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "timestamp": self.timestamp, "path": str(self.path)}


@dataclass
class DecompositionResult:
    """Everything the pipeline needs from a source file."""

    media_info: MediaInfo
    segments: list[MediaSegment]
    tag_sample: str
    working_dir: str
    screenshots: list[Screenshot] = field(default_factory=list)

    @property
    def scratch_files(self) -> list[Path]:
        files = [Path(s.path) for s in self.segments]
        files.extend(Path(s.path) for s in self.screenshots)
        files.append(Path(self.tag_sample))
        return files

    def to_dict(self) -> dict[str, Any]:
        return {
            "media_info": self.media_info.to_dict(),
            "segments": [s.to_dict() for s in self.segments],
            "screenshots": [s.to_dict() for s in self.screenshots],
            "tag_sample": str(self.tag_sample),
            "working_dir": str(self.working_dir),
        }


def _mmss(seconds: float) -> str:
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"


def plan_segments(duration: float, segment_minutes: float, overlap_minutes: float) -> list[MediaSegment]:
    """Split ``[0, duration)`` into overlapping segments.

    Segment ``i`` starts at ``i * stride`` where ``stride = segment - overlap``
    and is at most ``segment`` long. The count is the smallest one whose last
    segment reaches ``duration``, so every adjacent pair overlaps by exactly
    ``overlap`` and no trailing segment is fully contained in its predecessor.
    """
    if duration <= 0:
        raise ValueError("duration must be positive")

    segment_sec = segment_minutes * 60
    overlap_sec = overlap_minutes * 60
    stride_sec = segment_sec - overlap_sec
    if stride_sec <= 0:
        raise ValueError("segment length must be greater than overlap")

    count = max(1, math.ceil((duration - overlap_sec) / stride_sec))

    segments = []
    for index in range(count):
        start = index * stride_sec
        end = min(start + segment_sec, duration)
        boundary_end = duration if index == count - 1 else min(start + stride_sec, duration)
        segments.append(
            MediaSegment(
                index=index,
                start=start,
                end=end,
                boundary_start=start,
                boundary_end=boundary_end,
            )
        )

    return segments


def plan_screenshot_timestamps(duration: float, count: int) -> list[float]:
    """Evenly spaced timestamps strictly inside ``(0.01 * duration, 0.99 * duration)``.

    The window is divided into ``count + 1`` equal gaps and the interior points
    are returned, so a single screenshot lands at the midpoint.
    """
    if count <= 0 or duration <= 0:
        return []

    window_start = duration * 0.01
    window_end = duration * 0.99
    gap = (window_end - window_start) / (count + 1)
    return [window_start + gap * (i + 1) for i in range(count)]
