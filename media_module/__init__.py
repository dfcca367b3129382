"""Media decomposition: probe, overlapping audio segments, tag sample, screenshots"""

from .config import DecomposeConfig
from .decomposer import MediaDecomposer
from .exceptions import InvalidMediaError, MediaError, MediaProcessingError
from .segments import (
    DecompositionResult,
    MediaInfo,
    MediaSegment,
    Screenshot,
    plan_screenshot_timestamps,
    plan_segments,
)

__all__ = [
    "DecomposeConfig",
    "DecompositionResult",
    "InvalidMediaError",
    "MediaDecomposer",
    "MediaError",
    "MediaInfo",
    "MediaProcessingError",
    "MediaSegment",
    "Screenshot",
    "plan_screenshot_timestamps",
    "plan_segments",
]
