from .formatting import (
    format_duration,
    sanitize_filename,
)
from .media_types import (
    detect_mime_type,
    is_video_file,
)

__all__ = [
    "detect_mime_type",
    "format_duration",
    "is_video_file",
    "sanitize_filename",
]
