"""File type detection by extension"""

from pathlib import Path

VIDEO_MIME_TYPES: dict[str, str] = {
    ".flv": "video/x-flv",
    ".mov": "video/quicktime",
    ".mpeg": "video/mpeg",
    ".mpegps": "video/mpegps",
    ".mpg": "video/mpg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".wmv": "video/wmv",
    ".3gpp": "video/3gpp",
}

IMAGE_MIME_TYPES: dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}

AUDIO_MIME_TYPES: dict[str, str] = {
    ".aac": "audio/aac",
    ".flac": "audio/flac",
    ".mp3": "audio/mp3",
    ".m4a": "audio/m4a",
    ".mpa": "audio/mpeg",
    ".mpga": "audio/mpga",
    ".opus": "audio/opus",
    ".pcm": "audio/pcm",
    ".wav": "audio/wav",
}

MIME_TYPES: dict[str, str] = {**VIDEO_MIME_TYPES, **IMAGE_MIME_TYPES, **AUDIO_MIME_TYPES}


def detect_mime_type(file_path: str | Path) -> str:
    """Detect MIME type from file extension. Raises ValueError for unsupported types."""
    ext = Path(file_path).suffix.lower()
    mime_type = MIME_TYPES.get(ext)
    if mime_type is None:
        raise ValueError(f"Unsupported file type: {ext or '<none>'}")
    return mime_type


def is_video_file(file_path: str | Path) -> bool:
    return Path(file_path).suffix.lower() in VIDEO_MIME_TYPES

