"""Media decomposition errors"""


class MediaError(Exception):
    """Base exception for media decomposition."""


class InvalidMediaError(MediaError):
    """Source cannot be decomposed (unprobeable or zero duration)."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid media {source}: {reason}")


class MediaProcessingError(MediaError):
    """An ffmpeg extraction step failed."""

    def __init__(self, step: str, returncode: int | None, stderr: str = ""):
        self.step = step
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"FFmpeg {step} failed (code={returncode}): {stderr[:500]}")
