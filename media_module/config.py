"""Decomposition config for MediaDecomposer"""

from dataclasses import dataclass

from config.settings import ProcessingSettings


@dataclass
class DecomposeConfig:
    """Per-job decomposition parameters"""

    segment_minutes: float = 10
    overlap_minutes: float = 1
    screenshot_count: int = 4
    tag_minutes: float = 20
    audio_codec: str = "libmp3lame"
    audio_bitrate: str = "192k"
    audio_sample_rate: int = 44100
    screenshot_size: str = "1280x720"
    concurrency: int = 4

    def __post_init__(self):
        if self.segment_minutes <= 0:
            raise ValueError("segment_minutes must be positive")
        if self.overlap_minutes < 0:
            raise ValueError("overlap_minutes cannot be negative")
        if self.overlap_minutes >= self.segment_minutes:
            raise ValueError("overlap_minutes must be smaller than segment_minutes")
        if self.screenshot_count < 0:
            raise ValueError("screenshot_count cannot be negative")

    @property
    def stride_minutes(self) -> float:
        return self.segment_minutes - self.overlap_minutes

    @classmethod
    def from_settings(
        cls,
        settings: ProcessingSettings,
        segment_minutes: float,
        screenshot_count: int,
        overlap_minutes: float | None = None,
    ) -> "DecomposeConfig":
        """Build config from processing settings plus per-request values."""
        if overlap_minutes is None:
            overlap_minutes = settings.effective_overlap(segment_minutes)
        return cls(
            segment_minutes=segment_minutes,
            overlap_minutes=overlap_minutes,
            screenshot_count=screenshot_count,
            tag_minutes=settings.tag_minutes,
            audio_codec=settings.audio_codec,
            audio_bitrate=settings.audio_bitrate,
            audio_sample_rate=settings.audio_sample_rate,
            screenshot_size=settings.screenshot_size,
            concurrency=settings.ffmpeg_concurrency,
        )
