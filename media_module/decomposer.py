"""Probe and split a source into overlapping audio segments, a tag sample and screenshots"""

import asyncio
import json
from pathlib import Path
from typing import Any

from logger import format_details, get_logger
from utils.formatting import sanitize_filename

from .config import DecomposeConfig
from .exceptions import InvalidMediaError, MediaProcessingError
from .segments import (
    DecompositionResult,
    MediaInfo,
    MediaSegment,
    Screenshot,
    plan_screenshot_timestamps,
    plan_segments,
)

logger = get_logger("media")


class MediaDecomposer:
    """Splits a source into overlapping mp3 segments, a tag sample and screenshots."""

    def __init__(self, config: DecomposeConfig):
        self.config = config
        self._semaphore = asyncio.Semaphore(config.concurrency)

    async def get_media_info(self, source_path: str) -> MediaInfo:
        """Probe source with ffprobe. Raises InvalidMediaError on failure or zero duration."""
        cmd = [
            "ffprobe",
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            str(source_path),
        ]

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise InvalidMediaError(str(source_path), f"ffprobe could not be started: {e}") from e

        if process.returncode != 0:
            raise InvalidMediaError(str(source_path), f"ffprobe error: {stderr.decode(errors='replace')[:500]}")

        try:
            info = json.loads(stdout.decode())
            media_format = info.get("format", {})
            duration = float(media_format.get("duration") or 0)
        except (ValueError, TypeError) as e:
            raise InvalidMediaError(str(source_path), f"unreadable ffprobe output: {e}") from e

        if duration <= 0:
            raise InvalidMediaError(str(source_path), "duration is zero")

        streams = info.get("streams", [])
        video_stream = next((s for s in streams if self._is_real_video_stream(s)), None)
        audio_stream = next((s for s in streams if s.get("codec_type") == "audio"), None)

        return MediaInfo(
            duration=duration,
            size=int(media_format.get("size") or 0),
            is_video=video_stream is not None,
            width=int(video_stream.get("width", 0)) if video_stream else 0,
            height=int(video_stream.get("height", 0)) if video_stream else 0,
            video_codec=video_stream.get("codec_name") if video_stream else None,
            audio_codec=audio_stream.get("codec_name") if audio_stream else None,
            bitrate=int(media_format.get("bit_rate") or 0),
        )

    @staticmethod
    def _is_real_video_stream(stream: dict[str, Any]) -> bool:
        """Video stream that is not an embedded cover picture."""
        if stream.get("codec_type") != "video":
            return False
        return not stream.get("disposition", {}).get("attached_pic")

    async def _run_ffmpeg(self, step: str, cmd: list[str]) -> None:
        async with self._semaphore:
            logger.debug(f"FFmpeg command: {' '.join(cmd)}")
            process = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
            try:
                _, stderr = await process.communicate()
            except asyncio.CancelledError:
                if process.returncode is None:
                    process.kill()
                    await process.wait()
                raise

        if process.returncode != 0:
            error_output = stderr.decode(errors="replace") if stderr else ""
            logger.error(f"FFmpeg {step} failed: code={process.returncode}")
            raise MediaProcessingError(step, process.returncode, error_output)

    async def extract_audio(self, source_path: str, output_path: str, start: float, end: float) -> str:
        """Extract ``[start, end)`` of the source as mp3 (audio only)."""
        cmd = [
            "ffmpeg",
            "-y",
            "-ss",
            f"{start:.3f}",
            "-i",
            str(source_path),
            "-t",
            f"{end - start:.3f}",
            "-vn",
            "-acodec",
            self.config.audio_codec,
            "-ar",
            str(self.config.audio_sample_rate),
            "-ab",
            self.config.audio_bitrate,
            "-f",
            "mp3",
            str(output_path),
        ]
        await self._run_ffmpeg(f"audio {Path(output_path).name}", cmd)
        return str(output_path)

    async def extract_screenshot(self, source_path: str, output_path: str, timestamp: float) -> str:
        """Grab one frame at ``timestamp`` scaled to the configured size."""
        cmd = [
            "ffmpeg",
            "-y",
            "-ss",
            f"{timestamp:.3f}",
            "-i",
            str(source_path),
            "-frames:v",
            "1",
            "-s",
            self.config.screenshot_size,
            "-q:v",
            "2",
            str(output_path),
        ]
        await self._run_ffmpeg(f"screenshot {Path(output_path).name}", cmd)
        return str(output_path)

    async def decompose(
        self,
        source_path: str,
        output_dir: str,
        media_info: MediaInfo | None = None,
    ) -> DecompositionResult:
        """Probe and split the source.

        Segments and the tag sample go to ``output_dir/audio``, screenshots to
        ``output_dir/screenshots`` (video sources only). All ffmpeg calls run
        concurrently up to ``config.concurrency``.
        """
        if media_info is None:
            media_info = await self.get_media_info(source_path)

        base_name = sanitize_filename(Path(source_path).stem)
        audio_dir = Path(output_dir) / "audio"
        audio_dir.mkdir(parents=True, exist_ok=True)

        segments: list[MediaSegment] = plan_segments(
            media_info.duration, self.config.segment_minutes, self.config.overlap_minutes
        )
        for segment in segments:
            segment.path = str(audio_dir / f"{base_name}_chunk_{segment.index}.mp3")

        tag_end = min(self.config.tag_minutes * 60, media_info.duration)
        tag_sample = str(audio_dir / f"{base_name}_tag_sample.mp3")

        screenshots: list[Screenshot] = []
        if media_info.is_video and self.config.screenshot_count > 0:
            screenshot_dir = Path(output_dir) / "screenshots"
            screenshot_dir.mkdir(parents=True, exist_ok=True)
            timestamps = plan_screenshot_timestamps(media_info.duration, self.config.screenshot_count)
            screenshots = [
                Screenshot(index=i, timestamp=ts, path=str(screenshot_dir / f"{base_name}_screenshot_{i}.jpg"))
                for i, ts in enumerate(timestamps)
            ]

        logger.info(
            "Decomposing | "
            + format_details(
                duration=f"{media_info.duration:.1f}s",
                segments=len(segments),
                screenshots=len(screenshots),
                video=media_info.is_video,
            )
        )

        # One failed extraction cancels the rest before the error propagates
        try:
            async with asyncio.TaskGroup() as group:
                group.create_task(self.extract_audio(source_path, tag_sample, 0, tag_end))
                for segment in segments:
                    group.create_task(self.extract_audio(source_path, segment.path, segment.start, segment.end))
                for shot in screenshots:
                    group.create_task(self.extract_screenshot(source_path, shot.path, shot.timestamp))
        except ExceptionGroup as errors:
            raise errors.exceptions[0] from None

        return DecompositionResult(
            media_info=media_info,
            segments=segments,
            screenshots=screenshots,
            tag_sample=tag_sample,
            working_dir=str(output_dir),
        )
