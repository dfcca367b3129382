"""Unit tests for media decomposition (segment planning and MediaDecomposer)."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from tests.fixtures.factories import create_ffprobe_output


def _mock_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0):
    process = AsyncMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.returncode = returncode
    return process


@pytest.mark.unit
class TestPlanSegments:
    """Tests for plan_segments."""

    def test_25_minute_source_gives_three_overlapping_segments(self):
        """Test 25 min, segment 10, overlap 1 → [0,10], [9,19], [18,25]."""
        # Arrange
        from media_module import plan_segments

        # Act
        segments = plan_segments(25 * 60, 10, 1)

        # Assert
        assert [(s.start / 60, s.end / 60) for s in segments] == [(0, 10), (9, 19), (18, 25)]
        assert [s.index for s in segments] == [0, 1, 2]

    @pytest.mark.parametrize(
        ("duration", "segment", "overlap"),
        [(1500, 10, 1), (3600, 10, 1), (601, 10, 1), (7200, 30, 1), (950, 5, 2.5), (59, 1, 0.5)],
    )
    def test_segments_cover_timeline_with_exact_overlap(self, duration, segment, overlap):
        """Test segments cover [0, D) with no gap and adjacent overlap of exactly o."""
        # Arrange
        from media_module import plan_segments

        # Act
        segments = plan_segments(duration, segment, overlap)

        # Assert
        assert segments[0].start == 0
        assert segments[-1].end == pytest.approx(duration)
        for prev, nxt in zip(segments, segments[1:], strict=False):
            assert prev.end - nxt.start == pytest.approx(overlap * 60)
            assert nxt.start > prev.start
            assert nxt.end > prev.end
        for segment_ in segments:
            assert segment_.end - segment_.start <= segment * 60 + 1e-9

    def test_boundaries_tile_without_overlap(self):
        """Test bookkeeping boundaries are contiguous and end at the duration."""
        # Arrange
        from media_module import plan_segments

        # Act
        segments = plan_segments(1500, 10, 1)

        # Assert
        assert segments[0].boundary_start == 0
        for prev, nxt in zip(segments, segments[1:], strict=False):
            assert prev.boundary_end == nxt.boundary_start
        assert segments[-1].boundary_end == 1500

    def test_short_source_gives_single_segment(self):
        """Test a source shorter than one segment yields exactly one segment."""
        # Arrange
        from media_module import plan_segments

        # Act
        segments = plan_segments(120, 10, 1)

        # Assert
        assert len(segments) == 1
        assert (segments[0].start, segments[0].end) == (0, 120)

    def test_invalid_arguments_raise(self):
        """Test zero duration or overlap >= segment is rejected."""
        # Arrange
        from media_module import plan_segments

        # Act & Assert
        with pytest.raises(ValueError):
            plan_segments(0, 10, 1)
        with pytest.raises(ValueError):
            plan_segments(600, 1, 1)


@pytest.mark.unit
class TestPlanScreenshotTimestamps:
    """Tests for plan_screenshot_timestamps."""

    @pytest.mark.parametrize("count", [1, 2, 4, 20])
    def test_timestamps_strictly_inside_window_and_evenly_spaced(self, count):
        """Test timestamps lie in (0.01·D, 0.99·D) with equal gaps."""
        # Arrange
        from media_module import plan_screenshot_timestamps

        duration = 1000.0

        # Act
        timestamps = plan_screenshot_timestamps(duration, count)

        # Assert
        assert len(timestamps) == count
        assert all(0.01 * duration < t < 0.99 * duration for t in timestamps)
        gaps = [b - a for a, b in zip(timestamps, timestamps[1:], strict=False)]
        assert all(g == pytest.approx(gaps[0]) for g in gaps)

    def test_single_screenshot_at_midpoint(self):
        """Test a single screenshot lands in the middle of the window."""
        # Arrange
        from media_module import plan_screenshot_timestamps

        # Act
        timestamps = plan_screenshot_timestamps(1000.0, 1)

        # Assert
        assert timestamps == [pytest.approx(500.0)]

    def test_zero_count_gives_no_timestamps(self):
        """Test count 0 returns an empty list."""
        # Arrange
        from media_module import plan_screenshot_timestamps

        # Act & Assert
        assert plan_screenshot_timestamps(1000.0, 0) == []


@pytest.mark.unit
class TestDecomposeConfig:
    """Tests for DecomposeConfig."""

    def test_from_settings_clamps_overlap_to_half_segment(self):
        """Test overlap is at most half a segment for very short segments."""
        # Arrange
        from config.settings import ProcessingSettings
        from media_module import DecomposeConfig

        settings = ProcessingSettings(overlap_minutes=1.0)

        # Act
        config = DecomposeConfig.from_settings(settings, segment_minutes=1, screenshot_count=4)

        # Assert
        assert config.overlap_minutes == 0.5
        assert config.stride_minutes == 0.5

    def test_overlap_not_below_segment_rejected(self):
        """Test overlap >= segment is rejected."""
        # Arrange
        from media_module import DecomposeConfig

        # Act & Assert
        with pytest.raises(ValueError, match="overlap_minutes"):
            DecomposeConfig(segment_minutes=2, overlap_minutes=2)


@pytest.mark.unit
class TestGetMediaInfo:
    """Tests for MediaDecomposer.get_media_info."""

    @pytest.mark.asyncio
    async def test_get_media_info_video(self):
        """Test ffprobe output is parsed into MediaInfo."""
        # Arrange
        from media_module import DecomposeConfig, MediaDecomposer

        decomposer = MediaDecomposer(DecomposeConfig())
        process = _mock_process(json.dumps(create_ffprobe_output(1500.0, video=True)).encode())

        with patch("asyncio.create_subprocess_exec", return_value=process) as mock_exec:
            # Act
            info = await decomposer.get_media_info("/path/to/meeting.mp4")

        # Assert
        assert info.duration == 1500.0
        assert info.is_video is True
        assert info.width == 1920
        assert info.audio_codec == "aac"
        assert mock_exec.call_args.args[0] == "ffprobe"

    @pytest.mark.asyncio
    async def test_cover_art_is_not_video(self):
        """Test an attached picture stream does not make an mp3 a video."""
        # Arrange
        from media_module import DecomposeConfig, MediaDecomposer

        output = create_ffprobe_output(300.0, video=False)
        output["streams"].append({"codec_type": "video", "codec_name": "mjpeg", "disposition": {"attached_pic": 1}})
        decomposer = MediaDecomposer(DecomposeConfig())

        with patch("asyncio.create_subprocess_exec", return_value=_mock_process(json.dumps(output).encode())):
            # Act
            info = await decomposer.get_media_info("/path/to/audio.mp3")

        # Assert
        assert info.is_video is False

    @pytest.mark.asyncio
    async def test_zero_duration_is_invalid(self):
        """Test zero duration raises InvalidMediaError."""
        # Arrange
        from media_module import DecomposeConfig, InvalidMediaError, MediaDecomposer

        decomposer = MediaDecomposer(DecomposeConfig())
        process = _mock_process(json.dumps(create_ffprobe_output(0.0)).encode())

        with patch("asyncio.create_subprocess_exec", return_value=process):
            # Act & Assert
            with pytest.raises(InvalidMediaError, match="duration is zero"):
                await decomposer.get_media_info("/path/to/empty.mp4")

    @pytest.mark.asyncio
    async def test_ffprobe_failure_is_invalid(self):
        """Test non-zero ffprobe exit raises InvalidMediaError."""
        # Arrange
        from media_module import DecomposeConfig, InvalidMediaError, MediaDecomposer

        decomposer = MediaDecomposer(DecomposeConfig())
        process = _mock_process(b"", b"moov atom not found", returncode=1)

        with patch("asyncio.create_subprocess_exec", return_value=process):
            # Act & Assert
            with pytest.raises(InvalidMediaError, match="moov atom"):
                await decomposer.get_media_info("/path/to/broken.mp4")


@pytest.mark.unit
class TestDecompose:
    """Tests for MediaDecomposer.decompose."""

    @pytest.mark.asyncio
    async def test_decompose_video_extracts_segments_tag_and_screenshots(self, tmp_path):
        """Test one ffmpeg call per segment, tag sample and screenshot."""
        # Arrange
        from media_module import DecomposeConfig, MediaDecomposer, MediaInfo

        decomposer = MediaDecomposer(DecomposeConfig(segment_minutes=10, overlap_minutes=1, screenshot_count=3))
        info = MediaInfo(duration=1500.0, is_video=True)

        with patch("asyncio.create_subprocess_exec", return_value=_mock_process()) as mock_exec:
            # Act
            result = await decomposer.decompose("/src/source.mp4", str(tmp_path), media_info=info)

        # Assert
        assert len(result.segments) == 3
        assert len(result.screenshots) == 3
        assert mock_exec.call_count == 1 + 3 + 3
        assert result.tag_sample.endswith("source_tag_sample.mp3")
        assert all("/audio/" in s.path for s in result.segments)
        assert (tmp_path / "screenshots").is_dir()

    @pytest.mark.asyncio
    async def test_decompose_audio_has_no_screenshots(self, tmp_path):
        """Test audio-only sources skip screenshot extraction."""
        # Arrange
        from media_module import DecomposeConfig, MediaDecomposer, MediaInfo

        decomposer = MediaDecomposer(DecomposeConfig(screenshot_count=4))
        info = MediaInfo(duration=300.0, is_video=False)

        with patch("asyncio.create_subprocess_exec", return_value=_mock_process()) as mock_exec:
            # Act
            result = await decomposer.decompose("/src/source.mp3", str(tmp_path), media_info=info)

        # Assert
        assert result.screenshots == []
        assert len(result.segments) == 1
        assert mock_exec.call_count == 2

    @pytest.mark.asyncio
    async def test_ffmpeg_failure_raises(self, tmp_path):
        """Test a failing extraction raises MediaProcessingError."""
        # Arrange
        from media_module import DecomposeConfig, MediaDecomposer, MediaInfo, MediaProcessingError

        decomposer = MediaDecomposer(DecomposeConfig())
        info = MediaInfo(duration=300.0, is_video=False)

        with patch("asyncio.create_subprocess_exec", return_value=_mock_process(b"", b"codec error", 1)):
            # Act & Assert
            with pytest.raises(MediaProcessingError):
                await decomposer.decompose("/src/source.mp3", str(tmp_path), media_info=info)

    @pytest.mark.asyncio
    async def test_failed_extraction_cancels_siblings(self, tmp_path):
        """Test no extraction keeps running once decompose has raised."""
        # Arrange
        import asyncio

        from media_module import DecomposeConfig, MediaDecomposer, MediaInfo, MediaProcessingError

        decomposer = MediaDecomposer(DecomposeConfig(segment_minutes=10, overlap_minutes=1))
        info = MediaInfo(duration=1500.0, is_video=False)
        finished: list[str] = []

        async def extract_audio(source_path, output_path, start, end):
            if output_path.endswith("_chunk_1.mp3"):
                raise MediaProcessingError("audio", 1, "codec error")
            await asyncio.sleep(0.2)
            finished.append(output_path)
            return output_path

        decomposer.extract_audio = extract_audio

        # Act
        with pytest.raises(MediaProcessingError):
            await decomposer.decompose("/src/source.mp3", str(tmp_path), media_info=info)
        await asyncio.sleep(0.3)

        # Assert
        assert finished == []

    @pytest.mark.asyncio
    async def test_cancelled_ffmpeg_process_is_killed(self):
        """Test cancelling an extraction kills its ffmpeg child."""
        # Arrange
        import asyncio
        from unittest.mock import MagicMock

        from media_module import DecomposeConfig, MediaDecomposer

        decomposer = MediaDecomposer(DecomposeConfig())
        async def hang():
            await asyncio.sleep(60)

        process = AsyncMock()
        process.returncode = None
        process.communicate = AsyncMock(side_effect=hang)
        process.kill = MagicMock()

        with patch("asyncio.create_subprocess_exec", return_value=process):
            task = asyncio.create_task(decomposer._run_ffmpeg("audio", ["ffmpeg"]))
            await asyncio.sleep(0.01)

            # Act
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        # Assert
        process.kill.assert_called_once()
        process.wait.assert_awaited_once()
