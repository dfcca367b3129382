"""Unit tests for single-shot and chunked upload assembly."""

import io
import time

import pytest

MB = 1024 * 1024


class _Stream:
    """Async reader over bytes, like Starlette's UploadFile."""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


@pytest.fixture
def redis_store():
    """RedisSessionStore on an in-memory fake server."""
    import fakeredis

    from upload_module import RedisSessionStore

    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    return RedisSessionStore(client, key_prefix="test")


@pytest.fixture(params=["memory", "redis"])
def session_store(request):
    """Every assembler test runs against both session backends."""
    from upload_module import InMemorySessionStore

    if request.param == "redis":
        return request.getfixturevalue("redis_store")
    return InMemorySessionStore()


@pytest.fixture
def assembler(tmp_path, session_store):
    from config.settings import UploadSettings
    from file_storage import JobPathBuilder
    from upload_module import UploadAssembler

    settings = UploadSettings(chunk_size_mb=1, max_chunk_size_mb=2, max_file_size_mb=4)
    return UploadAssembler(session_store, JobPathBuilder(str(tmp_path / "jobs")), settings)


@pytest.mark.unit
class TestChunkedUpload:
    """Tests for the chunked upload path."""

    @pytest.mark.asyncio
    async def test_out_of_order_parts_assemble_byte_identical(self, assembler):
        """Test parts delivered in any order reconstruct the original bytes."""
        # Arrange
        data = bytes(range(256)) * (3 * MB // 256) + b"tail"
        session = await assembler.init("meeting.mp4", len(data), "video/mp4")
        parts = [data[i : i + MB] for i in range(0, len(data), MB)]

        # Act
        receipts = []
        for index in [3, 0, 2, 1]:
            receipts.append(await assembler.put_part(session.job_id, index, parts[index]))

        # Assert
        assert session.expected_parts == 4
        assert [r.complete for r in receipts] == [False, False, False, True]
        stored = await assembler.get_session(session.job_id)
        with open(stored.assembled_path, "rb") as f:
            assert f.read() == data
        assert stored.assembled_path.endswith("source.mp4")
        assert not assembler.paths.parts_dir(session.job_id).exists()

    @pytest.mark.asyncio
    async def test_redelivered_part_overwrites(self, assembler):
        """Test a part sent twice before completion keeps the last copy."""
        # Arrange
        session = await assembler.init("call.mp3", 2 * MB, "audio/mpeg")

        # Act
        await assembler.put_part(session.job_id, 0, b"a" * MB)
        receipt = await assembler.put_part(session.job_id, 0, b"b" * MB)

        # Assert
        assert receipt.received_chunks == 1
        with open(assembler.paths.part_file(session.job_id, 0), "rb") as f:
            assert f.read(1) == b"b"

    @pytest.mark.asyncio
    async def test_duplicate_after_completion_is_noop(self, assembler):
        """Test a late duplicate part does not alter the assembled file."""
        # Arrange
        session = await assembler.init("call.mp3", 10, "audio/mpeg")
        await assembler.put_part(session.job_id, 0, b"0123456789")

        # Act
        receipt = await assembler.put_part(session.job_id, 0, b"XXXXXXXXXX")

        # Assert
        assert receipt.complete is True
        stored = await assembler.get_session(session.job_id)
        with open(stored.assembled_path, "rb") as f:
            assert f.read() == b"0123456789"

    @pytest.mark.asyncio
    async def test_declared_size_over_ceiling_rejected(self, assembler):
        """Test init refuses files over the size ceiling before accepting bytes."""
        # Arrange
        from upload_module import UploadTooLargeError

        # Act & Assert
        with pytest.raises(UploadTooLargeError):
            await assembler.init("meeting.mp4", 5 * MB, "video/mp4")

    @pytest.mark.asyncio
    async def test_oversized_part_rejected(self, assembler):
        """Test a single part over the per-part ceiling is rejected."""
        # Arrange
        from upload_module import UploadTooLargeError

        session = await assembler.init("meeting.mp4", 3 * MB, "video/mp4")

        # Act & Assert
        with pytest.raises(UploadTooLargeError, match="Chunk"):
            await assembler.put_part(session.job_id, 0, b"x" * (2 * MB + 1))

    @pytest.mark.asyncio
    async def test_index_out_of_range_rejected(self, assembler):
        """Test part indexes outside [0, expected) are rejected."""
        # Arrange
        from upload_module import InvalidPartError

        session = await assembler.init("meeting.mp4", 2 * MB, "video/mp4")

        # Act & Assert
        with pytest.raises(InvalidPartError, match="out of range"):
            await assembler.put_part(session.job_id, 2, b"x")

    @pytest.mark.asyncio
    async def test_total_mismatch_rejected(self, assembler):
        """Test a client announcing a different part count is rejected."""
        # Arrange
        from upload_module import InvalidPartError

        session = await assembler.init("meeting.mp4", 2 * MB, "video/mp4")

        # Act & Assert
        with pytest.raises(InvalidPartError, match="total_chunks=3"):
            await assembler.put_part(session.job_id, 0, b"x", total_parts=3)

    @pytest.mark.asyncio
    async def test_assembled_size_must_match_declared_size(self, assembler):
        """Test parts adding up to more than the declared size are rejected and must be resent."""
        # Arrange
        from upload_module import InvalidPartError

        session = await assembler.init("meeting.mp4", MB + 10, "video/mp4")
        await assembler.put_part(session.job_id, 0, b"x" * MB)

        # Act
        with pytest.raises(InvalidPartError, match="declared file_size"):
            await assembler.put_part(session.job_id, 1, b"y" * (2 * MB))

        # Assert
        stored = await assembler.get_session(session.job_id)
        assert stored.completed is False
        assert stored.received_parts == 0
        assert not assembler.paths.source_file(session.job_id, ".mp4").exists()

    @pytest.mark.asyncio
    async def test_unsupported_type_rejected(self, assembler):
        """Test init refuses unknown extensions and MIME types."""
        # Arrange
        from upload_module import UnsupportedSourceError

        # Act & Assert
        with pytest.raises(UnsupportedSourceError):
            await assembler.init("notes.txt", 100, "text/plain")

    @pytest.mark.asyncio
    async def test_mime_type_accepted_without_extension(self, assembler):
        """Test an accepted MIME type maps to its source extension."""
        # Act
        extension = assembler.validate_source("recording", "audio/wav; codecs=1")

        # Assert
        assert extension == ".wav"

    @pytest.mark.asyncio
    async def test_unknown_session_not_found(self, assembler):
        """Test parts for an unknown job id are rejected."""
        # Arrange
        from upload_module import UploadSessionNotFoundError

        # Act & Assert
        with pytest.raises(UploadSessionNotFoundError):
            await assembler.put_part("0" * 32, 0, b"x")


@pytest.mark.unit
class TestClaimForProcessing:
    """Tests for UploadAssembler.claim_for_processing."""

    @pytest.mark.asyncio
    async def test_incomplete_upload_cannot_start(self, assembler):
        """Test claiming before every part arrived raises UploadIncompleteError."""
        # Arrange
        from upload_module import UploadIncompleteError

        session = await assembler.init("meeting.mp4", 2 * MB, "video/mp4")
        await assembler.put_part(session.job_id, 0, b"x" * MB)

        # Act & Assert
        with pytest.raises(UploadIncompleteError) as exc_info:
            await assembler.claim_for_processing(session.job_id)

        assert (exc_info.value.received, exc_info.value.expected) == (1, 2)

    @pytest.mark.asyncio
    async def test_claim_only_once(self, assembler):
        """Test a second claim raises UploadAlreadyStartedError."""
        # Arrange
        from upload_module import UploadAlreadyStartedError

        session = await assembler.init("call.mp3", 4, "audio/mpeg")
        await assembler.put_part(session.job_id, 0, b"abcd")

        # Act
        claimed = await assembler.claim_for_processing(session.job_id)

        # Assert
        assert claimed.processing_started is True
        with pytest.raises(UploadAlreadyStartedError):
            await assembler.claim_for_processing(session.job_id)


@pytest.mark.unit
class TestSingleShot:
    """Tests for UploadAssembler.store_single."""

    @pytest.mark.asyncio
    async def test_store_single_streams_to_source(self, assembler):
        """Test a single-shot upload lands at source.<ext> in the job dir."""
        # Arrange
        job_id = "a" * 32

        # Act
        path, size = await assembler.store_single(job_id, "meeting.MP4", "video/mp4", _Stream(b"video-bytes"))

        # Assert
        assert size == 11
        assert path.endswith(f"{job_id}/source.mp4")
        with open(path, "rb") as f:
            assert f.read() == b"video-bytes"

    @pytest.mark.asyncio
    async def test_store_single_over_ceiling_removes_file(self, assembler):
        """Test streaming past the ceiling rejects and cleans up."""
        # Arrange
        from upload_module import UploadTooLargeError

        job_id = "b" * 32

        # Act & Assert
        with pytest.raises(UploadTooLargeError):
            await assembler.store_single(job_id, "call.mp3", "audio/mpeg", _Stream(b"x" * (4 * MB + 1)))

        assert not assembler.paths.source_file(job_id, ".mp3").exists()


@pytest.mark.unit
class TestExpiry:
    """Tests for session expiry."""

    @pytest.mark.asyncio
    async def test_expired_session_purged_with_files(self, assembler):
        """Test sessions past the TTL are dropped and their directory removed."""
        # Arrange
        from upload_module import UploadSessionNotFoundError

        session = await assembler.init("meeting.mp4", 2 * MB, "video/mp4")
        await assembler.put_part(session.job_id, 0, b"x" * MB)
        stored = await assembler.store.get(session.job_id)
        stored.created_at = time.time() - assembler.settings.session_ttl_seconds - 1
        await assembler.store.save(stored)

        # Act
        purged = await assembler.purge_expired()

        # Assert
        assert purged == 1
        assert not assembler.paths.job_root(session.job_id).exists()
        with pytest.raises(UploadSessionNotFoundError):
            await assembler.get_session(session.job_id)

    @pytest.mark.asyncio
    async def test_started_session_keeps_files_on_expiry(self, assembler):
        """Test expiry never deletes the source of a job that is processing."""
        # Arrange
        session = await assembler.init("call.mp3", 4, "audio/mpeg")
        await assembler.put_part(session.job_id, 0, b"abcd")
        claimed = await assembler.claim_for_processing(session.job_id)
        claimed.created_at = time.time() - assembler.settings.session_ttl_seconds - 1
        await assembler.store.save(claimed)

        # Act
        await assembler.purge_expired()

        # Assert
        assert assembler.paths.source_file(session.job_id, ".mp3").exists()

    def test_expected_parts(self):
        """Test the part count rounds up and is at least one."""
        # Arrange
        from upload_module import expected_parts

        # Act & Assert
        assert expected_parts(1, MB) == 1
        assert expected_parts(MB, MB) == 1
        assert expected_parts(MB + 1, MB) == 2


@pytest.mark.unit
class TestRedisSessionStore:
    """Tests for RedisSessionStore specifics."""

    @pytest.mark.asyncio
    async def test_parts_round_trip_with_integer_keys(self, redis_store):
        """Test the part map survives JSON storage with int indexes."""
        # Arrange
        from upload_module import UploadSession

        session = UploadSession(
            job_id="c" * 32,
            filename="meeting.mp4",
            size=3,
            mime_type="video/mp4",
            expected_parts=2,
            parts={1: "/jobs/c/parts/part-1", 0: "/jobs/c/parts/part-0"},
        )

        # Act
        await redis_store.save(session)
        loaded = await redis_store.get(session.job_id)

        # Assert
        assert loaded.parts == {0: "/jobs/c/parts/part-0", 1: "/jobs/c/parts/part-1"}
        assert loaded.received_parts == 2
        assert await redis_store.client.ttl(redis_store._key(session.job_id)) > 0

    @pytest.mark.asyncio
    async def test_pop_expired_uses_exclusive_cutoff(self, redis_store):
        """Test only sessions strictly older than the TTL are removed."""
        # Arrange
        from upload_module import UploadSession

        now = 1_000_000.0
        old = UploadSession(job_id="d" * 32, filename="a.mp3", size=1, expected_parts=1, created_at=now - 101)
        edge = UploadSession(job_id="e" * 32, filename="b.mp3", size=1, expected_parts=1, created_at=now - 100)
        await redis_store.save(old)
        await redis_store.save(edge)

        # Act
        expired = await redis_store.pop_expired(100, now=now)

        # Assert
        assert [s.job_id for s in expired] == [old.job_id]
        assert await redis_store.get(old.job_id) is None
        assert await redis_store.get(edge.job_id) is not None
        assert await redis_store.client.zrange(redis_store._index_key, 0, -1) == [edge.job_id]

    @pytest.mark.asyncio
    async def test_missing_session_returns_none(self, redis_store):
        """Test unknown ids read as None."""
        # Act & Assert
        assert await redis_store.get("f" * 32) is None
