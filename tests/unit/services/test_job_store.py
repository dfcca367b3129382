"""Unit tests for JobStore, JobIndex and JobPathBuilder."""

import json
from datetime import UTC, datetime, timedelta

import pytest

from tests.fixtures.factories import create_job_record, new_job_id


@pytest.mark.unit
class TestJobRecords:
    """Tests for record persistence."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, job_store):
        """Test a created record can be read back by id."""
        # Arrange
        record = create_job_record(generate_report=True)

        # Act
        await job_store.create(record)
        loaded = await job_store.get(record.job_id)

        # Assert
        assert loaded is not None
        assert loaded.status == "queued"
        assert [s.status for s in loaded.stages] == ["pending", "pending", "pending"]
        assert job_store.paths.result_file(record.job_id).exists()

    @pytest.mark.asyncio
    async def test_report_stage_skipped_without_report(self, job_store):
        """Test the report sub-status starts skipped when no report was requested."""
        # Arrange
        record = create_job_record(generate_report=False)

        # Act
        await job_store.create(record)
        loaded = await job_store.require(record.job_id)

        # Assert
        assert loaded.stages[-1].status == "skipped"

    @pytest.mark.parametrize("job_id", ["../etc", "not-a-job", "A" * 32, ""])
    @pytest.mark.asyncio
    async def test_invalid_ids_return_none(self, job_store, job_id):
        """Test malformed ids never reach the filesystem."""
        # Act & Assert
        assert await job_store.get(job_id) is None

    @pytest.mark.asyncio
    async def test_unindexed_id_not_found(self, job_store):
        """Test a valid but unknown id is not found."""
        # Arrange
        from file_storage import JobNotFoundError

        # Act & Assert
        assert await job_store.get(new_job_id()) is None
        with pytest.raises(JobNotFoundError):
            await job_store.require(new_job_id())

    @pytest.mark.asyncio
    async def test_update_persists_mutation(self, job_store):
        """Test update applies the mutation and refreshes updated_at."""
        # Arrange
        record = await job_store.create(create_job_record())
        before = record.updated_at

        # Act
        await job_store.update(record.job_id, lambda r: setattr(r, "message", "Working"))
        loaded = await job_store.get(record.job_id)

        # Assert
        assert loaded.message == "Working"
        assert loaded.updated_at >= before

    @pytest.mark.asyncio
    async def test_index_survives_restart(self, job_store, tmp_path):
        """Test a fresh store over the same directory finds existing jobs."""
        # Arrange
        from file_storage import JobStore, LocalStorageBackend

        record = await job_store.create(create_job_record())
        base = tmp_path / "jobs"

        # Act
        reopened = JobStore(LocalStorageBackend(base), base)
        await reopened.initialize()

        # Assert
        assert (await reopened.get(record.job_id)).job_id == record.job_id


@pytest.mark.unit
class TestArtifactsAndLogs:
    """Tests for artifacts, error records and stage logs."""

    @pytest.mark.asyncio
    async def test_write_and_read_artifact(self, job_store):
        """Test artifacts are stored as <kind>.md in the job directory."""
        # Arrange
        record = await job_store.create(create_job_record())

        # Act
        name = await job_store.write_artifact(record.job_id, "report", "# Meeting Report\n")

        # Assert
        assert name == "report.md"
        assert await job_store.read_artifact(record.job_id, "report") == "# Meeting Report\n"
        assert await job_store.read_artifact(record.job_id, "description") is None
        assert await job_store.read_artifact(record.job_id, "secrets") is None

    @pytest.mark.asyncio
    async def test_write_error(self, job_store):
        """Test error.json carries the reason and failing stage."""
        # Arrange
        from models.job import JobError

        record = await job_store.create(create_job_record())

        # Act
        await job_store.write_error(record.job_id, JobError(error="boom", stage="transcription"))

        # Assert
        payload = json.loads(job_store.paths.error_file(record.job_id).read_text())
        assert payload["status"] == "failed"
        assert payload["error"] == "boom"
        assert payload["stage"] == "transcription"

    @pytest.mark.asyncio
    async def test_step_log_appends_entries(self, job_store):
        """Test stage logs accumulate timestamped entries."""
        # Arrange
        record = await job_store.create(create_job_record())
        step_log = job_store.step_logger(record.job_id, "transcription_log.json")

        # Act
        await step_log({"chunkIndex": 0})
        await step_log({"chunkIndex": 1})

        # Assert
        entries = json.loads(job_store.paths.step_log_file(record.job_id, "transcription_log.json").read_text())
        assert [e["chunkIndex"] for e in entries] == [0, 1]
        assert all("timestamp" in e for e in entries)

    @pytest.mark.asyncio
    async def test_delete_scratch_keeps_artifacts(self, job_store):
        """Test scratch removal leaves records and artifacts in place."""
        # Arrange
        record = await job_store.create(create_job_record())
        audio_dir = job_store.paths.audio_dir(record.job_id)
        audio_dir.mkdir(parents=True)
        (audio_dir / "source_chunk_0.mp3").write_bytes(b"x")
        await job_store.write_artifact(record.job_id, "description", "desc")

        # Act
        job_store.delete_scratch(record.job_id)

        # Assert
        assert not audio_dir.exists()
        assert job_store.paths.artifact_file(record.job_id, "description").exists()
        assert job_store.paths.result_file(record.job_id).exists()


@pytest.mark.unit
class TestRetention:
    """Tests for the retention sweep."""

    @pytest.mark.asyncio
    async def test_sweep_removes_old_jobs(self, job_store):
        """Test jobs past retention are deleted and unindexed."""
        # Arrange
        old = create_job_record()
        old.created_at = datetime.now(UTC) - timedelta(days=8)
        fresh = create_job_record()
        await job_store.create(old)
        await job_store.create(fresh)

        # Act
        deleted = await job_store.sweep_expired()

        # Assert
        assert deleted == 1
        assert await job_store.get(old.job_id) is None
        assert not job_store.job_dir(old.job_id).exists()
        assert await job_store.get(fresh.job_id) is not None

    @pytest.mark.asyncio
    async def test_delete_drops_record_and_step_log_locks(self, job_store):
        """Test deleting a job releases every lock keyed by its id."""
        # Arrange
        record = await job_store.create(create_job_record())
        other = await job_store.create(create_job_record())
        await job_store.update(record.job_id, lambda r: None)
        await job_store.append_step_log(record.job_id, "report_generation.json", {"step": "initial_prompt"})
        await job_store.append_step_log(other.job_id, "report_generation.json", {"step": "initial_prompt"})

        # Act
        await job_store.delete(record.job_id)

        # Assert
        assert not any(key.startswith(record.job_id) for key in job_store._locks)
        assert f"{other.job_id}:report_generation.json" in job_store._locks

    @pytest.mark.asyncio
    async def test_maybe_sweep_throttled(self, job_store):
        """Test the sweep runs at most once per interval."""
        # Arrange
        await job_store.sweep_expired()
        old = create_job_record()
        old.created_at = datetime.now(UTC) - timedelta(days=30)
        await job_store.create(old)

        # Act
        deleted = await job_store.maybe_sweep()

        # Assert
        assert deleted == 0


@pytest.mark.unit
class TestPathBuilder:
    """Tests for JobPathBuilder."""

    def test_job_root_rejects_traversal(self, tmp_path):
        """Test job paths are only built for valid job ids."""
        # Arrange
        from file_storage import JobPathBuilder

        paths = JobPathBuilder(str(tmp_path))

        # Act & Assert
        with pytest.raises(ValueError, match="Invalid job id"):
            paths.job_root("../../etc")

    def test_source_file_normalizes_extension(self, tmp_path):
        """Test the source name is lower-cased and dotted."""
        # Arrange
        from file_storage import JobPathBuilder

        paths = JobPathBuilder(str(tmp_path))
        job_id = new_job_id()

        # Act & Assert
        assert paths.source_file(job_id, "MP4").name == "source.mp4"
        assert paths.artifact_file(job_id, "transcription").name == "transcription.md"


@pytest.mark.unit
class TestLocalStorageQuota:
    """Tests for the local backend size quota."""

    @pytest.mark.asyncio
    async def test_write_over_quota_rejected(self, tmp_path, monkeypatch):
        """Test a write that would exceed the quota raises and leaves no file behind."""
        # Arrange
        from file_storage import LocalStorageBackend, StorageQuotaExceededError

        backend = LocalStorageBackend(tmp_path, max_size_gb=1)
        monkeypatch.setattr(backend, "_get_total_size", lambda: 1024**3 - 10)

        # Act
        with pytest.raises(StorageQuotaExceededError):
            await backend.save("job/result.json", b"x" * 100)

        # Assert
        assert not (tmp_path / "job").exists()

    @pytest.mark.asyncio
    async def test_write_under_quota_succeeds(self, tmp_path):
        """Test writes within the quota are stored."""
        # Arrange
        from file_storage import LocalStorageBackend

        backend = LocalStorageBackend(tmp_path, max_size_gb=1)

        # Act
        await backend.save("job/result.json", b"{}")

        # Assert
        assert await backend.load_text("job/result.json") == "{}"
