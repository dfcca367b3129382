"""Unit tests for the chunked upload endpoints."""

from pathlib import Path

import pytest

MB = 1024 * 1024


def _init(client, size: int, **extra):
    payload = {"filename": "meeting.mp4", "file_size": size, "file_type": "video/mp4", "api_key": "test-key"}
    payload.update(extra)
    return client.post("/api/init-upload", json=payload)


def _put(client, job_id: str, index: int, data: bytes, total: int | None = None):
    form = {"chunk_index": str(index)}
    if total is not None:
        form["total_chunks"] = str(total)
    return client.post(
        f"/api/upload-chunk/{job_id}",
        data=form,
        files={"chunk": ("blob", data, "application/octet-stream")},
    )


@pytest.mark.unit
class TestInitUpload:
    """Tests for POST /api/init-upload."""

    def test_init_announces_parts(self, client):
        """Test the session id, part count and part size are returned."""
        # Act
        response = _init(client, 12 * MB)

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert len(body["job_id"]) == 32
        assert body["chunk_size"] == 5 * MB
        assert body["total_chunks"] == 3

    def test_oversized_file_rejected(self, client):
        """Test a declared size over the ceiling is refused with 413."""
        # Act
        response = _init(client, 2049 * MB)

        # Assert
        assert response.status_code == 413
        assert response.json()["error"] == "Payload too large"

    def test_missing_api_key_rejected(self, client):
        """Test init needs a key from the request or the server."""
        # Act
        response = _init(client, 10, api_key=None)

        # Assert
        assert response.status_code == 400

    def test_zero_size_rejected(self, client):
        """Test file_size must be positive."""
        # Act
        response = _init(client, 0)

        # Assert
        assert response.status_code == 422


@pytest.mark.unit
class TestChunkedFlow:
    """Tests for chunk delivery and processing start."""

    def test_full_flow_starts_once(self, client, mock_runner):
        """Test an assembled upload starts processing exactly once with its init options."""
        # Arrange
        data = b"A" * 10 + b"B" * 10 + b"C" * 5
        job_id = _init(client, len(data), screenshot_count=2).json()["job_id"]

        receipts = [_put(client, job_id, 0, data, total=1)]

        # Act
        started = client.post(f"/api/process-uploaded/{job_id}")
        again = client.post(f"/api/process-uploaded/{job_id}")

        # Assert
        assert receipts[0].json()["complete"] is True
        assert started.status_code == 202
        assert started.json()["job_id"] == job_id
        mock_runner.start.assert_called_once_with(job_id, "test-key")
        assert again.status_code == 409

        job = client.get(f"/api/jobs/{job_id}").json()
        assert job["options"]["screenshot_count"] == 2
        assert Path(job["input"]["stored_path"]).read_bytes() == data

    def test_multi_part_out_of_order(self, client, monkeypatch):
        """Test a three-part upload delivered 2, 0, 1 is byte-identical."""
        # Arrange
        from api.dependencies import get_assembler

        monkeypatch.setattr(get_assembler().settings, "chunk_size_mb", 1)
        data = bytes(range(256)) * (2 * MB // 256) + b"end"
        job_id = _init(client, len(data)).json()["job_id"]
        parts = [data[i : i + MB] for i in range(0, len(data), MB)]

        # Act
        statuses = [_put(client, job_id, i, parts[i]).json() for i in (2, 0, 1)]
        started = client.post(f"/api/process-uploaded/{job_id}", json={"stream_response": False})

        # Assert
        assert [s["received_chunks"] for s in statuses] == [1, 2, 3]
        assert [s["complete"] for s in statuses] == [False, False, True]
        assert started.status_code == 202
        stored = client.get(f"/api/jobs/{job_id}").json()["input"]["stored_path"]
        assert Path(stored).read_bytes() == data

    def test_process_before_complete_returns_409(self, client, mock_runner):
        """Test processing cannot start until every part arrived."""
        # Arrange
        job_id = _init(client, 7 * MB).json()["job_id"]
        _put(client, job_id, 0, b"x" * 1024)

        # Act
        response = client.post(f"/api/process-uploaded/{job_id}")

        # Assert
        assert response.status_code == 409
        assert "1/2" in response.json()["detail"]
        mock_runner.start.assert_not_called()

    def test_chunk_for_unknown_session_returns_404(self, client):
        """Test parts for unknown or malformed ids are refused."""
        # Act
        unknown = _put(client, "0" * 32, 0, b"x")
        malformed = _put(client, "not-a-job", 0, b"x")

        # Assert
        assert unknown.status_code == 404
        assert malformed.status_code == 404

    def test_chunk_index_out_of_range_returns_422(self, client):
        """Test an index past the announced part count."""
        # Arrange
        job_id = _init(client, 10).json()["job_id"]

        # Act
        response = _put(client, job_id, 5, b"x")

        # Assert
        assert response.status_code == 422

    def test_process_unknown_upload_returns_404(self, client):
        """Test starting a job that was never initialized."""
        # Act
        response = client.post(f"/api/process-uploaded/{'a' * 32}")

        # Assert
        assert response.status_code == 404

    def test_process_key_overrides_init_key(self, client, mock_runner):
        """Test a key given at process time wins over the init key."""
        # Arrange
        job_id = _init(client, 3).json()["job_id"]
        _put(client, job_id, 0, b"abc")

        # Act
        response = client.post(f"/api/process-uploaded/{job_id}", json={"api_key": "other-key"})

        # Assert
        assert response.status_code == 202
        assert mock_runner.start.call_args.args[1] == "other-key"


@pytest.mark.unit
class TestRateLimit:
    """Tests for RateLimitMiddleware on a minimal app."""

    def _app(self, per_minute: int):
        from fastapi import FastAPI

        from api.middleware.rate_limit import RateLimitMiddleware
        from config.settings import SecuritySettings

        app = FastAPI()
        security = SecuritySettings(rate_limit_enabled=True, rate_limit_per_minute=per_minute)
        app.add_middleware(RateLimitMiddleware, security=security)

        @app.get("/api/process")
        async def limited():
            return {"ok": True}

        @app.get("/api/jobs/x")
        async def exempt():
            return {"ok": True}

        return app

    def test_requests_over_limit_get_429(self):
        """Test the request after the per-minute budget is refused."""
        # Arrange
        from fastapi.testclient import TestClient

        client = TestClient(self._app(per_minute=2))

        # Act
        codes = [client.get("/api/process").status_code for _ in range(3)]

        # Assert
        assert codes == [200, 200, 429]

    def test_polling_paths_are_exempt(self):
        """Test status polling is never throttled."""
        # Arrange
        from fastapi.testclient import TestClient

        client = TestClient(self._app(per_minute=1))

        # Act
        codes = [client.get("/api/jobs/x").status_code for _ in range(5)]

        # Assert
        assert codes == [200] * 5
