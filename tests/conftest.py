"""Shared test fixtures for all tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def test_settings(tmp_path, monkeypatch):
    """Settings pointing the jobs directory at a temp dir, rate limiting off, no server key."""
    from config.settings import get_settings, reset_settings
    from file_storage import reset_job_store

    monkeypatch.setenv("STORAGE_JOBS_DIR", str(tmp_path / "jobs"))
    monkeypatch.setenv("SECURITY_RATE_LIMIT_ENABLED", "false")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    reset_settings()
    reset_job_store()

    yield get_settings()

    reset_settings()
    reset_job_store()


@pytest.fixture
def job_store(tmp_path):
    """JobStore on a local backend in a temp dir."""
    from file_storage import JobStore, LocalStorageBackend

    base = tmp_path / "jobs"
    return JobStore(LocalStorageBackend(base), base)


@pytest.fixture
def event_bus():
    from api.pipeline.events import JobEventBus

    return JobEventBus()


@pytest.fixture
def mock_generator():
    """Generation adapter stand-in; configure ``invoke`` per test."""
    generator = MagicMock()
    generator.invoke = AsyncMock(return_value="generated text")
    return generator


@pytest.fixture
def mock_runner():
    """Job runner that records starts instead of running jobs."""
    runner = MagicMock()
    runner.start = MagicMock()
    runner.cancel = MagicMock(return_value=True)
    runner.is_running = MagicMock(return_value=False)
    runner.shutdown = AsyncMock()
    return runner


@pytest.fixture
def client(test_settings, mock_runner):
    """TestClient with a temp jobs dir and the job runner mocked."""
    from api.dependencies import get_runner, reset_dependencies
    from api.main import app

    reset_dependencies()
    app.dependency_overrides[get_runner] = lambda: mock_runner

    with TestClient(app) as test_client:
        yield test_client

    # Clear overrides after test
    app.dependency_overrides.clear()
    reset_dependencies()
