"""Shared fixtures for Prism backend tests."""

import os
import sys
from unittest.mock import AsyncMock, patch, MagicMock

import pytest
import pytest_asyncio

# Ensure backend is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture(autouse=True)
def output_path(tmp_path, monkeypatch):
    """Point the digest and config file at per-test temp paths."""
    from config import settings

    path = tmp_path / "important_comments.md"
    monkeypatch.setattr(settings, "OUTPUT_PATH", str(path))
    monkeypatch.setattr(settings, "APPSETTINGS_PATH", str(tmp_path / "appsettings.json"))
    monkeypatch.setattr(settings, "ADO_PAT", "")
    monkeypatch.setattr(settings, "THREAD_LOG_DIR", "")
    monkeypatch.setattr(settings, "BATCH_DELAY_SECONDS", 0.0)
    return path


@pytest_asyncio.fixture
async def async_client():
    """HTTPX async client wired to the FastAPI app without invoking lifespan."""
    import httpx
    from main import app
    from progress import ProgressTracker, RunGuard

    app.state.progress = ProgressTracker()
    app.state.run_guard = RunGuard()

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def mock_classify():
    """Patch classifier.classify to prevent Claude API calls."""
    with patch("classifier.classify", new_callable=AsyncMock) as mock:
        mock.return_value = "No important content"
        yield mock


@pytest.fixture
def mock_httpx_client():
    """Patch httpx.AsyncClient for review API mocking."""

    class MockResponse:
        def __init__(self, status_code=200, json_data=None, text=""):
            self.status_code = status_code
            self._json = json_data or {}
            self.text = text

        @property
        def is_success(self):
            return 200 <= self.status_code < 300

        def json(self):
            return self._json

    mock_client = MagicMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client.get = AsyncMock(return_value=MockResponse())

    with patch("httpx.AsyncClient", return_value=mock_client) as patcher:
        patcher._mock_client = mock_client
        patcher._MockResponse = MockResponse
        yield patcher
