"""Tests for the HTTP front door."""

import asyncio
from unittest.mock import AsyncMock, patch

from artifact import header_text
from models import PRProcessResult, RunSummary

SECTION = (
    '<details>\n<summary>PR 101 - Link: <a href="https://x/pullrequest/101">https://x/pullrequest/101</a></summary>\n\n'
    "### Important Comments\n\n### Thread 7, Comment 1\n\n**Category:** Troubleshooting\n"
    "**Summary:** Use kubectl & friends.\n\n</details>\n\n"
)


def _mark_recent_run():
    """Make the debounce window believe a run just started."""
    from main import app

    guard = app.state.run_guard
    guard.try_acquire()
    guard.release()


class TestFetchComments:
    async def test_success(self, async_client, monkeypatch):
        from config import settings

        monkeypatch.setattr(settings, "ADO_PAT", "pat")
        with patch("main.run_analysis", new_callable=AsyncMock, return_value=RunSummary(total=1, processed=1)) as run:
            resp = await async_client.post("/api/fetch-comments")
        assert resp.status_code == 200
        assert resp.text == "Comments fetched successfully"
        review = run.call_args.args[0]
        assert review.repository == settings.ADO_REPOSITORY

    async def test_missing_token_is_500(self, async_client):
        resp = await async_client.post("/api/fetch-comments")
        assert resp.status_code == 500
        assert resp.text.startswith("Error: ")
        assert "ADO_PAT" in resp.text

    async def test_token_from_appsettings(self, async_client, tmp_path):
        (tmp_path / "appsettings.json").write_text('{"AdoPat": "from-file"}')
        with patch("main.run_analysis", new_callable=AsyncMock, return_value=RunSummary()):
            resp = await async_client.post("/api/fetch-comments")
        assert resp.status_code == 200

    async def test_run_failure_is_500(self, async_client, monkeypatch):
        from config import settings

        monkeypatch.setattr(settings, "ADO_PAT", "pat")
        with patch("main.run_analysis", new_callable=AsyncMock, side_effect=RuntimeError("upstream exploded")):
            resp = await async_client.post("/api/fetch-comments")
        assert resp.status_code == 500
        assert resp.text == "Error: upstream exploded"

    async def test_rejects_concurrent_run(self, async_client):
        from main import app

        app.state.run_guard.try_acquire()
        resp = await async_client.post("/api/fetch-comments")
        assert resp.status_code == 409
        app.state.run_guard.release()


class TestProgress:
    async def test_idle(self, async_client):
        resp = await async_client.get("/api/progress")
        assert resp.status_code == 200
        assert resp.json() == {"total": 0, "processed": 0, "found": 0, "currentPR": 0}

    async def test_reflects_tracker(self, async_client):
        from main import app

        tracker = app.state.progress
        tracker.set_total(3)
        tracker.record(PRProcessResult(pull_request_id=77, has_content=True))
        resp = await async_client.get("/api/progress")
        assert resp.json() == {"total": 3, "processed": 1, "found": 1, "currentPR": 77}


class TestIndex:
    async def test_serves_landing_page(self, async_client):
        resp = await async_client.get("/")
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]
        assert "/api/fetch-comments" in resp.text

    async def test_missing_landing_page(self, async_client, monkeypatch, tmp_path):
        from config import settings

        monkeypatch.setattr(settings, "STATIC_DIR", str(tmp_path / "nowhere"))
        resp = await async_client.get("/")
        assert resp.status_code == 404


class TestResults:
    async def test_placeholder_when_missing(self, async_client):
        _mark_recent_run()
        resp = await async_client.get("/results")
        assert resp.status_code == 200
        assert "No content yet" in resp.text

    async def test_placeholder_when_header_only(self, async_client, output_path):
        output_path.write_text(header_text(7))
        _mark_recent_run()
        resp = await async_client.get("/results")
        assert "No content yet" in resp.text

    async def test_renders_digest(self, async_client, output_path):
        output_path.write_text(header_text(7) + SECTION)
        _mark_recent_run()
        resp = await async_client.get("/results")
        assert resp.status_code == 200
        assert "marked" in resp.text
        # Markdown is embedded escaped and rendered client-side
        assert "**Summary:** Use kubectl &amp; friends." in resp.text
        assert "&lt;details&gt;" in resp.text

    async def test_refresh_replaces_previous_digest(self, async_client, output_path):
        output_path.write_text(header_text(7) + "<details>stale</details>\n")

        async def fake_run(progress):
            assert not output_path.exists()
            output_path.write_text(header_text(7) + SECTION)
            return RunSummary(total=1, processed=1, found=1)

        with patch("main._run_once", side_effect=fake_run) as run:
            resp = await async_client.get("/results")
            # Second request falls inside the debounce window
            await async_client.get("/results")

        assert run.await_count == 1
        assert "stale" not in resp.text
        assert "Thread 7, Comment 1" in resp.text

    async def test_refresh_failure_is_500(self, async_client, output_path):
        output_path.write_text(header_text(7) + SECTION)
        with patch("main._run_once", new_callable=AsyncMock, side_effect=RuntimeError("bad token")):
            resp = await async_client.get("/results")
        assert resp.status_code == 500
        assert "Error: bad token" in resp.text
        assert not output_path.exists()

    async def test_refresh_timeout_keeps_run_going(self, async_client, output_path, monkeypatch):
        import main
        from config import settings

        monkeypatch.setattr(settings, "REFRESH_TIMEOUT_SECONDS", 0.01)
        release = asyncio.Event()

        async def slow_run(progress):
            await release.wait()
            output_path.write_text(header_text(7) + SECTION)
            return RunSummary()

        with patch("main._run_once", side_effect=slow_run):
            resp = await async_client.get("/results")
            assert resp.status_code == 200
            assert "No content yet" in resp.text
            assert main.app.state.run_guard.busy is True

            release.set()
            await asyncio.gather(*main._background_runs)

        assert main.app.state.run_guard.busy is False
        assert output_path.exists()

    async def test_no_refresh_while_another_run_holds_guard(self, async_client, output_path):
        from main import app
        from progress import RunGuard

        now = [1000.0]
        guard = RunGuard(clock=lambda: now[0])
        app.state.run_guard = guard
        assert guard.try_acquire()
        # Last start is well outside the debounce window
        now[0] += 3600
        output_path.write_text(header_text(7) + SECTION)

        with patch("main._run_once", new_callable=AsyncMock) as run:
            resp = await async_client.get("/results")

        assert resp.status_code == 200
        assert run.await_count == 0
        assert output_path.read_text() == header_text(7) + SECTION
        assert "Thread 7, Comment 1" in resp.text
        assert guard.busy is True


class TestHealth:
    async def test_health(self, async_client):
        resp = await async_client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "running": False}
