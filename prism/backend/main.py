"""FastAPI front door: trigger runs, poll progress and read the digest."""

import asyncio
import html
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from artifact import has_findings
from config import settings, load_personal_access_token
from models import ProgressSnapshot, RunSummary
from pipeline import run_analysis
from progress import ProgressTracker, RunGuard
from review_client import ReviewClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# --------------- App Lifecycle ---------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info(f"Prism started (output: {settings.OUTPUT_PATH})")
    yield
    logger.info("Prism shutting down")


app = FastAPI(
    title="Prism",
    description="Surface troubleshooting steps, developer tricks and definitions from PR review comments",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.progress = ProgressTracker()
app.state.run_guard = RunGuard()
# Strong references to refresh runs that outlive the request that started them
_background_runs: set[asyncio.Task] = set()


# --------------- Helpers ---------------

async def _run_once(progress: ProgressTracker) -> RunSummary:
    """Build a review client from configuration and run one analysis."""
    token = load_personal_access_token()
    review = ReviewClient(
        token,
        settings.ADO_COLLECTION_URL,
        settings.ADO_PROJECT,
        settings.ADO_REPOSITORY,
        thread_log_dir=settings.THREAD_LOG_DIR,
    )
    return await run_analysis(review, progress)


async def _guarded_run(progress: ProgressTracker, guard: RunGuard) -> RunSummary:
    """Run once and release the guard the caller already acquired."""
    try:
        return await _run_once(progress)
    except Exception as e:
        logger.exception(f"Background run failed: {e}")
        raise
    finally:
        guard.release()


RESULTS_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Prism - Important PR Comments</title>
  <script src="https://cdn.jsdelivr.net/npm/marked/marked.min.js"></script>
  <style>
    body {{ font-family: -apple-system, "Segoe UI", sans-serif; max-width: 960px; margin: 2rem auto; padding: 0 1rem; }}
    details {{ border: 1px solid #ddd; border-radius: 6px; padding: 0.5rem 1rem; margin-bottom: 1rem; }}
    code {{ background: #f4f4f4; padding: 0 0.2rem; }}
  </style>
</head>
<body>
  <p><a href="/">&larr; Back</a></p>
  <textarea id="digest" hidden>{markdown}</textarea>
  <div id="content"><pre>{markdown}</pre></div>
  <script>
    const source = document.getElementById("digest").value;
    if (window.marked) {{
      document.getElementById("content").innerHTML = marked.parse(source);
    }}
  </script>
</body>
</html>
"""

MESSAGE_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>Prism</title></head>
<body style="font-family: -apple-system, 'Segoe UI', sans-serif; max-width: 720px; margin: 3rem auto;">
  <h1>{title}</h1>
  <p>{message}</p>
  <p><a href="/">&larr; Back</a></p>
</body>
</html>
"""


def _message_page(title: str, message: str) -> str:
    return MESSAGE_PAGE.format(title=html.escape(title), message=html.escape(message))


# --------------- Run Endpoints ---------------

@app.post("/api/fetch-comments", response_class=PlainTextResponse)
async def fetch_comments(request: Request):
    """Run one analysis to completion and report success or the error message."""
    guard: RunGuard = request.app.state.run_guard
    if not guard.try_acquire():
        return PlainTextResponse("A run is already in progress", status_code=409)

    try:
        summary = await _run_once(request.app.state.progress)
    except Exception as e:
        logger.exception(f"Run failed: {e}")
        return PlainTextResponse(f"Error: {e}", status_code=500)
    finally:
        guard.release()

    logger.info(f"Run finished: {summary.found}/{summary.processed} PRs with findings")
    return PlainTextResponse("Comments fetched successfully")


@app.get("/api/progress")
async def get_progress(request: Request) -> dict:
    """Current run counters. total is -1 while PR ids are being fetched."""
    snapshot: ProgressSnapshot = request.app.state.progress.snapshot()
    return snapshot.model_dump(by_alias=True)


@app.get("/api/health")
async def health(request: Request):
    return {"status": "ok", "running": request.app.state.run_guard.busy}


# --------------- Pages ---------------

@app.get("/", response_class=HTMLResponse)
async def index():
    index_path = Path(settings.STATIC_DIR) / "index.html"
    if not index_path.is_file():
        return PlainTextResponse(f"index.html not found at {index_path}", status_code=404)
    return HTMLResponse(index_path.read_text(encoding="utf-8"))


@app.get("/results", response_class=HTMLResponse)
async def results(request: Request):
    """Render the digest, refreshing it first if the debounce window has passed.

    A refresh deletes the previous digest and waits up to REFRESH_TIMEOUT_SECONDS
    for the new run. On timeout the page shows whatever has been written so far
    while the run keeps going in the background.
    """
    guard: RunGuard = request.app.state.run_guard
    output_path = Path(settings.OUTPUT_PATH)

    if guard.refresh_due(settings.REFRESH_DEBOUNCE_SECONDS) and guard.try_acquire():
        logger.info("Refreshing digest")
        output_path.unlink(missing_ok=True)
        task = asyncio.create_task(_guarded_run(request.app.state.progress, guard))
        _background_runs.add(task)
        task.add_done_callback(_background_runs.discard)
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=settings.REFRESH_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(
                f"Refresh still running after {settings.REFRESH_TIMEOUT_SECONDS:g}s, rendering current digest"
            )
        except Exception as e:
            logger.error(f"Refresh failed: {e}")
            return HTMLResponse(_message_page("Refresh failed", f"Error: {e}"), status_code=500)

    if not has_findings(output_path):
        return HTMLResponse(_message_page(
            "No content yet",
            "No important comments have been found yet. Check back after the current run finishes.",
        ))

    markdown = output_path.read_text(encoding="utf-8")
    return HTMLResponse(RESULTS_PAGE.format(markdown=html.escape(markdown)))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.PORT)
