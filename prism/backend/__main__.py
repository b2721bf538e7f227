"""CLI entry point: prism

Runs one analysis of recently completed PRs and appends findings to the
Markdown digest, or serves the HTTP front door.

Usage:
    prism                          # Analyze the last 7 days (settings.DAYS_BACK)
    prism --days 30 --max-prs 50   # Wider window
    prism --fresh                  # Delete the existing digest first
    prism --output digest.md       # Write somewhere else
    prism --serve                  # Start the web UI on settings.PORT
"""

import os
os.environ.pop("CLAUDECODE", None)  # Allow nested Claude SDK calls

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure the backend directory is on the path (for imports when run as module)
sys.path.insert(0, str(Path(__file__).parent))

from config import settings, load_personal_access_token, ConfigurationError


BANNER = """\033[1;36m
  ┌─┐┬─┐┬┌─┐┌┬┐
  ├─┘├┬┘│└─┐│││
  ┴  ┴└─┴└─┘┴ ┴
\033[0m\033[90m  Knowledge from PR review comments\033[0m
"""


def _progress(msg: str) -> None:
    """Print a progress message to stderr (keeps stdout clean for output)."""
    print(f"\033[90m  → {msg}\033[0m", file=sys.stderr)


def _error(msg: str) -> None:
    print(f"\033[31m  ✗ {msg}\033[0m", file=sys.stderr)


def _success(msg: str) -> None:
    print(f"\033[32m  ✓ {msg}\033[0m", file=sys.stderr)


async def _serve() -> int:
    """Run the HTTP front door.

    Hosted mode binds all interfaces and runs until the process is stopped.
    Local mode binds loopback and stops when Enter is pressed.
    """
    import uvicorn
    from main import app

    config = uvicorn.Config(app, host=settings.host, port=settings.PORT)
    server = uvicorn.Server(config)
    _progress(f"HTTP server starting on http://{settings.host}:{settings.PORT}/")

    if settings.HOSTED:
        await server.serve()
        return 0

    serve_task = asyncio.create_task(server.serve())
    try:
        await asyncio.to_thread(input, "  Press Enter to exit...\n")
    except EOFError:
        # No interactive stdin: keep serving until the process is stopped
        await serve_task
        return 0
    server.should_exit = True
    await serve_task
    return 0


async def main() -> int:
    parser = argparse.ArgumentParser(
        prog="prism",
        description="Extract troubleshooting steps, developer tricks and definitions from completed PRs",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=settings.DAYS_BACK,
        help=f"Look back this many days for completed PRs (default: {settings.DAYS_BACK})",
    )
    parser.add_argument(
        "--max-prs",
        type=int,
        default=settings.MAX_PRS,
        help=f"Maximum PRs to analyze (default: {settings.MAX_PRS})",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=settings.OUTPUT_PATH,
        help="Markdown digest to append to",
    )
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Delete the existing digest before running",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start the HTTP front door instead of running once",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    if args.serve:
        return await _serve()

    try:
        token = load_personal_access_token()
    except ConfigurationError as e:
        _error(str(e))
        return 1

    # Lazy import: pipeline requires claude-agent-sdk
    from pipeline import run_analysis
    from progress import ProgressTracker
    from review_client import ReviewClient

    print(BANNER, file=sys.stderr)
    _progress(f"Target: {settings.ADO_PROJECT}/{settings.ADO_REPOSITORY} (last {args.days} days)")

    output_path = Path(args.output)
    if args.fresh and output_path.exists():
        output_path.unlink()
        _progress(f"Removed {output_path}")

    review = ReviewClient(
        token,
        settings.ADO_COLLECTION_URL,
        settings.ADO_PROJECT,
        settings.ADO_REPOSITORY,
        thread_log_dir=settings.THREAD_LOG_DIR,
    )
    summary = await run_analysis(
        review,
        ProgressTracker(),
        days_back=args.days,
        max_prs=args.max_prs,
        output_path=output_path,
    )

    if summary.total == 0:
        _error("No pull requests found.")
        return 0

    _success(f"Found important comments in {summary.found}/{summary.processed} PRs")
    _success(f"Digest: {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
