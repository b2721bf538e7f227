"""Batch pipeline: PR ids → comment threads → classifier insights → Markdown digest."""

import asyncio
import logging
from pathlib import Path

from artifact import append_results, ensure_header
from comment_filter import should_process
from config import settings
from extractor import extract_insight
from models import Comment, CommentThread, PRProcessResult, RunSummary
from progress import ProgressTracker
from review_client import ReviewClient

logger = logging.getLogger(__name__)


def _wrap_pr_section(pull_request_id: int, pr_link: str, fragments: str) -> str:
    return (
        "<details>\n"
        f'<summary>PR {pull_request_id} - Link: <a href="{pr_link}">{pr_link}</a></summary>\n\n'
        "### Important Comments\n\n"
        f"{fragments}"
        "</details>\n\n"
    )


async def _extract_isolated(
    comment: Comment,
    thread: CommentThread,
    pr_link: str,
    gate: asyncio.Semaphore | None,
) -> str:
    """Run one extraction, logging and dropping its failure instead of failing the PR."""
    try:
        if gate is None:
            return await extract_insight(comment, thread, pr_link)
        async with gate:
            return await extract_insight(comment, thread, pr_link)
    except Exception as e:
        logger.warning(f"Skipping thread {thread.id} comment {comment.id}: {e}")
        return ""


async def process_pr(
    pull_request_id: int,
    review: ReviewClient,
    gate: asyncio.Semaphore | None = None,
) -> PRProcessResult:
    """Fetch one PR's threads and classify every qualifying comment concurrently."""
    pr_link = review.pr_link(pull_request_id)

    try:
        logger.info(f"Fetching threads for PR #{pull_request_id}")
        threads = await review.fetch_threads(pull_request_id)
        if not threads:
            logger.info(f"No threads in PR #{pull_request_id}")
            return PRProcessResult(pull_request_id=pull_request_id)

        # Issue order is thread order, then comment order; gather keeps it
        tasks = [
            _extract_isolated(comment, thread, pr_link, gate)
            for thread in threads
            for comment in thread.comments
            if should_process(comment.content)
        ]
        fragments = await asyncio.gather(*tasks)
        content = "".join(f for f in fragments if f)
    except Exception as e:
        logger.error(f"Failed to fetch comments for PR #{pull_request_id}: {e}")
        return PRProcessResult(pull_request_id=pull_request_id)

    if not content:
        return PRProcessResult(pull_request_id=pull_request_id)

    return PRProcessResult(
        pull_request_id=pull_request_id,
        has_content=True,
        content=_wrap_pr_section(pull_request_id, pr_link, content),
    )


def _chunks(items: list[int], size: int) -> list[list[int]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


async def run_analysis(
    review: ReviewClient,
    progress: ProgressTracker,
    *,
    days_back: int | None = None,
    max_prs: int | None = None,
    output_path: str | Path | None = None,
    batch_size: int | None = None,
    batch_delay: float | None = None,
    classifier_concurrency: int | None = None,
) -> RunSummary:
    """Process recently completed PRs in sequential batches and append findings to the digest.

    1. Reset progress (total = -1 while the PR list is fetched)
    2. List PR ids; stop early if there are none
    3. Ensure the digest has its header (existing content is kept)
    4. Run each batch's PRs concurrently, recording progress per PR
    5. Append the batch's findings in batch order, then pause before the next batch
    """
    days_back = settings.DAYS_BACK if days_back is None else days_back
    max_prs = settings.MAX_PRS if max_prs is None else max_prs
    output_path = Path(settings.OUTPUT_PATH if output_path is None else output_path)
    batch_size = settings.BATCH_SIZE if batch_size is None else batch_size
    batch_delay = settings.BATCH_DELAY_SECONDS if batch_delay is None else batch_delay
    if classifier_concurrency is None:
        classifier_concurrency = settings.CLASSIFIER_CONCURRENCY

    progress.begin_fetch()
    logger.info("Fetching pull request comments...")

    pr_ids = await review.list_completed_prs(days_back, max_prs)
    if not pr_ids:
        logger.info("No pull requests found.")
        progress.set_total(0)
        return RunSummary()

    ensure_header(output_path, days_back)
    progress.set_total(len(pr_ids))
    logger.info(f"Processing {len(pr_ids)} PRs...")

    gate = asyncio.Semaphore(max(1, classifier_concurrency))
    processed = 0
    found = 0

    async def _process_and_record(pull_request_id: int) -> PRProcessResult:
        result = await process_pr(pull_request_id, review, gate)
        progress.record(result)
        return result

    batches = _chunks(pr_ids, max(1, batch_size))
    for index, batch in enumerate(batches):
        results = await asyncio.gather(*[_process_and_record(pr_id) for pr_id in batch])

        append_results(output_path, results)

        for result in results:
            processed += 1
            if result.has_content:
                found += 1
                logger.info(
                    f"✓ Found important comments in PR #{result.pull_request_id} ({found} of {processed} PRs)"
                )
            else:
                logger.info(
                    f"⊘ No important comments in PR #{result.pull_request_id} ({found} of {processed} PRs)"
                )

        if index < len(batches) - 1:
            logger.info(f"Processed {processed}/{len(pr_ids)} PRs, waiting {batch_delay:g} seconds...")
            await asyncio.sleep(batch_delay)

    logger.info(f"Processing complete: found important comments in {found}/{processed} PRs")
    return RunSummary(total=len(pr_ids), processed=processed, found=found)
