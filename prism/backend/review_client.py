"""Azure DevOps pull request API client."""

import base64
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx

from models import CommentThread, PullRequestList, ThreadList

logger = logging.getLogger(__name__)

API_VERSION = "7.1"


def _ado_headers(token: str) -> dict:
    # Basic auth with an empty username and the PAT as password
    encoded = base64.b64encode(f":{token}".encode("ascii")).decode("ascii")
    return {
        "Authorization": f"Basic {encoded}",
        "Accept": "application/json",
    }


class ReviewClient:
    """Lists completed pull requests and fetches their comment threads."""

    def __init__(
        self,
        token: str,
        collection_url: str,
        project: str,
        repository: str,
        *,
        thread_log_dir: str = "",
        timeout: float = 30,
    ) -> None:
        self._token = token
        self.collection_url = collection_url.rstrip("/")
        self.project = project
        self.repository = repository
        self.thread_log_dir = thread_log_dir
        self.timeout = timeout

    @property
    def _api_base(self) -> str:
        return f"{self.collection_url}/{self.project}/_apis/git/repositories/{self.repository}"

    def pr_link(self, pull_request_id: int) -> str:
        return f"{self.collection_url}/{self.project}/_git/{self.repository}/pullrequest/{pull_request_id}"

    async def list_completed_prs(self, days_back: int = 7, max_results: int = 15) -> list[int]:
        """Return ids of PRs completed in the last ``days_back`` days, or [] on API errors."""
        min_time = (datetime.now(timezone.utc) - timedelta(days=days_back)).strftime("%Y-%m-%dT%H:%M:%SZ")
        url = f"{self._api_base}/pullRequests"
        params = {
            "searchCriteria.status": "completed",
            "searchCriteria.minTime": min_time,
            "$top": max_results,
            "api-version": API_VERSION,
        }
        logger.info(f"Fetching PRs from {url} (since {min_time}, top {max_results})")

        async with httpx.AsyncClient(follow_redirects=True) as client:
            resp = await client.get(url, params=params, headers=_ado_headers(self._token), timeout=self.timeout)
            if not resp.is_success:
                logger.error(f"Error fetching pull requests: {resp.status_code} - {resp.text}")
                return []

        pull_requests = PullRequestList.model_validate(resp.json())
        pr_ids = [pr.pull_request_id for pr in pull_requests.value]
        shown = ", ".join(str(i) for i in pr_ids[:10])
        logger.info(f"Found {len(pr_ids)} PRs: {shown}{'...' if len(pr_ids) > 10 else ''}")
        return pr_ids

    async def fetch_threads(self, pull_request_id: int) -> list[CommentThread] | None:
        """Return the PR's comment threads, or None when the API answers with an error."""
        url = f"{self._api_base}/pullRequests/{pull_request_id}/threads"

        async with httpx.AsyncClient(follow_redirects=True) as client:
            resp = await client.get(
                url,
                params={"api-version": API_VERSION},
                headers=_ado_headers(self._token),
                timeout=self.timeout,
            )
            if not resp.is_success:
                logger.warning(f"Error fetching threads for PR #{pull_request_id}: {resp.status_code}")
                return None

        if self.thread_log_dir:
            log_dir = Path(self.thread_log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            (log_dir / f"comments_log_pr_{pull_request_id}.json").write_text(resp.text)

        return ThreadList.model_validate(resp.json()).value
