from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import httpx

from .errors import FetchError, NetworkError, ReplyError
from .models import PostedReply, RawComments

_API_URL = "https://api.github.com"
_USER_AGENT = "agent-reviews"
_PER_PAGE = 100

logger = logging.getLogger(__name__)


class GitHubClient:
    def __init__(self, token: str, http_client: httpx.Client | None = None) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=httpx.Timeout(30.0), follow_redirects=True)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": _USER_AGENT,
        }

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *args: Any) -> None:
        if self._owns_client:
            self._client.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, headers=self._headers, **kwargs)
        except httpx.RequestError as exc:
            raise NetworkError(f"Request to {url} failed: {exc}") from exc

    def fetch_all_pages(self, url: str) -> list[dict[str, Any]]:
        """Follow ``Link: rel="next"`` headers from ``url`` and concatenate every page."""
        results: list[dict[str, Any]] = []
        next_url: str | None = url

        while next_url:
            logger.debug("GET %s", next_url)
            response = self._request("GET", next_url)
            if not response.is_success:
                raise FetchError(response.status_code, next_url)
            results.extend(response.json())
            next_url = response.links.get("next", {}).get("url")

        return results

    def fetch_pr_comments(self, owner: str, repo: str, pr_number: int) -> RawComments:
        """Fetch inline comments, issue comments and reviews of a PR in parallel."""
        base_url = f"{_API_URL}/repos/{owner}/{repo}"
        urls = (
            f"{base_url}/pulls/{pr_number}/comments?per_page={_PER_PAGE}",
            f"{base_url}/issues/{pr_number}/comments?per_page={_PER_PAGE}",
            f"{base_url}/pulls/{pr_number}/reviews?per_page={_PER_PAGE}",
        )
        with ThreadPoolExecutor(max_workers=len(urls)) as pool:
            futures = [pool.submit(self.fetch_all_pages, url) for url in urls]
        review_comments, issue_comments, reviews = (future.result() for future in futures)

        return RawComments(
            review_comments=review_comments,
            issue_comments=issue_comments,
            reviews=reviews,
        )

    def find_pr_for_branch(self, owner: str, repo: str, branch: str) -> dict[str, Any] | None:
        url = f"{_API_URL}/repos/{owner}/{repo}/pulls"
        response = self._request("GET", url, params={"head": f"{owner}:{branch}", "state": "open"})
        if not response.is_success:
            raise FetchError(response.status_code, url)
        prs = response.json()
        return prs[0] if prs else None

    def reply_to_comment(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        comment_id: int,
        message: str,
    ) -> PostedReply:
        """Reply in the comment's review thread, or as a PR comment quoting its id.

        Issue comments and reviews have no thread, so the replies endpoint
        rejects them and the message is posted on the conversation instead.
        """
        base_url = f"{_API_URL}/repos/{owner}/{repo}"
        response = self._request(
            "POST",
            f"{base_url}/pulls/{pr_number}/comments/{comment_id}/replies",
            json={"body": message},
        )
        if response.is_success:
            return self._posted(response.json(), fallback=False)

        logger.debug(
            "Thread reply to %s returned HTTP %s, posting as PR comment",
            comment_id,
            response.status_code,
        )
        fallback = self._request(
            "POST",
            f"{base_url}/issues/{pr_number}/comments",
            json={"body": f"> Re: comment {comment_id}\n\n{message}"},
        )
        if not fallback.is_success:
            raise ReplyError(fallback.status_code, fallback.text, first_status=response.status_code)
        return self._posted(fallback.json(), fallback=True)

    @staticmethod
    def _posted(node: dict[str, Any], fallback: bool) -> PostedReply:
        return PostedReply(id=node["id"], url=node["html_url"], fallback=fallback)
