"""GitHub REST client used by the review pipeline."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, List

import httpx

from reviewbot.errors import ApiError, TransientNetworkError
from reviewbot.logger import get_logger, log_with_context
from reviewbot.retry import DEFAULT_RETRY_POLICY, RetryPolicy, raise_for_response, with_retries

logger = get_logger()

DEFAULT_ACCEPT_HEADER = "application/vnd.github+json"
DEFAULT_API_VERSION = "2022-11-28"
DEFAULT_USER_AGENT = "reviewbot/0.3"

FILES_PER_PAGE = 100
MAX_FILE_PAGES = 50


class GitHubClient:
    """Token-authenticated GitHub client with retry/backoff on every call."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self.retry_policy = retry_policy
        self._client = client or httpx.Client(base_url=self._base_url, timeout=timeout)
        self._owns_client = client is None
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": DEFAULT_ACCEPT_HEADER,
            "X-GitHub-Api-Version": DEFAULT_API_VERSION,
            "User-Agent": user_agent,
        }

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @with_retries
    def request(
        self,
        method: str,
        url: str,
        *,
        params: Dict[str, Any] | None = None,
        json: Any | None = None,
    ) -> Any:
        """Perform one GitHub API call and return the decoded JSON body."""

        try:
            response = self._client.request(method, url, headers=self._headers, params=params, json=json)
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"Network error calling GitHub {method} {url}: {exc}") from exc

        raise_for_response(response, service="GitHub", url=url, policy=self.retry_policy)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                f"GitHub returned invalid JSON for {method} {url}.",
                response.status_code,
                response.text[:200],
            ) from exc

    def get_pull_request(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        log_with_context(logger, repository=f"{owner}/{repo}", pull_number=number).info("Fetching pull request metadata")
        return self.request("GET", f"/repos/{owner}/{repo}/pulls/{number}")

    def list_pull_request_files(
        self,
        owner: str,
        repo: str,
        number: int,
        *,
        per_page: int = FILES_PER_PAGE,
        max_pages: int = MAX_FILE_PAGES,
    ) -> List[Dict[str, Any]]:
        """Collect every changed-file entry, page by page, up to ``max_pages``."""

        ctx_logger = log_with_context(logger, repository=f"{owner}/{repo}", pull_number=number)
        files: List[Dict[str, Any]] = []
        page = 1
        while True:
            batch = self.request(
                "GET",
                f"/repos/{owner}/{repo}/pulls/{number}/files",
                params={"per_page": per_page, "page": page},
            )
            if batch is None:
                batch = []
            if not isinstance(batch, list):
                raise ApiError("Unexpected response while listing pull request files.", 200, batch)
            files.extend(batch)
            ctx_logger.debug(f"Fetched page {page} ({len(batch)} files)")

            if len(batch) < per_page:
                break
            if page >= max_pages:
                ctx_logger.warning(
                    f"Reached pagination limit ({max_pages} pages, {len(files)} files); remaining files are ignored"
                )
                break
            page += 1

        ctx_logger.info(f"Found {len(files)} total files in PR")
        return files

    def get_file_content(self, owner: str, repo: str, path: str, ref: str | None) -> str:
        """Return the decoded file at ``ref``, or ``""`` when it cannot be fetched."""

        ctx_logger = log_with_context(logger, repository=f"{owner}/{repo}", file=path)
        params = {"ref": ref} if ref else None
        try:
            data = self.request("GET", f"/repos/{owner}/{repo}/contents/{path}", params=params)
        except ApiError as exc:
            ctx_logger.warning(f"Could not fetch content for {path}: {exc}")
            return ""

        if not isinstance(data, dict):
            ctx_logger.warning(f"Content endpoint returned a directory listing for {path}")
            return ""
        content = data.get("content") or ""
        if data.get("encoding") == "base64":
            try:
                return base64.b64decode(content).decode("utf-8", errors="replace")
            except (binascii.Error, ValueError) as exc:
                ctx_logger.warning(f"Could not decode content for {path}: {exc}")
                return ""
        return content

    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> Dict[str, Any]:
        log_with_context(logger, repository=f"{owner}/{repo}", pull_number=number).info(
            f"Posting review comment ({len(body)} characters)"
        )
        return self.request("POST", f"/repos/{owner}/{repo}/issues/{number}/comments", json={"body": body})

    def close(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""

        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None
