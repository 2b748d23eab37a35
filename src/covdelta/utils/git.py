"""GitHub API utilities for covdelta.

Covers the three remote collaborators of a report run: publishing comments,
pruning earlier reports, and listing the files changed by a pull request or
push.
"""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import requests

from covdelta import CovdeltaError

if TYPE_CHECKING:
    from covdelta.utils.ci_context import CIContext

logger = logging.getLogger(__name__)

# GitHub API constants
GITHUB_API_BASE = "https://api.github.com"
_GITHUB_AUTH_ENV_KEY = "GITHUB_" + "TOKEN"
_GITHUB_API_URL_ENV_KEY = "GITHUB_API_URL"
_PER_PAGE = 100
_REQUEST_TIMEOUT = 30


@dataclass(frozen=True)
class GitHubRepo:
    """Repository coordinates on GitHub."""

    owner: str
    """Repository owner (username or organization)."""

    repo: str
    """Repository name."""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class GitHubAPIError(CovdeltaError):
    """Exception raised when GitHub API operations fail."""


class GitHubAPI:
    """Client for the parts of the GitHub REST API a report run needs.

    Handles authentication, pagination and comment management.
    """

    def __init__(self, token: str | None = None, *, api_url: str | None = None) -> None:
        """Initialize the GitHub API client.

        Args:
            token: GitHub token. If not provided, will try to read from the
                GITHUB_TOKEN environment variable.
            api_url: API root; defaults to GITHUB_API_URL or api.github.com.

        Raises:
            GitHubAPIError: If no token is available.
        """
        self._token = token or os.environ.get(_GITHUB_AUTH_ENV_KEY)
        if not self._token:
            raise GitHubAPIError(
                f"GitHub token required. Set {_GITHUB_AUTH_ENV_KEY} environment variable "
                "or pass token to constructor."
            )
        self._api_url = (
            api_url or os.environ.get(_GITHUB_API_URL_ENV_KEY) or GITHUB_API_BASE
        ).rstrip("/")

        self._session_headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _repo_url(self, repo: GitHubRepo, path: str) -> str:
        return f"{self._api_url}/repos/{repo.owner}/{repo.repo}/{path}"

    # ── Issue (pull request) comments ────────────────────────────

    def create_issue_comment(
        self, repo: GitHubRepo, issue_number: int, body: str
    ) -> dict[str, Any]:
        """Create a comment on an issue or pull request.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        url = self._repo_url(repo, f"issues/{issue_number}/comments")
        logger.info("Creating comment on #%d in %s", issue_number, repo.full_name)
        result: dict[str, Any] = self._post(url, {"body": body})
        return result

    def list_issue_comments(self, repo: GitHubRepo, issue_number: int) -> list[dict[str, Any]]:
        """Return every comment on an issue or pull request."""
        return self._get_paginated(self._repo_url(repo, f"issues/{issue_number}/comments"))

    def delete_issue_comment(self, repo: GitHubRepo, comment_id: int) -> None:
        """Delete an issue or pull request comment."""
        logger.info("Deleting comment %d in %s", comment_id, repo.full_name)
        self._delete(self._repo_url(repo, f"issues/comments/{comment_id}"))

    # ── Commit comments ──────────────────────────────────────────

    def create_commit_comment(self, repo: GitHubRepo, commit_sha: str, body: str) -> dict[str, Any]:
        """Create a comment on a commit.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        url = self._repo_url(repo, f"commits/{commit_sha}/comments")
        logger.info("Creating comment on commit %s in %s", commit_sha[:12], repo.full_name)
        result: dict[str, Any] = self._post(url, {"body": body})
        return result

    def list_commit_comments(self, repo: GitHubRepo, commit_sha: str) -> list[dict[str, Any]]:
        """Return every comment on a commit."""
        return self._get_paginated(self._repo_url(repo, f"commits/{commit_sha}/comments"))

    def delete_commit_comment(self, repo: GitHubRepo, comment_id: int) -> None:
        """Delete a commit comment."""
        logger.info("Deleting commit comment %d in %s", comment_id, repo.full_name)
        self._delete(self._repo_url(repo, f"comments/{comment_id}"))

    # ── Changed files ────────────────────────────────────────────

    def list_pull_request_files(self, repo: GitHubRepo, pr_number: int) -> list[str]:
        """Return the paths of all files touched by a pull request."""
        entries = self._get_paginated(self._repo_url(repo, f"pulls/{pr_number}/files"))
        return [str(entry["filename"]) for entry in entries if "filename" in entry]

    def compare_commits(self, repo: GitHubRepo, base: str, head: str) -> list[str]:
        """Return the paths of files changed between two commits.

        The compare endpoint pages its ``files`` list; pages are fetched until
        one comes back short.
        """
        url = self._repo_url(repo, f"compare/{base}...{head}")
        paths: list[str] = []
        page = 1
        while True:
            data = self._get(url, {"per_page": _PER_PAGE, "page": page})
            files = data.get("files", []) if isinstance(data, dict) else []
            paths.extend(str(entry["filename"]) for entry in files if "filename" in entry)
            if len(files) < _PER_PAGE:
                return paths
            page += 1

    # ── Transport ────────────────────────────────────────────────

    def _get(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """Make a GET request to the GitHub API.

        Raises:
            GitHubAPIError: If the request fails.
        """
        try:
            response = requests.get(
                url, headers=self._session_headers, params=params, timeout=_REQUEST_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            raise GitHubAPIError(f"GET request failed: {exc}") from exc

    def _get_paginated(self, url: str) -> list[dict[str, Any]]:
        """GET every page of a list endpoint."""
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            batch = self._get(url, {"per_page": _PER_PAGE, "page": page})
            if not isinstance(batch, list):
                raise GitHubAPIError(f"Expected a list response from {url}")
            items.extend(batch)
            if len(batch) < _PER_PAGE:
                return items
            page += 1

    def _post(self, url: str, data: dict[str, Any]) -> Any:
        """Make a POST request to the GitHub API.

        Raises:
            GitHubAPIError: If the request fails.
        """
        try:
            response = requests.post(
                url, json=data, headers=self._session_headers, timeout=_REQUEST_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            raise GitHubAPIError(f"POST request failed: {exc}") from exc

    def _delete(self, url: str) -> None:
        """Make a DELETE request to the GitHub API.

        Raises:
            GitHubAPIError: If the request fails.
        """
        try:
            response = requests.delete(url, headers=self._session_headers, timeout=_REQUEST_TIMEOUT)
            response.raise_for_status()
        except Exception as exc:
            raise GitHubAPIError(f"DELETE request failed: {exc}") from exc


def get_changed_files(api: GitHubAPI, context: CIContext) -> set[str]:
    """Return repository-relative paths changed by the revision under test.

    Pull-request events list the pull request's files; push events compare the
    ``before`` and ``after`` commits. Any other event yields an empty set.

    Raises:
        GitHubAPIError: If the lookup fails.
    """
    repo = context.repository
    if repo is None:
        logger.warning("Repository unknown; cannot look up changed files")
        return set()
    if context.is_pull_request and context.pr_number is not None:
        files = api.list_pull_request_files(repo, context.pr_number)
    elif context.is_push and context.base_commit and context.commit_sha:
        files = api.compare_commits(repo, context.base_commit, context.commit_sha)
    else:
        logger.warning("Event '%s' has no changed-files lookup", context.event_name)
        return set()
    logger.info("Found %d changed files", len(files))
    return set(files)


def compute_comment_marker(prefix: str) -> str:
    """Generate a unique marker for a GitHub comment.

    This creates an HTML comment marker that can be used to identify
    earlier comments of the same kind.

    Args:
        prefix: Prefix for the marker (e.g., "covdelta:coverage-report").

    Returns:
        HTML comment marker string.
    """
    hash_str = hashlib.sha256(prefix.encode()).hexdigest()[:8]
    return f"<!-- {prefix}:{hash_str} -->"
