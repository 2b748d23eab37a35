"""GitHub comment reporter for posting coverage reports.

Posts the rendered report to the pull request conversation (pull_request and
pull_request_target events) or to the pushed commit (push events), and
removes reports left by earlier runs so re-runs never pile up duplicates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from covdelta.utils.git import GitHubAPIError

if TYPE_CHECKING:
    from covdelta.utils.ci_context import CIContext
    from covdelta.utils.git import GitHubAPI, GitHubRepo

logger = logging.getLogger(__name__)


class GitHubCommentReporter:
    """Reporter that publishes coverage reports as GitHub comments."""

    def __init__(self, api: GitHubAPI) -> None:
        """Initialize the GitHub comment reporter.

        Args:
            api: Authenticated GitHub API client.
        """
        self._api = api

    def _require_repo(self, context: CIContext) -> GitHubRepo:
        repo = context.repository
        if repo is None:
            raise GitHubAPIError("Repository unknown; is GITHUB_REPOSITORY set?")
        return repo

    def post_report(self, context: CIContext, body: str) -> dict[str, Any]:
        """Post *body* where the triggering event expects it.

        Args:
            context: Detected CI context.
            body: Rendered report (already within the comment size limit).

        Returns:
            GitHub API response for the created comment, or an empty dict
            when the event has nothing to comment on.

        Raises:
            GitHubAPIError: If posting the comment fails.
        """
        if context.is_pull_request and context.pr_number is not None:
            repo = self._require_repo(context)
            logger.info(
                "Posting coverage report to PR #%d in %s", context.pr_number, repo.full_name
            )
            result = self._api.create_issue_comment(repo, context.pr_number, body)
        elif context.is_push and context.commit_sha:
            repo = self._require_repo(context)
            logger.info("Posting coverage report to commit %s", context.commit_sha[:12])
            result = self._api.create_commit_comment(repo, context.commit_sha, body)
        else:
            logger.warning(
                "Event '%s' has no pull request or commit to comment on", context.event_name
            )
            return {}

        logger.info("Successfully posted comment: %s", result.get("html_url"))
        return result

    def _existing_comments(self, context: CIContext) -> list[dict[str, Any]]:
        repo = self._require_repo(context)
        if context.is_pull_request and context.pr_number is not None:
            return self._api.list_issue_comments(repo, context.pr_number)
        if context.is_push and context.commit_sha:
            return self._api.list_commit_comments(repo, context.commit_sha)
        return []

    def delete_old_comments(self, context: CIContext, marker: str) -> int:
        """Delete earlier reports carrying *marker*.

        Args:
            context: Detected CI context.
            marker: Signature embedded in every report of this kind.

        Returns:
            Number of comments deleted.

        Raises:
            GitHubAPIError: If listing or deleting comments fails.
        """
        if not (context.is_pull_request or context.is_push):
            logger.debug("No comments to prune for event '%s'", context.event_name)
            return 0

        repo = self._require_repo(context)
        deleted = 0
        for comment in self._existing_comments(context):
            if marker not in str(comment.get("body") or ""):
                continue
            if context.is_pull_request:
                self._api.delete_issue_comment(repo, int(comment["id"]))
            else:
                self._api.delete_commit_comment(repo, int(comment["id"]))
            deleted += 1

        logger.info("Deleted %d previous coverage report(s)", deleted)
        return deleted
