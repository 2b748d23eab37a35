"""CI event context detection for GitHub Actions."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from covdelta.utils.git import GitHubRepo

logger = logging.getLogger(__name__)

# Expected number of parts when splitting "owner/repo"
_OWNER_REPO_PARTS = 2

PULL_REQUEST_EVENTS = frozenset({"pull_request", "pull_request_target"})
PUSH_EVENT = "push"


@dataclass(frozen=True)
class CIContext:
    """Detected CI execution context of a report run."""

    is_ci: bool = False
    """Running in GitHub Actions."""

    event_name: str = ""
    """Triggering event (pull_request, pull_request_target, push, ...)."""

    repo_owner: str | None = None
    """Repository owner (org or user)."""

    repo_name: str | None = None
    """Repository name."""

    pr_number: int | None = None
    """Pull request number if in a pull request context."""

    commit_sha: str | None = None
    """Commit under test (PR head SHA, or the pushed ``after`` SHA)."""

    base_commit: str | None = None
    """Commit compared against (PR base SHA, or the pushed ``before`` SHA)."""

    head_ref: str | None = None
    """Head branch/ref name."""

    base_ref: str | None = None
    """Base branch name (pull requests only)."""

    workspace: str = ""
    """Absolute checkout directory (GITHUB_WORKSPACE)."""

    server_url: str = "https://github.com"
    """Web root of the GitHub instance (GITHUB_SERVER_URL)."""

    @property
    def is_pull_request(self) -> bool:
        return self.event_name in PULL_REQUEST_EVENTS

    @property
    def is_push(self) -> bool:
        return self.event_name == PUSH_EVENT

    @property
    def repository(self) -> GitHubRepo | None:
        """Return the repository coordinates, if known."""
        if not self.repo_owner or not self.repo_name:
            return None
        return GitHubRepo(owner=self.repo_owner, repo=self.repo_name)


def _parse_int(value: Any) -> int | None:
    """Parse a value to int, return None if invalid."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _load_event_payload(event_path: str | None) -> dict[str, Any]:
    """Read the webhook payload GitHub Actions stores at GITHUB_EVENT_PATH."""
    if not event_path:
        return {}
    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read event payload %s: %s", event_path, e)
        return {}
    return payload if isinstance(payload, dict) else {}


def _split_repository(full_name: str) -> tuple[str | None, str | None]:
    parts = full_name.split("/") if full_name else []
    if len(parts) != _OWNER_REPO_PARTS:
        return None, None
    return parts[0], parts[1]


def detect_ci_context() -> CIContext:
    """Detect the GitHub Actions event context from the environment.

    Pull-request events take head/base SHAs and refs from the event payload;
    push events take the ``before``/``after`` SHAs and GITHUB_REF. Outside
    GitHub Actions an empty context is returned.

    Returns:
        CIContext with detected values.
    """
    if os.getenv("GITHUB_ACTIONS") != "true":
        return CIContext(workspace=os.getenv("GITHUB_WORKSPACE", ""))

    event_name = os.getenv("GITHUB_EVENT_NAME", "")
    payload = _load_event_payload(os.getenv("GITHUB_EVENT_PATH"))

    repo_full = os.getenv("GITHUB_REPOSITORY", "")
    payload_repo = payload.get("repository")
    if isinstance(payload_repo, dict) and payload_repo.get("full_name"):
        repo_full = str(payload_repo["full_name"])
    repo_owner, repo_name = _split_repository(repo_full)

    pr_number = None
    commit_sha = os.getenv("GITHUB_SHA")
    base_commit = None
    head_ref = None
    base_ref = None

    pull_request = payload.get("pull_request")
    if event_name in PULL_REQUEST_EVENTS and isinstance(pull_request, dict):
        head = pull_request.get("head") or {}
        base = pull_request.get("base") or {}
        pr_number = _parse_int(pull_request.get("number"))
        commit_sha = head.get("sha") or commit_sha
        base_commit = base.get("sha")
        head_ref = head.get("ref")
        base_ref = base.get("ref")
    elif event_name == PUSH_EVENT:
        commit_sha = payload.get("after") or commit_sha
        base_commit = payload.get("before")
        head_ref = os.getenv("GITHUB_REF")

    return CIContext(
        is_ci=True,
        event_name=event_name,
        repo_owner=repo_owner,
        repo_name=repo_name,
        pr_number=pr_number,
        commit_sha=commit_sha,
        base_commit=base_commit,
        head_ref=head_ref,
        base_ref=base_ref,
        workspace=os.getenv("GITHUB_WORKSPACE", ""),
        server_url=os.getenv("GITHUB_SERVER_URL") or "https://github.com",
    )
