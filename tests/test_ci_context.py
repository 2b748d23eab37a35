"""Tests for CI context detection."""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

from covdelta.utils.ci_context import CIContext, _parse_int, detect_ci_context
from covdelta.utils.git import GitHubRepo


def _write_event(tmp_path: Path, payload: object) -> str:
    event_path = tmp_path / "event.json"
    event_path.write_text(json.dumps(payload), encoding="utf-8")
    return str(event_path)


def test_detect_pull_request_context(tmp_path: Path) -> None:
    """Test GitHub Actions PR context detection from the event payload."""
    payload = {
        "pull_request": {
            "number": 123,
            "head": {"sha": "head-sha", "ref": "feature/test"},
            "base": {"sha": "base-sha", "ref": "main"},
        },
        "repository": {"full_name": "owner/repo"},
    }
    env = {
        "GITHUB_ACTIONS": "true",
        "GITHUB_EVENT_NAME": "pull_request",
        "GITHUB_EVENT_PATH": _write_event(tmp_path, payload),
        "GITHUB_SHA": "merge-sha",
        "GITHUB_WORKSPACE": "/home/runner/work/repo/repo",
    }

    with patch.dict(os.environ, env, clear=True):
        context = detect_ci_context()

    assert context.is_ci
    assert context.is_pull_request
    assert not context.is_push
    assert context.pr_number == 123
    assert context.commit_sha == "head-sha"
    assert context.base_commit == "base-sha"
    assert context.head_ref == "feature/test"
    assert context.base_ref == "main"
    assert context.repository == GitHubRepo(owner="owner", repo="repo")
    assert context.workspace == "/home/runner/work/repo/repo"
    assert context.server_url == "https://github.com"


def test_detect_pull_request_target_context(tmp_path: Path) -> None:
    payload = {"pull_request": {"number": 5, "head": {"sha": "h"}, "base": {"sha": "b"}}}
    env = {
        "GITHUB_ACTIONS": "true",
        "GITHUB_EVENT_NAME": "pull_request_target",
        "GITHUB_EVENT_PATH": _write_event(tmp_path, payload),
        "GITHUB_REPOSITORY": "owner/repo",
    }

    with patch.dict(os.environ, env, clear=True):
        context = detect_ci_context()

    assert context.is_pull_request
    assert context.pr_number == 5
    assert context.repo_owner == "owner"
    assert context.repo_name == "repo"


def test_detect_push_context(tmp_path: Path) -> None:
    """Test GitHub Actions push context."""
    payload = {"before": "old-sha", "after": "new-sha"}
    env = {
        "GITHUB_ACTIONS": "true",
        "GITHUB_EVENT_NAME": "push",
        "GITHUB_EVENT_PATH": _write_event(tmp_path, payload),
        "GITHUB_REF": "refs/heads/main",
        "GITHUB_REPOSITORY": "owner/repo",
        "GITHUB_SERVER_URL": "https://ghe.example.com",
    }

    with patch.dict(os.environ, env, clear=True):
        context = detect_ci_context()

    assert context.is_push
    assert not context.is_pull_request
    assert context.pr_number is None
    assert context.commit_sha == "new-sha"
    assert context.base_commit == "old-sha"
    assert context.head_ref == "refs/heads/main"
    assert context.server_url == "https://ghe.example.com"


def test_detect_other_event_uses_github_sha() -> None:
    env = {
        "GITHUB_ACTIONS": "true",
        "GITHUB_EVENT_NAME": "workflow_dispatch",
        "GITHUB_SHA": "abc",
        "GITHUB_REPOSITORY": "owner/repo",
    }

    with patch.dict(os.environ, env, clear=True):
        context = detect_ci_context()

    assert context.commit_sha == "abc"
    assert not context.is_pull_request
    assert not context.is_push


def test_unreadable_event_payload_is_ignored(tmp_path: Path) -> None:
    broken = tmp_path / "event.json"
    broken.write_text("{not json", encoding="utf-8")
    env = {
        "GITHUB_ACTIONS": "true",
        "GITHUB_EVENT_NAME": "pull_request",
        "GITHUB_EVENT_PATH": str(broken),
        "GITHUB_REPOSITORY": "owner/repo",
    }

    with patch.dict(os.environ, env, clear=True):
        context = detect_ci_context()

    assert context.is_pull_request
    assert context.pr_number is None


def test_malformed_repository_is_unknown() -> None:
    env = {"GITHUB_ACTIONS": "true", "GITHUB_REPOSITORY": "not-a-repo"}

    with patch.dict(os.environ, env, clear=True):
        context = detect_ci_context()

    assert context.repository is None


def test_outside_github_actions() -> None:
    with patch.dict(os.environ, {"GITHUB_WORKSPACE": "/ws"}, clear=True):
        context = detect_ci_context()

    assert context == CIContext(workspace="/ws")
    assert not context.is_ci
    assert context.repository is None


def test_parse_int() -> None:
    assert _parse_int("42") == 42
    assert _parse_int(7) == 7
    assert _parse_int("") is None
    assert _parse_int(None) is None
    assert _parse_int("abc") is None
