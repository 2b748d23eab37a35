"""Reporters for rendering and publishing coverage reports."""

from __future__ import annotations

from covdelta.reporters.github_comment import GitHubCommentReporter
from covdelta.reporters.markdown import RenderOptions, render, report_signature
from covdelta.reporters.sinks import PublishOutcome, SinkMode, publish

__all__ = [
    "GitHubCommentReporter",
    "PublishOutcome",
    "RenderOptions",
    "SinkMode",
    "publish",
    "render",
    "report_signature",
]
