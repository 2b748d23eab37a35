"""Report sinks: where a rendered report is delivered."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from covdelta import CovdeltaError

if TYPE_CHECKING:
    from covdelta.reporters.github_comment import GitHubCommentReporter
    from covdelta.utils.ci_context import CIContext

logger = logging.getLogger(__name__)

MAX_COMMENT_CHARS = 65536
MAX_JOB_SUMMARY_CHARS = 1000 * 1024

_STEP_SUMMARY_ENV_KEY = "GITHUB_STEP_SUMMARY"


class SinkError(CovdeltaError):
    """Raised when a report cannot be delivered to its sink."""


class SinkMode(Enum):
    """Destination of the rendered report (the ``post-to`` setting)."""

    COMMENT = "comment"
    JOB_SUMMARY = "job-summary"
    FILE = "file"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: str) -> SinkMode:
        """Map a ``post-to`` value to a sink; unrecognized values map to UNKNOWN."""
        normalized = value.strip().lower()
        for mode in cls:
            if mode is not cls.UNKNOWN and mode.value == normalized:
                return mode
        return cls.UNKNOWN

    @property
    def max_chars(self) -> int | None:
        """Character budget of the sink; None means unlimited."""
        if self is SinkMode.COMMENT:
            return MAX_COMMENT_CHARS
        if self is SinkMode.JOB_SUMMARY:
            return MAX_JOB_SUMMARY_CHARS
        return None


@dataclass(frozen=True)
class PublishOutcome:
    """Result of delivering a report."""

    published: bool
    """Whether the report reached a sink."""

    detail: str = ""
    """Where the report went (URL or path), or why it did not."""


def write_job_summary(body: str, summary_path: str | None = None) -> Path:
    """Append *body* to the GitHub Actions job summary file.

    Raises:
        SinkError: If no job summary file is available.
    """
    target = summary_path or os.environ.get(_STEP_SUMMARY_ENV_KEY)
    if not target:
        raise SinkError(
            f"{_STEP_SUMMARY_ENV_KEY} is not set; job summaries are only available "
            "inside GitHub Actions."
        )
    path = Path(target)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(body)
    logger.info("Appended coverage report to job summary %s", path)
    return path


def write_report_file(body: str, save_file: Path) -> Path:
    """Write *body* verbatim to *save_file*, creating parent directories."""
    save_file.parent.mkdir(parents=True, exist_ok=True)
    save_file.write_text(body, encoding="utf-8")
    logger.info("Wrote coverage report to %s", save_file)
    return save_file


def publish(
    mode: SinkMode,
    body: str,
    *,
    context: CIContext,
    save_file: Path,
    comment_reporter: GitHubCommentReporter | None = None,
) -> PublishOutcome:
    """Deliver *body* to the sink selected by *mode*.

    The body is expected to already fit ``mode.max_chars``.

    Raises:
        SinkError: If the selected sink is unavailable.
        GitHubAPIError: If posting a comment fails.
    """
    if mode is SinkMode.COMMENT:
        if comment_reporter is None:
            raise SinkError("Posting a comment requires a GitHub token.")
        result = comment_reporter.post_report(context, body)
        if not result:
            return PublishOutcome(published=False, detail="event has no comment target")
        return PublishOutcome(published=True, detail=str(result.get("html_url", "")))
    if mode is SinkMode.JOB_SUMMARY:
        return PublishOutcome(published=True, detail=str(write_job_summary(body)))
    if mode is SinkMode.FILE:
        return PublishOutcome(published=True, detail=str(write_report_file(body, save_file)))
    if mode is SinkMode.UNKNOWN:
        logger.warning("Unknown post-to value; the report was not published")
        return PublishOutcome(published=False, detail="unknown post-to value")
    raise AssertionError(f"Unhandled sink mode: {mode}")
