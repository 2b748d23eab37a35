"""Report pipeline: read, parse, diff, filter, render and publish.

A run is one strictly sequenced pass. Data-shape problems never abort it
(the parser and renderer degrade to empty/zero values); I/O and GitHub API
failures propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from covdelta.adapters.coverage.lcov import LcovAdapter
from covdelta.analyzers.changes import filter_changed
from covdelta.analyzers.diff import diff
from covdelta.reporters.github_comment import GitHubCommentReporter
from covdelta.reporters.markdown import DEFAULT_TITLE, RenderOptions, render, report_signature
from covdelta.reporters.sinks import SinkMode, publish
from covdelta.utils.git import GitHubAPI, get_changed_files
from covdelta.utils.paths import PathNormalizer

if TYPE_CHECKING:
    from covdelta.config import ReportOptions
    from covdelta.models.coverage import ReportDelta
    from covdelta.utils.ci_context import CIContext

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    """Outcome of a report run."""

    PUBLISHED = "published"
    NOT_PUBLISHED = "not_published"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RunResult:
    """Result of :func:`run_report`."""

    status: RunStatus
    """What happened to the report."""

    sink: SinkMode
    """Sink the report was meant for."""

    body: str = ""
    """Rendered report body (empty when skipped)."""

    detail: str = ""
    """Comment URL, output path, or the reason nothing was published."""

    delta: ReportDelta | None = None
    """Comparison the body was rendered from (None when skipped)."""


def read_report(path: Path) -> str | None:
    """Return the text of an LCOV report, or None if it is missing or empty."""
    if not path.is_file():
        return None
    text = path.read_text(encoding="utf-8", errors="replace")
    return text or None


def build_render_options(options: ReportOptions, context: CIContext) -> RenderOptions:
    """Derive presentation options from the run options and CI context."""
    blob_url = ""
    repo = context.repository
    if repo is not None and context.commit_sha:
        blob_url = f"{context.server_url.rstrip('/')}/{repo.full_name}/blob/{context.commit_sha}/"
        if options.path_prefix:
            blob_url += f"{options.path_prefix}/"
    return RenderOptions(
        title=options.title or DEFAULT_TITLE,
        show_branches=options.show_branches,
        show_functions=options.show_functions,
        show_uncovered=options.show_uncovered,
        blob_url=blob_url,
        head=(context.head_ref or "") if context.is_pull_request else "",
        base=(context.base_ref or "") if context.is_pull_request else "",
        changed_only=options.filter_changed_files,
    )


def run_report(
    options: ReportOptions, context: CIContext, *, api: GitHubAPI | None = None
) -> RunResult:
    """Run the report pipeline once.

    Args:
        options: Immutable run options.
        context: CI event context (repository, pull request, commits).
        api: GitHub client; created from the configured token when a step
            needs it and none is given.

    Returns:
        The run result. A missing current report yields ``RunStatus.SKIPPED``.

    Raises:
        GitHubAPIError: If a GitHub call fails.
        SinkError: If the selected sink is unavailable.
        OSError: If an existing report cannot be read or the output written.
    """
    sink = options.sink

    raw = read_report(options.lcov_path)
    if raw is None:
        logger.info("No coverage report found at '%s', exiting...", options.lcov_path)
        return RunResult(status=RunStatus.SKIPPED, sink=sink, detail="no coverage report")

    base_raw = None
    if options.base_path is not None:
        base_raw = read_report(options.base_path)
        if base_raw is None:
            logger.info("No coverage report found at '%s', ignoring...", options.base_path)

    normalizer = PathNormalizer(
        working_dir=options.working_directory,
        root=context.workspace or str(Path.cwd()),
    )
    adapter = LcovAdapter(normalizer)
    current = adapter.parse(raw)
    baseline = adapter.parse(base_raw) if base_raw is not None else None
    delta = diff(current, baseline)

    needs_api = (
        options.filter_changed_files or options.delete_old_comments or sink is SinkMode.COMMENT
    )
    if needs_api and api is None:
        api = GitHubAPI(token=options.github_token or None)

    if options.filter_changed_files and api is not None:
        changed = {normalizer(path) for path in get_changed_files(api, context)}
        delta = filter_changed(delta, changed)

    render_options = build_render_options(options, context)
    body = render(delta, render_options, max_chars=sink.max_chars)

    reporter = GitHubCommentReporter(api) if api is not None else None
    if options.delete_old_comments and reporter is not None:
        reporter.delete_old_comments(context, report_signature(render_options.title))

    outcome = publish(
        sink,
        body,
        context=context,
        save_file=options.save_path,
        comment_reporter=reporter,
    )
    status = RunStatus.PUBLISHED if outcome.published else RunStatus.NOT_PUBLISHED
    return RunResult(status=status, sink=sink, body=body, detail=outcome.detail, delta=delta)
