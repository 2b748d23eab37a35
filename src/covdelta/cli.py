"""covdelta CLI: top-level command group."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from rich.logging import RichHandler

from covdelta import CovdeltaError, __version__
from covdelta.adapters.coverage.lcov import LcovAdapter
from covdelta.analyzers.diff import diff
from covdelta.config import load_config, validate_config
from covdelta.pipeline import RunStatus, run_report
from covdelta.reporters.markdown import DEFAULT_TITLE, RenderOptions, render
from covdelta.reporters.terminal import console, reporter
from covdelta.utils.ci_context import detect_ci_context
from covdelta.utils.paths import PathNormalizer

logger = logging.getLogger(__name__)


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _annotate(level: str, message: str) -> None:
    """Emit a GitHub Actions workflow command (``::error::`` / ``::warning::``)."""
    if os.environ.get("GITHUB_ACTIONS") == "true":
        click.echo(f"::{level}::{message}")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="covdelta")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """covdelta: LCOV coverage diff reports for pull requests."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose=verbose)


@cli.command("report")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Directory holding the optional .covdelta.yml.",
)
@click.option("--working-directory", default=None, help="Directory the coverage was produced in.")
@click.option(
    "--lcov-file", default=None, help="Current LCOV report, relative to the working directory."
)
@click.option("--lcov-base", default=None, help="Baseline LCOV report to compare against.")
@click.option("--save-file", default=None, help="Output path for --post-to file.")
@click.option(
    "--filter-changed-files",
    is_flag=True,
    help="Only list files changed by the pull request or push.",
)
@click.option(
    "--delete-old-comments",
    is_flag=True,
    help="Delete earlier reports with the same title before posting.",
)
@click.option(
    "--post-to",
    default=None,
    help="Where to publish the report: comment, job-summary or file.",
)
@click.option("--title", default=None, help="Report heading.")
@click.option("--github-token", default=None, help="GitHub token (defaults to GITHUB_TOKEN).")
@click.option("--no-branches", is_flag=True, help="Hide the branch coverage column.")
@click.option("--no-functions", is_flag=True, help="Hide the function coverage column.")
@click.option("--no-uncovered", is_flag=True, help="Hide the uncovered lines column.")
def report(path: str, **kwargs: Any) -> None:
    """Build a coverage report and publish it.

    Options not given on the command line come from GitHub Action inputs
    (INPUT_*), then from .covdelta.yml, then from built-in defaults.
    """
    overrides: dict[str, Any] = {
        "working-directory": kwargs["working_directory"],
        "lcov-file": kwargs["lcov_file"],
        "lcov-base": kwargs["lcov_base"],
        "save-file": kwargs["save_file"],
        "filter-changed-files": True if kwargs["filter_changed_files"] else None,
        "delete-old-comments": True if kwargs["delete_old_comments"] else None,
        "post-to": kwargs["post_to"],
        "title": kwargs["title"],
        "github-token": kwargs["github_token"],
        "show-branches": False if kwargs["no_branches"] else None,
        "show-functions": False if kwargs["no_functions"] else None,
        "show-uncovered": False if kwargs["no_uncovered"] else None,
    }

    try:
        options = load_config(path, overrides)
        for problem in validate_config(options):
            reporter.print_warning(problem)
            _annotate("warning", problem)

        result = run_report(options, detect_ci_context())
    except (CovdeltaError, OSError, yaml.YAMLError) as exc:
        logger.debug("Report run failed", exc_info=True)
        reporter.print_error(str(exc))
        _annotate("error", str(exc))
        sys.exit(1)

    if result.status is RunStatus.SKIPPED:
        reporter.print_info(f"Nothing to report: {result.detail}")
        return

    if result.delta is not None:
        reporter.print_coverage_summary(result.delta)

    if result.status is RunStatus.PUBLISHED:
        reporter.print_success(
            f"Published coverage report ({result.sink.value}): {result.detail}"
        )
    else:
        reporter.print_warning(f"Coverage report was not published: {result.detail}")


@cli.command("render")
@click.argument("lcov_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--base",
    "base_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Baseline LCOV report to compare against.",
)
@click.option("--working-directory", default="./", help="Prefix stripped from reported paths.")
@click.option("--title", default=DEFAULT_TITLE, help="Report heading.")
@click.option(
    "--max-chars",
    default=None,
    type=click.IntRange(min=1),
    help="Truncate the report to this many characters.",
)
@click.option("--no-branches", is_flag=True, help="Hide the branch coverage column.")
@click.option("--no-functions", is_flag=True, help="Hide the function coverage column.")
@click.option("--no-uncovered", is_flag=True, help="Hide the uncovered lines column.")
def render_command(
    lcov_file: str,
    base_file: str | None,
    working_directory: str,
    title: str,
    max_chars: int | None,
    *,
    no_branches: bool,
    no_functions: bool,
    no_uncovered: bool,
) -> None:
    """Render the Markdown report for LCOV_FILE to stdout without publishing it."""
    normalizer = PathNormalizer(
        working_dir=working_directory,
        root=os.environ.get("GITHUB_WORKSPACE") or str(Path.cwd()),
    )
    adapter = LcovAdapter(normalizer)
    current = adapter.parse_file(Path(lcov_file))
    baseline = adapter.parse_file(Path(base_file)) if base_file else None

    options = RenderOptions(
        title=title,
        show_branches=not no_branches,
        show_functions=not no_functions,
        show_uncovered=not no_uncovered,
    )
    click.echo(render(diff(current, baseline), options, max_chars=max_chars), nl=False)

