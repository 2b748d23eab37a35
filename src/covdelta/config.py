"""Configuration for a report run.

Options are layered, lowest precedence first:

1. built-in defaults,
2. an optional ``.covdelta.yml`` in the project root,
3. GitHub Action inputs (``INPUT_<NAME>`` environment variables),
4. explicit overrides (command-line flags).

The result is a frozen :class:`ReportOptions` built once at startup and
passed to every component.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from covdelta.reporters.sinks import SinkMode
from covdelta.utils.paths import normalize_prefix

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".covdelta.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")
_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}

DEFAULT_WORKING_DIRECTORY = "./"
DEFAULT_LCOV_FILE = "./coverage/lcov.info"
DEFAULT_SAVE_FILE = "./coverage/coverage-report.md"
DEFAULT_POST_TO = "comment"

OPTION_KEYS = (
    "working-directory",
    "lcov-file",
    "lcov-base",
    "save-file",
    "filter-changed-files",
    "delete-old-comments",
    "post-to",
    "title",
    "github-token",
    "show-branches",
    "show-functions",
    "show-uncovered",
)


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _normalize_key(key: Any) -> str:
    return str(key).strip().lower().replace("_", "-")


def _parse_bool(value: Any, *, key: str, default: bool = False) -> bool:
    """Parse a boolean option the way action inputs spell them."""
    if isinstance(value, bool):
        return value
    text = "" if value is None else str(value).strip().lower()
    if not text:
        return default
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    logger.warning("Invalid boolean for %s: %r (using %s)", key, value, default)
    return default


@dataclass(frozen=True)
class ReportOptions:
    """Immutable options of one report run."""

    working_directory: str = DEFAULT_WORKING_DIRECTORY
    """Directory the coverage was produced in; stripped from reported paths."""

    lcov_file: str = DEFAULT_LCOV_FILE
    """Current LCOV report, relative to the working directory."""

    lcov_base: str = ""
    """Baseline LCOV report (used as given); empty disables deltas."""

    save_file: str = DEFAULT_SAVE_FILE
    """Output path of the ``file`` sink, relative to the working directory."""

    filter_changed_files: bool = False
    """Only list files changed by the pull request or push."""

    delete_old_comments: bool = False
    """Delete earlier reports with the same title before posting."""

    post_to: str = DEFAULT_POST_TO
    """Raw ``post-to`` value: comment, job-summary or file."""

    title: str = ""
    """Report heading; empty uses the default heading."""

    github_token: str = ""
    """Token for the GitHub API; falls back to GITHUB_TOKEN."""

    show_branches: bool = True
    """Include the branch coverage column."""

    show_functions: bool = True
    """Include the function coverage column."""

    show_uncovered: bool = True
    """Include the uncovered lines column."""

    @property
    def sink(self) -> SinkMode:
        return SinkMode.from_value(self.post_to)

    @property
    def lcov_path(self) -> Path:
        return Path(self.working_directory) / self.lcov_file

    @property
    def base_path(self) -> Path | None:
        return Path(self.lcov_base) if self.lcov_base else None

    @property
    def save_path(self) -> Path:
        return Path(self.working_directory) / self.save_file

    @property
    def path_prefix(self) -> str:
        """Working directory as a repository-relative path prefix."""
        return normalize_prefix(self.working_directory)


def _load_yaml(root: Path) -> dict[str, Any]:
    config_path = root / CONFIG_FILE_NAME
    if not config_path.is_file():
        return {}
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if not isinstance(parsed, dict):
        logger.warning("Ignoring %s: expected a mapping at the top level", config_path)
        return {}
    result: dict[str, Any] = {}
    for key, value in parsed.items():
        result[_normalize_key(key)] = _resolve_env_vars(value) if isinstance(value, str) else value
    return result


def _load_action_inputs() -> dict[str, Any]:
    """Read GitHub Action inputs (``INPUT_LCOV-FILE`` or ``INPUT_LCOV_FILE``)."""
    result: dict[str, Any] = {}
    for key in OPTION_KEYS:
        for env_name in (f"INPUT_{key.upper()}", f"INPUT_{key.upper().replace('-', '_')}"):
            value = os.environ.get(env_name)
            if value:
                result[key] = value
                break
    return result


def load_config(
    root: str | Path = ".", overrides: Mapping[str, Any] | None = None
) -> ReportOptions:
    """Build :class:`ReportOptions` from defaults, file, environment and overrides.

    Args:
        root: Directory holding the optional ``.covdelta.yml``.
        overrides: Highest-precedence values keyed like the action inputs;
            ``None`` values are ignored.

    Returns:
        The merged, immutable options.
    """
    raw: dict[str, Any] = {}
    raw.update(_load_yaml(Path(root)))
    raw.update(_load_action_inputs())
    for key, value in (overrides or {}).items():
        if value is not None:
            raw[_normalize_key(key)] = value

    unknown = sorted(set(raw) - set(OPTION_KEYS))
    if unknown:
        logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))

    return ReportOptions(
        working_directory=str(raw.get("working-directory") or DEFAULT_WORKING_DIRECTORY),
        lcov_file=str(raw.get("lcov-file") or DEFAULT_LCOV_FILE),
        lcov_base=str(raw.get("lcov-base") or ""),
        save_file=str(raw.get("save-file") or DEFAULT_SAVE_FILE),
        filter_changed_files=_parse_bool(
            raw.get("filter-changed-files"), key="filter-changed-files"
        ),
        delete_old_comments=_parse_bool(raw.get("delete-old-comments"), key="delete-old-comments"),
        post_to=str(raw.get("post-to") or DEFAULT_POST_TO).strip().lower(),
        title=str(raw.get("title") or ""),
        github_token=str(raw.get("github-token") or ""),
        show_branches=_parse_bool(raw.get("show-branches"), key="show-branches", default=True),
        show_functions=_parse_bool(raw.get("show-functions"), key="show-functions", default=True),
        show_uncovered=_parse_bool(raw.get("show-uncovered"), key="show-uncovered", default=True),
    )


def validate_config(options: ReportOptions) -> list[str]:
    """Validate the options and return a list of problems.

    An unknown ``post-to`` value is reported but is not fatal: the run
    completes without publishing.
    """
    errors: list[str] = []

    if not options.lcov_file.strip():
        errors.append("lcov-file must not be empty")

    if options.sink is SinkMode.UNKNOWN:
        errors.append(f"Unknown post-to value: '{options.post_to}'")

    if options.sink is SinkMode.FILE and not options.save_file.strip():
        errors.append("save-file is required when post-to is 'file'")

    return errors
