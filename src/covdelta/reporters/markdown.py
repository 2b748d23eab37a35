"""Markdown renderer for coverage diff reports.

Produces the comment/summary body: a hidden signature, a heading, a
whole-report summary line and a table with one row per file. When a
character budget is given, whole rows are dropped from the end of the
(already significance-ordered) table and an omitted-files marker is added,
so the body never exceeds the budget and the table is never cut mid-row.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote

from covdelta.models.coverage import Metric
from covdelta.utils.git import compute_comment_marker

if TYPE_CHECKING:
    from covdelta.models.coverage import CoverageCounts, FileDelta, ReportDelta

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Coverage Report"

_MISSING = "—"
_MAX_UNCOVERED_RANGES = 10
_SLUG_RE = re.compile(r"[^a-z0-9_.]+")

_METRIC_LABELS = {
    Metric.LINES: "Lines",
    Metric.BRANCHES: "Branches",
    Metric.FUNCTIONS: "Functions",
}


@dataclass(frozen=True)
class RenderOptions:
    """Presentation options for a rendered report."""

    title: str = DEFAULT_TITLE
    """Report heading; also keys the signature used to find earlier reports."""

    show_branches: bool = True
    """Include the branch coverage column."""

    show_functions: bool = True
    """Include the function coverage column."""

    show_uncovered: bool = True
    """Include the uncovered line ranges column."""

    blob_url: str = ""
    """URL prefix for linking uncovered lines, e.g. ``https://github.com/o/r/blob/<sha>/``."""

    head: str = ""
    """Head ref name, shown in the merge summary line."""

    base: str = ""
    """Base ref name, shown in the merge summary line."""

    changed_only: bool = False
    """Rows were restricted to changed files (affects the empty-table message)."""

    @property
    def metrics(self) -> list[Metric]:
        """Return the metrics shown in the summary line and table."""
        metrics = [Metric.LINES]
        if self.show_branches:
            metrics.append(Metric.BRANCHES)
        if self.show_functions:
            metrics.append(Metric.FUNCTIONS)
        return metrics


def report_signature(title: str) -> str:
    """Return the hidden HTML marker identifying reports with this *title*."""
    slug = _SLUG_RE.sub("-", title.lower()).strip("-") or "report"
    return compute_comment_marker(f"covdelta:{slug}")


# ── Cell formatting ──────────────────────────────────────────────


def _format_percentage(value: float) -> str:
    return f"{value:.2f}%"


def _format_delta(delta: float) -> str:
    """Format a percentage-point delta with a direction indicator."""
    if delta > 0:
        return f"+{delta:.2f}% 📈"
    if delta < 0:
        return f"{delta:.2f}% 📉"
    return "0.00%"


def _format_metric(counts: CoverageCounts | None, metric: Metric) -> str:
    if counts is None:
        return _MISSING
    return _format_percentage(counts.percentage(metric))


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def collapse_ranges(lines: tuple[int, ...] | list[int]) -> list[tuple[int, int]]:
    """Collapse sorted line numbers into inclusive ``(start, end)`` ranges."""
    ranges: list[tuple[int, int]] = []
    for line in sorted(set(lines)):
        if ranges and line == ranges[-1][1] + 1:
            ranges[-1] = (ranges[-1][0], line)
        else:
            ranges.append((line, line))
    return ranges


def _format_uncovered(row: FileDelta, blob_url: str) -> str:
    ranges = collapse_ranges(row.uncovered_lines)
    if not ranges:
        return ""
    cells: list[str] = []
    for start, end in ranges[:_MAX_UNCOVERED_RANGES]:
        label = str(start) if start == end else f"{start}-{end}"
        if blob_url:
            anchor = f"L{start}" if start == end else f"L{start}-L{end}"
            cells.append(f"[{label}]({blob_url}{quote(row.path)}#{anchor})")
        else:
            cells.append(label)
    if len(ranges) > _MAX_UNCOVERED_RANGES:
        cells.append("…")
    return _escape_cell(", ".join(cells))


def _format_path(row: FileDelta, *, has_baseline: bool) -> str:
    name = f"`{_escape_cell(row.path)}`"
    if row.is_removed:
        return f"~~{name}~~"
    if has_baseline and row.is_new:
        return f"{name} 🆕"
    return name


def _format_line_delta(row: FileDelta) -> str:
    if row.is_removed and row.baseline is not None:
        return f"removed (was {_format_percentage(row.baseline.line_percentage)})"
    delta = row.line_delta
    if delta is None:
        return "new"
    return _format_delta(delta)


# ── Sections ─────────────────────────────────────────────────────


def _summary_line(delta: ReportDelta, options: RenderOptions) -> str:
    parts: list[str] = []
    for metric in options.metrics:
        value = _format_percentage(delta.current.percentage(metric))
        text = f"**{_METRIC_LABELS[metric]}:** {value}"
        change = delta.delta(metric)
        if change is not None:
            text += f" ({_format_delta(change)})"
        parts.append(text)
    return " · ".join(parts)


def _table_header(options: RenderOptions, *, has_baseline: bool) -> list[str]:
    columns = ["File", "Lines"]
    if has_baseline:
        columns.append("Δ Lines")
    if options.show_branches:
        columns.append("Branches")
    if options.show_functions:
        columns.append("Functions")
    if options.show_uncovered:
        columns.append("Uncovered Lines")
    return [
        "| " + " | ".join(columns) + " |",
        "|" + "|".join("---" for _ in columns) + "|",
    ]


def _table_row(row: FileDelta, options: RenderOptions, *, has_baseline: bool) -> str:
    cells = [
        _format_path(row, has_baseline=has_baseline),
        _format_metric(row.current, Metric.LINES),
    ]
    if has_baseline:
        cells.append(_format_line_delta(row))
    if options.show_branches:
        cells.append(_format_metric(row.current, Metric.BRANCHES))
    if options.show_functions:
        cells.append(_format_metric(row.current, Metric.FUNCTIONS))
    if options.show_uncovered:
        cells.append(_format_uncovered(row, options.blob_url))
    return "| " + " | ".join(cells) + " |"


def _omitted_marker(count: int) -> str:
    noun = "file" if count == 1 else "files"
    return f"_{count} {noun} omitted_"


def _join(lines: list[str]) -> str:
    return "\n".join(lines) + "\n"


# ── Public API ───────────────────────────────────────────────────


class _ReportLayout:
    """Pre-rendered report sections that can be assembled with fewer rows."""

    def __init__(self, delta: ReportDelta, options: RenderOptions) -> None:
        has_baseline = delta.has_baseline
        title = " ".join(options.title.split())
        self.head = [report_signature(title), f"## {title}", ""]
        self.head.append(_summary_line(delta, options))
        if options.head and options.base:
            self.head.append("")
            self.head.append(
                f"Coverage after merging `{options.head}` into `{options.base}` will be "
                f"**{_format_percentage(delta.current.line_percentage)}**"
            )
        self.head.append("")
        self.table_header = _table_header(options, has_baseline=has_baseline)
        self.rows = [_table_row(row, options, has_baseline=has_baseline) for row in delta.files]
        self.empty_message = (
            "_No changed files with coverage data._"
            if options.changed_only
            else "_No files with coverage data._"
        )
        self.tail = ["", "---", "*Generated by covdelta*"]

    def compose(self, kept: int) -> str:
        lines = list(self.head)
        if not self.rows:
            lines.append(self.empty_message)
        elif kept > 0:
            lines.extend(self.table_header)
            lines.extend(self.rows[:kept])
        omitted = len(self.rows) - kept
        if omitted > 0:
            lines.extend(["", _omitted_marker(omitted)])
        lines.extend(self.tail)
        return _join(lines)

    def minimal(self, max_chars: int) -> str:
        """Drop heading lines bottom-up until the omitted marker fits."""
        marker = ["", _omitted_marker(len(self.rows))] if self.rows else []
        lines = list(self.head) + marker
        while len(lines) > len(marker) and len(_join(lines)) > max_chars:
            del lines[len(lines) - len(marker) - 1]
        body = _join(lines)
        return body if len(body) <= max_chars else ""


def render(
    delta: ReportDelta, options: RenderOptions | None = None, *, max_chars: int | None = None
) -> str:
    """Render *delta* as a markdown report.

    Args:
        delta: Comparison to render; rows are shown in their given order.
        options: Presentation options.
        max_chars: Optional character budget for the whole body.

    Returns:
        The markdown body, at most *max_chars* characters long.
    """
    options = options or RenderOptions()
    layout = _ReportLayout(delta, options)
    total = len(layout.rows)
    body = layout.compose(total)
    if max_chars is None or len(body) <= max_chars:
        return body

    # Largest number of leading rows that still fits the budget.
    low, high = 0, total - 1
    best: int | None = None
    while low <= high:
        mid = (low + high) // 2
        if len(layout.compose(mid)) <= max_chars:
            best = mid
            low = mid + 1
        else:
            high = mid - 1

    if best is None:
        logger.warning("Report header alone exceeds %d characters", max_chars)
        return layout.minimal(max_chars)

    logger.info("Report truncated to %d of %d files to fit %d characters", best, total, max_chars)
    return layout.compose(best)
