"""Coverage data models.

Two layers live here:

- the parsed model (:class:`SourceFileRecord`, :class:`CoverageModel`) that the
  LCOV adapter produces from raw text, and
- the derived views (:class:`FileSummary`, :class:`ReportSummary`,
  :class:`FileDelta`, :class:`ReportDelta`) that the analyzers build from it.

All of them are frozen value objects created fresh for every run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

_FULL_PERCENTAGE = 100.0


class Metric(Enum):
    """Coverage dimension tracked per file and per report."""

    LINES = "lines"
    BRANCHES = "branches"
    FUNCTIONS = "functions"


def coverage_percentage(hit: int, found: int) -> float:
    """Return ``hit / found`` as a percentage.

    A unit with nothing coverable is reported as fully covered, so
    ``found == 0`` yields exactly 100.0.
    """
    if found == 0:
        return _FULL_PERCENTAGE
    return (hit / found) * _FULL_PERCENTAGE


# ── Parsed model ─────────────────────────────────────────────────


@dataclass(frozen=True)
class SourceFileRecord:
    """Coverage data recorded for one source file of an LCOV document."""

    path: str
    """Normalized, repository-relative file path."""

    lines: dict[int, int] = field(default_factory=dict)
    """Line number -> hit count."""

    branches: dict[tuple[int, str], int] = field(default_factory=dict)
    """(line number, branch id) -> hit count."""

    functions: dict[str, int] = field(default_factory=dict)
    """Function name -> hit count."""

    function_lines: dict[str, int] = field(default_factory=dict)
    """Function name -> declaration line, when the report provides one."""

    @property
    def uncovered_lines(self) -> tuple[int, ...]:
        """Return instrumented line numbers that were never executed."""
        return tuple(sorted(line for line, hits in self.lines.items() if hits == 0))


@dataclass(frozen=True)
class CoverageModel:
    """Parsed LCOV document: one record per source file in first-seen order."""

    files: tuple[SourceFileRecord, ...] = ()

    def __iter__(self) -> Iterator[SourceFileRecord]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @property
    def paths(self) -> list[str]:
        """Return all file paths in document order."""
        return [record.path for record in self.files]

    @cached_property
    def _by_path(self) -> dict[str, SourceFileRecord]:
        return {record.path: record for record in self.files}

    def get(self, path: str) -> SourceFileRecord | None:
        """Return the record for *path*, or None if the file is not covered."""
        return self._by_path.get(path)


# ── Summaries ────────────────────────────────────────────────────


@dataclass(frozen=True)
class CoverageCounts:
    """Found/hit counters for lines, branches and functions."""

    lines_found: int = 0
    lines_hit: int = 0
    branches_found: int = 0
    branches_hit: int = 0
    functions_found: int = 0
    functions_hit: int = 0

    def percentage(self, metric: Metric) -> float:
        """Return the coverage percentage (0.0-100.0) for *metric*."""
        if metric is Metric.LINES:
            return coverage_percentage(self.lines_hit, self.lines_found)
        if metric is Metric.BRANCHES:
            return coverage_percentage(self.branches_hit, self.branches_found)
        return coverage_percentage(self.functions_hit, self.functions_found)

    @property
    def line_percentage(self) -> float:
        return self.percentage(Metric.LINES)

    @property
    def branch_percentage(self) -> float:
        return self.percentage(Metric.BRANCHES)

    @property
    def function_percentage(self) -> float:
        return self.percentage(Metric.FUNCTIONS)


@dataclass(frozen=True)
class FileSummary(CoverageCounts):
    """Coverage counters for a single source file."""


@dataclass(frozen=True)
class ReportSummary(CoverageCounts):
    """Coverage counters for a whole report."""

    @classmethod
    def total(cls, summaries: Iterable[CoverageCounts]) -> ReportSummary:
        """Sum *summaries* element-wise into a report-level summary."""
        lines_found = lines_hit = 0
        branches_found = branches_hit = 0
        functions_found = functions_hit = 0
        for summary in summaries:
            lines_found += summary.lines_found
            lines_hit += summary.lines_hit
            branches_found += summary.branches_found
            branches_hit += summary.branches_hit
            functions_found += summary.functions_found
            functions_hit += summary.functions_hit
        return cls(
            lines_found=lines_found,
            lines_hit=lines_hit,
            branches_found=branches_found,
            branches_hit=branches_hit,
            functions_found=functions_found,
            functions_hit=functions_hit,
        )


def percentage_delta(
    current: CoverageCounts | None, baseline: CoverageCounts | None, metric: Metric
) -> float | None:
    """Return ``current% - baseline%`` for *metric*, or None if a side is missing."""
    if current is None or baseline is None:
        return None
    return current.percentage(metric) - baseline.percentage(metric)


# ── Deltas ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class FileDelta:
    """One report row: a file's current summary paired with its baseline."""

    path: str
    """Normalized file path."""

    current: FileSummary | None
    """Summary in the current report; None when the file was removed."""

    baseline: FileSummary | None = None
    """Summary in the baseline report; None when the file is new."""

    uncovered_lines: tuple[int, ...] = ()
    """Current line numbers with zero hits, ascending."""

    @property
    def is_new(self) -> bool:
        """Return True when the file has no baseline counterpart."""
        return self.current is not None and self.baseline is None

    @property
    def is_removed(self) -> bool:
        """Return True when the file only exists in the baseline."""
        return self.current is None

    def delta(self, metric: Metric) -> float | None:
        """Return the percentage-point change for *metric*, if both sides exist."""
        return percentage_delta(self.current, self.baseline, metric)

    @property
    def line_delta(self) -> float | None:
        return self.delta(Metric.LINES)


@dataclass(frozen=True)
class ReportDelta:
    """Whole-report comparison plus the ordered per-file rows."""

    current: ReportSummary
    """Summary of the full current report."""

    baseline: ReportSummary | None = None
    """Summary of the full baseline report, if one was supplied."""

    files: tuple[FileDelta, ...] = ()
    """Per-file rows in display order."""

    @property
    def has_baseline(self) -> bool:
        return self.baseline is not None

    def delta(self, metric: Metric) -> float | None:
        """Return the whole-report percentage-point change for *metric*."""
        return percentage_delta(self.current, self.baseline, metric)
