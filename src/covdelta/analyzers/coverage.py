"""Coverage aggregation: fold parsed records into found/hit summaries."""

from __future__ import annotations

from typing import TYPE_CHECKING

from covdelta.models.coverage import FileSummary, ReportSummary

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covdelta.models.coverage import CoverageModel, SourceFileRecord


def _hit_count(counts: Iterable[int]) -> int:
    return sum(1 for hits in counts if hits > 0)


def summarize_file(record: SourceFileRecord) -> FileSummary:
    """Count distinct lines/branches/functions and how many were hit."""
    return FileSummary(
        lines_found=len(record.lines),
        lines_hit=_hit_count(record.lines.values()),
        branches_found=len(record.branches),
        branches_hit=_hit_count(record.branches.values()),
        functions_found=len(record.functions),
        functions_hit=_hit_count(record.functions.values()),
    )


def summarize(model: CoverageModel) -> tuple[dict[str, FileSummary], ReportSummary]:
    """Summarize every file of *model* and the report as a whole.

    The report summary is the element-wise sum of the file summaries rather
    than a second pass over the raw records.

    Returns:
        Tuple of (path -> FileSummary in model order, ReportSummary).
    """
    per_file = {record.path: summarize_file(record) for record in model}
    return per_file, ReportSummary.total(per_file.values())
